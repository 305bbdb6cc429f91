from typing import Sequence

import numpy as np

from .errors import AllocationFailure
from .rng import LCG


def distance(p1: Sequence[float], p2: Sequence[float]) -> np.float32:
    """Euclidean distance between two points, in single precision."""
    dx = np.float32(p1[0]) - np.float32(p2[0])
    dy = np.float32(p1[1]) - np.float32(p2[1])
    return np.sqrt(dx * dx + dy * dy)


class Cities:
    """Fixed, read-only set of planar points. The row index is the city id."""

    def __init__(self, coords):
        try:
            arr = np.array(coords, dtype=np.float32)
        except MemoryError as exc:
            raise AllocationFailure("cannot allocate city coordinates") from exc
        if arr.ndim != 2 or arr.shape[1] != 2:
            raise ValueError(f"expected (n, 2) coordinates, got shape {arr.shape}")
        if arr.shape[0] < 1:
            raise ValueError("at least one city is required")
        arr.setflags(write=False)
        self.coords = arr

    def __len__(self) -> int:
        return self.coords.shape[0]

    def __getitem__(self, idx: int) -> np.ndarray:
        return self.coords[idx]

    def distance(self, i: int, j: int) -> np.float32:
        return distance(self.coords[i], self.coords[j])

    def edge_lengths(self, tours: np.ndarray) -> np.ndarray:
        # Edge k joins tour[k] and tour[k + 1]; the last edge closes the loop.
        pts = self.coords[tours]
        nxt = np.roll(pts, -1, axis=-2)
        delta = pts - nxt
        return np.sqrt(delta[..., 0] * delta[..., 0] + delta[..., 1] * delta[..., 1])


def random_cities(rng: LCG, n: int, coord_range: int = 4096) -> Cities:
    """Draw ``n`` cities, x then y per city, each reduced modulo ``coord_range``."""
    values = rng.draws(2 * n) % coord_range
    return Cities(values.reshape(n, 2))
