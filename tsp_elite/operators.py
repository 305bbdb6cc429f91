"""
Genetic operators: order-preserving crossover ("mate") and swap mutation.

All random choices for a phase are drawn from the LCG before any work is
dispatched, in offspring order, so the offspring do not depend on how the
rows are split across workers.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .errors import AllocationFailure
from .parallel import WorkerPool
from .population import Population
from .rng import LCG


@dataclass
class MateDraws:
    parent_a: np.ndarray
    parent_b: np.ndarray
    pos: np.ndarray

    @classmethod
    def from_rng(cls, rng: LCG, count: int, elite: int, num_cities: int) -> "MateDraws":
        r = rng.draws(3 * count).reshape(count, 3)
        return cls(parent_a=r[:, 0] % elite, parent_b=r[:, 1] % elite, pos=r[:, 2] % num_cities)

    def __len__(self) -> int:
        return self.pos.size


@dataclass
class SwapDraws:
    a_pos: np.ndarray
    b_pos: np.ndarray

    @classmethod
    def from_rng(cls, rng: LCG, count: int, num_cities: int) -> "SwapDraws":
        r = rng.draws(2 * count).reshape(count, 2) % num_cities
        return cls(a_pos=r[:, 0], b_pos=r[:, 1])

    def __len__(self) -> int:
        return self.a_pos.size


class Workspace:
    """Per-worker "seen city" masks, allocated once and reused every generation."""

    def __init__(self, rows: int, num_cities: int, workers: int):
        workers = max(1, workers)
        # Largest chunk handed out by partition(rows, workers).
        capacity = -(-rows // workers)
        self.num_cities = num_cities
        try:
            self._masks: List[np.ndarray] = [
                np.zeros((capacity, num_cities), dtype=bool) for _ in range(workers)
            ]
        except MemoryError as exc:
            raise AllocationFailure(
                "cannot allocate crossover workspace",
                {"rows": rows, "num_cities": num_cities, "workers": workers},
            ) from exc

    def seen(self, chunk: int, rows: int) -> np.ndarray:
        mask = self._masks[chunk][:rows]
        mask[:] = False
        return mask


def _mate_block(
    tours: np.ndarray,
    parent_a: np.ndarray,
    parent_b: np.ndarray,
    pos: np.ndarray,
    out: np.ndarray,
    seen: np.ndarray,
) -> None:
    n = out.shape[1]
    a = tours[parent_a]
    b = tours[parent_b]
    prefix = np.arange(n) < pos[:, None]
    out[prefix] = a[prefix]
    np.put_along_axis(seen, a, prefix, axis=1)
    # Cities of b not in the prefix fill positions pos.. in b's order.
    keep = ~np.take_along_axis(seen, b, axis=1)
    dest = np.cumsum(keep, axis=1) - 1 + pos[:, None]
    rows = np.nonzero(keep)[0]
    out[rows, dest[keep]] = b[keep]


def mate(
    source: Population,
    target: Population,
    offset: int,
    draws: MateDraws,
    pool: Optional[WorkerPool] = None,
    workspace: Optional[Workspace] = None,
) -> None:
    """
    Write ``len(draws)`` children into ``target`` rows ``offset..``. Child
    ``m`` takes parent A's first ``pos`` cities verbatim, then the rest of
    the cities in the order they appear in parent B. Parent indices refer to
    rows of ``source``, which must not be ``target``.
    """
    if source.tours is target.tours:
        raise ValueError("crossover source and target must be distinct populations")
    pool = pool or WorkerPool(1)
    if workspace is None:
        workspace = Workspace(len(draws), source.num_cities, pool.workers)

    def work(chunk, start, stop):
        _mate_block(
            source.tours,
            draws.parent_a[start:stop],
            draws.parent_b[start:stop],
            draws.pos[start:stop],
            target.tours[offset + start:offset + stop],
            workspace.seen(chunk, stop - start),
        )

    pool.parallel_for(len(draws), work)


def order_crossover(parent_a: Sequence[int], parent_b: Sequence[int], pos: int) -> List[int]:
    tours = np.array([parent_a, parent_b], dtype=np.int32)
    out = np.empty((1, tours.shape[1]), dtype=np.int32)
    seen = np.zeros((1, tours.shape[1]), dtype=bool)
    _mate_block(tours, np.array([0]), np.array([1]), np.array([pos]), out, seen)
    return out[0].tolist()


def mutate(
    population: Population,
    start: int,
    draws: SwapDraws,
    pool: Optional[WorkerPool] = None,
) -> None:
    """Swap the cities at ``a_pos`` and ``b_pos`` in rows ``start..`` of ``population``."""
    pool = pool or WorkerPool(1)
    tours = population.tours

    def work(_chunk, lo, hi):
        rows = np.arange(start + lo, start + hi)
        a = draws.a_pos[lo:hi]
        b = draws.b_pos[lo:hi]
        held = tours[rows, a]
        tours[rows, a] = tours[rows, b]
        tours[rows, b] = held

    pool.parallel_for(len(draws), work)


def swap_mutation(tour: Sequence[int], a_pos: int, b_pos: int) -> List[int]:
    out = list(tour)
    out[a_pos], out[b_pos] = out[b_pos], out[a_pos]
    return out
