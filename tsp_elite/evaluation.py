from typing import Optional, Sequence

import numpy as np

from .cities import Cities
from .parallel import WorkerPool
from .population import Population


def tour_length(cities: Cities, tour: Sequence[int]) -> float:
    """Closed tour length, summed edge by edge in single precision."""
    n = len(tour)
    dist = np.float32(0.0)
    for i in range(1, n):
        dist = dist + cities.distance(tour[i - 1], tour[i])
    return float(dist + cities.distance(tour[n - 1], tour[0]))


def tour_lengths(cities: Cities, tours: np.ndarray) -> np.ndarray:
    # np.add.accumulate scans left to right, matching tour_length's order.
    edges = cities.edge_lengths(tours)
    return np.add.accumulate(edges, axis=-1, dtype=np.float32)[..., -1]


class FitnessEvaluator:
    """Recomputes every chromosome's tour length, one chunk of rows per worker."""

    def __init__(self, cities: Cities, pool: Optional[WorkerPool] = None):
        self.cities = cities
        self.pool = pool or WorkerPool(1)

    def evaluate(self, population: Population) -> None:
        def work(_chunk, start, stop):
            population.fitness[start:stop] = tour_lengths(
                self.cities, population.tours[start:stop]
            )

        self.pool.parallel_for(population.size, work)
