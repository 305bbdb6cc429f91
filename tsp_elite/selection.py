"""
Elitist selection: a deterministic merge sort of the population by fitness.

The population is cut into one run per worker, each run is merge-sorted in
parallel, then runs are merged pairwise in rounds. Because every merge takes
from the left run on ties, the final order is the stable ascending order of
the fitness values whatever the number of workers.
"""

from typing import List, Optional

import numpy as np

from .parallel import WorkerPool, partition
from .population import Population


def elite_size(population_size: int, elite_fraction: float) -> int:
    # Product taken in single precision, then truncated.
    return int(np.float32(population_size) * np.float32(elite_fraction))


def merge_runs(keys: np.ndarray, left: np.ndarray, right: np.ndarray) -> np.ndarray:
    """Merge two index runs, each sorted by ``keys``; ties keep ``left`` first."""
    lk = keys[left]
    rk = keys[right]
    out = np.empty(left.size + right.size, dtype=np.int64)
    # Left element i lands after i left items and every right item strictly smaller.
    out[np.arange(left.size) + np.searchsorted(rk, lk, side="left")] = left
    out[np.arange(right.size) + np.searchsorted(lk, rk, side="right")] = right
    return out


def merge_sort_order(keys: np.ndarray, leaf_size: int = 64) -> np.ndarray:
    """
    Index order sorting ``keys`` ascending by recursive merge sort.

    Two elements are compared and swapped directly; runs no longer than
    ``leaf_size`` use numpy's stable sort, which agrees with the merge.
    """
    keys = np.asarray(keys)
    n = keys.size
    if n < 2:
        return np.arange(n, dtype=np.int64)
    if n == 2:
        if keys[0] > keys[1]:
            return np.array([1, 0], dtype=np.int64)
        return np.array([0, 1], dtype=np.int64)
    if n <= leaf_size:
        return np.argsort(keys, kind="stable").astype(np.int64)
    mid = n // 2
    left = merge_sort_order(keys[:mid], leaf_size)
    right = merge_sort_order(keys[mid:], leaf_size) + mid
    return merge_runs(keys, left, right)


class ElitistSelector:
    def __init__(self, pool: Optional[WorkerPool] = None, leaf_size: int = 64):
        self.pool = pool or WorkerPool(1)
        self.leaf_size = leaf_size

    def order(self, fitness: np.ndarray) -> np.ndarray:
        # Small populations are sorted as a single run.
        parts = min(self.pool.workers, max(1, fitness.size // max(2, self.leaf_size)))
        bounds = partition(fitness.size, parts)

        def sort_run(bound):
            start, stop = bound
            return merge_sort_order(fitness[start:stop], self.leaf_size) + start

        runs: List[np.ndarray] = self.pool.map(sort_run, bounds)
        while len(runs) > 1:
            pairs = [(runs[i], runs[i + 1]) for i in range(0, len(runs) - 1, 2)]
            merged = self.pool.map(lambda p: merge_runs(fitness, p[0], p[1]), pairs)
            if len(runs) % 2:
                merged.append(runs[-1])
            runs = merged
        if not runs:
            return np.empty(0, dtype=np.int64)
        return runs[0]

    def sort(self, population: Population, scratch: Population) -> None:
        """
        Order ``population`` ascending by fitness. Rows are gathered through
        ``scratch`` and the two backing stores are then exchanged, so the
        caller's ``population`` object holds the sorted rows.
        """
        order = self.order(population.fitness)
        scratch.gather_from(population, order)
        population.tours, scratch.tours = scratch.tours, population.tours
        population.fitness, scratch.fitness = scratch.fitness, population.fitness
