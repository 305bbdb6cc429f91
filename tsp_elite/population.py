from dataclasses import dataclass
from typing import List

import numpy as np

from .errors import AllocationFailure, InvalidPermutation


@dataclass
class Chromosome:
    tour: List[int]
    fitness: float


def is_permutation(tour, num_cities: int) -> bool:
    tour = np.asarray(tour)
    if tour.shape != (num_cities,):
        return False
    if num_cities == 0:
        return True
    if tour.min() < 0 or tour.max() >= num_cities:
        return False
    seen = np.zeros(num_cities, dtype=bool)
    seen[tour] = True
    return bool(seen.all())


def check_valid(tour, num_cities: int, generation: int = None) -> None:
    if not is_permutation(tour, num_cities):
        raise InvalidPermutation(tour=tour, num_cities=num_cities, generation=generation)


class Population:
    """
    Fixed-capacity set of tours held in one flat ``(size, num_cities)`` store,
    with the cached tour length of each row in a parallel ``fitness`` array.
    Reordering always moves a tour and its fitness together.
    """

    def __init__(self, size: int, num_cities: int):
        if size < 1 or num_cities < 1:
            raise AllocationFailure(
                "population needs at least one chromosome and one city",
                {"size": size, "num_cities": num_cities},
            )
        try:
            self.tours = np.empty((size, num_cities), dtype=np.int32)
            self.fitness = np.zeros(size, dtype=np.float32)
        except MemoryError as exc:
            raise AllocationFailure(
                "cannot allocate population storage",
                {"size": size, "num_cities": num_cities},
            ) from exc

    @classmethod
    def identity(cls, size: int, num_cities: int) -> "Population":
        pop = cls(size, num_cities)
        pop.tours[:] = np.arange(num_cities, dtype=np.int32)
        return pop

    @property
    def size(self) -> int:
        return self.tours.shape[0]

    @property
    def num_cities(self) -> int:
        return self.tours.shape[1]

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, idx: int) -> Chromosome:
        return Chromosome(tour=self.tours[idx].tolist(), fitness=float(self.fitness[idx]))

    def copy_from(self, other: "Population", count: int) -> None:
        """Copy the first ``count`` tours of ``other`` into this population."""
        self.tours[:count] = other.tours[:count]
        self.fitness[:count] = other.fitness[:count]

    def gather_from(self, other: "Population", order: np.ndarray) -> None:
        """Fill this population with ``other``'s rows taken in ``order``."""
        np.take(other.tours, order, axis=0, out=self.tours)
        np.take(other.fitness, order, out=self.fitness)

    @property
    def best_tour(self) -> List[int]:
        return self.tours[0].tolist()

    @property
    def best_distance(self) -> float:
        return float(self.fitness[0])

    def invalid_rows(self) -> np.ndarray:
        """Indices of rows that are not permutations of all cities."""
        expected = np.arange(self.num_cities, dtype=self.tours.dtype)
        ordered = np.sort(self.tours, axis=1)
        return np.flatnonzero((ordered != expected).any(axis=1))
