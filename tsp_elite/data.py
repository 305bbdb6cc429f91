from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np
import tsplib95

from .cities import Cities
from .evaluation import tour_length


@dataclass
class Instance:
    name: str
    path: Path
    cities: Cities
    node_ids: List[int]
    optimum: Optional[float]

    def to_node_ids(self, tour: Iterable[int]) -> List[int]:
        return [self.node_ids[i] for i in tour]


def _solution_candidates(path: Path) -> Iterable[Path]:
    yield path.with_suffix(".opt.tour")
    for ext in (".opt.tour", ".opt", ".tour"):
        yield path.parent / "solutions" / f"{path.stem}{ext}"


def _load_optimum(cities: Cities, node_ids: List[int], path: Path) -> Optional[float]:
    index = {node: i for i, node in enumerate(node_ids)}
    for candidate in _solution_candidates(path):
        if not candidate.exists():
            continue
        try:
            tour_file = tsplib95.parse(candidate.read_text())
            tour = [index[node] for node in tour_file.tours[0]]
        except (KeyError, IndexError, ValueError):
            continue
        if len(tour) != len(cities):
            continue
        return tour_length(cities, tour)
    return None


def load_instance(path: Path) -> Instance:
    path = Path(path)
    problem = tsplib95.load(path)
    coords = problem.node_coords
    if not coords:
        raise ValueError(f"{path} has no NODE_COORD_SECTION; only coordinate instances are supported")
    node_ids = sorted(coords)
    cities = Cities(np.array([coords[node][:2] for node in node_ids], dtype=np.float64))
    optimum = _load_optimum(cities, node_ids, path)
    return Instance(
        name=problem.name or path.stem,
        path=path,
        cities=cities,
        node_ids=node_ids,
        optimum=optimum,
    )
