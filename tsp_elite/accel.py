"""
Torch fitness backend: evaluates the whole population as one batched gather,
on CUDA when a device is available.
"""

import torch

from .cities import Cities
from .population import Population


def pick_device() -> torch.device:
    return torch.device("cuda:0") if torch.cuda.is_available() else torch.device("cpu")


def _tour_lengths_torch(coords: torch.Tensor, tours: torch.Tensor) -> torch.Tensor:
    pts = coords[tours]
    delta = pts - pts.roll(-1, dims=-2)
    edges = torch.sqrt(delta[..., 0] * delta[..., 0] + delta[..., 1] * delta[..., 1])
    # Left-to-right float32 scan, one edge column at a time.
    total = edges[..., 0]
    for k in range(1, edges.shape[-1]):
        total = total + edges[..., k]
    return total


class TorchFitnessEvaluator:
    def __init__(self, cities: Cities, device=None, batch_rows: int = 8192):
        self.cities = cities
        self.device = torch.device(device) if device is not None else pick_device()
        self.batch_rows = batch_rows
        self.coords = torch.tensor(cities.coords.copy(), dtype=torch.float32, device=self.device)

    def evaluate(self, population: Population) -> None:
        for start in range(0, population.size, self.batch_rows):
            stop = min(start + self.batch_rows, population.size)
            tours = torch.as_tensor(population.tours[start:stop], device=self.device).long()
            lengths = _tour_lengths_torch(self.coords, tours)
            population.fitness[start:stop] = lengths.cpu().numpy()
