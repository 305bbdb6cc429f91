"""
Elitist generational genetic algorithm for planar TSP tours with a
deterministic random stream.
"""

__all__ = [
    "cities",
    "data",
    "evaluation",
    "evolutionary",
    "operators",
    "population",
    "rng",
    "selection",
]
