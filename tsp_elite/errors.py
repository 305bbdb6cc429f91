"""
Error types raised by the GA engine.
"""


class TourError(Exception):
    """Base error for the tour search."""

    def __init__(self, message: str = "", details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidPermutation(TourError):
    """A chromosome's tour is not a permutation of all cities. Always fatal."""

    def __init__(self, tour=None, num_cities: int = None, generation: int = None):
        details = {}
        if num_cities is not None:
            details["num_cities"] = num_cities
        if generation is not None:
            details["generation"] = generation
        if tour is not None:
            details["tour_length"] = len(tour)
        super().__init__("gen is not a valid permutation of Cities", details)
        self.tour = tour


class AllocationFailure(TourError):
    """Backing storage for cities or populations could not be obtained."""


class ConfigError(TourError, ValueError):
    """Invalid run parameters."""
