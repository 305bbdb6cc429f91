"""
Deterministic linear-congruential generator shared by every stage of the search.

The recurrence and the order in which values are consumed fix the whole run:
two searches seeded alike produce the same cities, offspring and best tour.
"""

from typing import Dict, Tuple

import numpy as np


MULTIPLIER = 214013
INCREMENT = 2531011
SHIFT = 13
MASK = 0xFFFFFFFF


class LCG:
    def __init__(self, seed: int = 12345):
        self._state = int(seed) & MASK
        self._tables: Dict[int, Tuple[np.ndarray, np.ndarray]] = {}

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> int:
        self._state = (MULTIPLIER * self._state + INCREMENT) & MASK
        return self._state >> SHIFT

    def below(self, n: int) -> int:
        return self.next() % n

    def _jump_table(self, count: int) -> Tuple[np.ndarray, np.ndarray]:
        # state_k = mult[k] * state_0 + inc[k]  (mod 2**32)
        table = self._tables.get(count)
        if table is None:
            mult = np.empty(count, dtype=np.uint64)
            inc = np.empty(count, dtype=np.uint64)
            a, c = 1, 0
            for k in range(count):
                a = (a * MULTIPLIER) & MASK
                c = (c * MULTIPLIER + INCREMENT) & MASK
                mult[k] = a
                inc[k] = c
            table = (mult, inc)
            self._tables[count] = table
        return table

    def draws(self, count: int) -> np.ndarray:
        """Return the next ``count`` outputs, exactly as ``count`` calls to ``next``."""
        if count <= 0:
            return np.empty(0, dtype=np.int64)
        mult, inc = self._jump_table(count)
        states = (mult * np.uint64(self._state) + inc) & np.uint64(MASK)
        self._state = int(states[-1])
        return (states >> np.uint64(SHIFT)).astype(np.int64)
