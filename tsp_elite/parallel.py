import concurrent.futures
import os
from typing import Callable, List, Optional, Tuple


def default_workers() -> int:
    return max(1, min(8, os.cpu_count() or 1))


def partition(n: int, parts: int) -> List[Tuple[int, int]]:
    """Split ``[0, n)`` into at most ``parts`` contiguous, near-equal ranges."""
    parts = max(1, min(parts, n))
    base, extra = divmod(n, parts)
    bounds = []
    start = 0
    for i in range(parts):
        stop = start + base + (1 if i < extra else 0)
        if stop > start:
            bounds.append((start, stop))
        start = stop
    return bounds


class WorkerPool:
    """
    Thread pool running data-parallel phases over index ranges.

    ``parallel_for`` returns only after every chunk has finished, so it acts
    as the barrier between phases. The numpy kernels release the GIL.
    """

    def __init__(self, workers: Optional[int] = None):
        self.workers = workers or default_workers()
        self._executor = None
        if self.workers > 1:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=self.workers, thread_name_prefix="tsp-elite"
            )

    def parallel_for(self, n: int, fn: Callable[[int, int, int], object]) -> list:
        """Run ``fn(chunk_index, start, stop)`` over a partition of ``[0, n)``."""
        if n <= 0:
            return []
        chunks = partition(n, self.workers)
        if self._executor is None or len(chunks) == 1:
            return [fn(i, start, stop) for i, (start, stop) in enumerate(chunks)]
        futures = [
            self._executor.submit(fn, i, start, stop) for i, (start, stop) in enumerate(chunks)
        ]
        concurrent.futures.wait(futures)
        return [f.result() for f in futures]

    def map(self, fn: Callable, items) -> list:
        items = list(items)
        if self._executor is None or len(items) < 2:
            return [fn(item) for item in items]
        return list(self._executor.map(fn, items))

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
