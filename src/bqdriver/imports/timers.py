"""Named phase timers reported in import responses."""

import time
from contextlib import contextmanager
from typing import Iterator, List, Tuple


class ImportTimers:
    """Collects ``(name, seconds)`` pairs in the order phases finish."""

    def __init__(self):
        self._timers: List[Tuple[str, float]] = []

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self._timers.append((name, time.perf_counter() - start))

    def as_tuple(self) -> Tuple[Tuple[str, float], ...]:
        return tuple(self._timers)
