from __future__ import annotations

import itertools
import time
from typing import Callable


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class ResultIdGenerator:
    """Mints ``"<epoch-ms>-<n>"`` ids, unique for the lifetime of one generator.

    Each engine owns its generator; callers that run engines side by side
    should hand them separate generators rather than share one.
    """

    def __init__(self, clock_ms: Callable[[], int] = _wall_clock_ms) -> None:
        self._clock_ms = clock_ms
        self._counter = itertools.count(1)

    def next_id(self) -> str:
        return f"{self._clock_ms()}-{next(self._counter)}"
