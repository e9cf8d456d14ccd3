"""Wall-clock timing for the stages of a CUR trial."""

from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass
from typing import Generator


@dataclass
class TimerResult:
    """Elapsed time of a timed block.

    Attributes
    ----------
    seconds : float
        Wall-clock seconds; filled in when the block exits, even on error.
    """

    seconds: float


@contextlib.contextmanager
def timer() -> Generator[TimerResult, None, None]:
    """Measure the wall-clock time spent inside a ``with`` block.

    Example
    -------
    >>> with timer() as t:
    ...     indices = sample_indices(a, c, r, rng)
    >>> construct_time = t.seconds
    """

    start = time.perf_counter()
    result = TimerResult(seconds=0.0)
    try:
        yield result
    finally:
        result.seconds = float(time.perf_counter() - start)
