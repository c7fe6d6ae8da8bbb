# util/timing.py
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator
import logging


class Stopwatch:
    """Elapsed-time holder filled in when a `timed` block exits."""

    __slots__ = ("ms",)

    def __init__(self) -> None:
        self.ms = 0


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Any) -> Iterator[Stopwatch]:
    """
    Usage:
      with timed(logger, "review.call", reviewer="r1") as sw:
          ...
      sw.ms  # elapsed milliseconds once the block has exited
    Emits one INFO on exit: "<name>.done ms=<int> key=val ..."
    """
    sw = Stopwatch()
    t0 = time.perf_counter()
    try:
        yield sw
    finally:
        sw.ms = int((time.perf_counter() - t0) * 1000)
        suffix = "".join(f" {k}={v}" for k, v in kv.items())
        logger.info("%s.done ms=%d%s", name, sw.ms, suffix)
