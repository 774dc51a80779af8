# util/timing.py
import time
from contextlib import contextmanager
from typing import Iterator, Any
import logging


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Any) -> Iterator[None]:
    """
    Usage:
      with timed(logger, "index.build", n=42):
          ...
    Emits one INFO on exit: "<name>.done ms=<int> key=val ..."
    or one WARNING "<name>.failed ms=<int> ..." when the block raises.
    """
    t0 = time.perf_counter()
    ok = False
    try:
        yield
        ok = True
    finally:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        suffix = "".join(f" {k}={v}" for k, v in kv.items())
        if ok:
            logger.info("%s.done ms=%d%s", name, dt_ms, suffix)
        else:
            logger.warning("%s.failed ms=%d%s", name, dt_ms, suffix)
