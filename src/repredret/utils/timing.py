"""Timing helpers for the model build pipeline"""
import logging
import time
from contextlib import contextmanager
from functools import wraps

def now() -> float:
    return time.perf_counter()

@contextmanager
def section_timer(name: str, logger: logging.Logger):
    """Log how long a block of the pipeline took"""
    t0 = now()
    try:
        yield
    finally:
        logger.info("TIMER %s took %.3f s", name, now() - t0)

def timeit(logger: logging.Logger, name: str | None = None):
    """Log how long each call of the wrapped function took"""
    def deco(fn):
        label = name or fn.__qualname__
        @wraps(fn)
        def wrapper(*args, **kwargs):
            t0 = now()
            try:
                return fn(*args, **kwargs)
            finally:
                logger.info("TIMER %s took %.3f s", label, now() - t0)
        return wrapper
    return deco

def format_minutes(seconds: float) -> str:
    """Seconds rendered as minutes with one decimal."""
    return f"{round(seconds / 60, 1)}"
