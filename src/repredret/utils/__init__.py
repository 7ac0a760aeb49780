"""Utility functions and helpers."""

from .itertools import batch_slices
from .timing import timeit, section_timer
from .logging import setup_logging, get_summary_logger

__all__ = [
    "batch_slices",
    "timeit",
    "section_timer",
    "setup_logging",
    "get_summary_logger",
]
