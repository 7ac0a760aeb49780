"""Iterator utilities for batch scheduling."""

from typing import Iterator, Sequence, Tuple, TypeVar

T = TypeVar('T')

def batch_slices(seq: Sequence[T], size: int) -> Iterator[Tuple[int, int, Sequence[T]]]:
    """
    Split a sequence into contiguous batches of ``size`` items (last may be smaller).

    Yields:
        (start, end, items) where ``start`` and ``end`` are 1-based inclusive
        positions of the batch in ``seq``.
    """
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    for offset in range(0, len(seq), size):
        items = seq[offset: offset + size]
        yield offset + 1, offset + len(items), items
