"""Batch scheduling of model pairs over a process pool"""
import logging
import math
from concurrent.futures import Executor, ProcessPoolExecutor
from typing import Callable, List, Optional, Sequence

from repredret.domain.models import ModelPair, ModelResult
from repredret.domain.exceptions import (
    BatchProcessingError,
    ParameterValidationError,
)
from repredret.utils.itertools import batch_slices
from repredret.utils.timing import section_timer

logger = logging.getLogger(__name__)

BATCHES_PER_WORKER = 4

PairTask = Callable[[ModelPair], ModelResult]
BatchCallback = Callable[[int, int, int, int, List[ModelResult]], None]


def resolve_batch_size(n_pairs: int, n_workers: int, batch_size: Optional[int] = None) -> int:
    """
    Explicit batch sizes are used as given; otherwise aim for about four
    batches per worker so progress is reported regularly.
    """
    if batch_size is not None:
        if batch_size < 1:
            raise ParameterValidationError(
                "batch_size", batch_size, expected_type="positive integer"
            ).add_suggestion("Leave batch_size unset to size batches automatically")
        return batch_size
    if n_workers < 1:
        raise ParameterValidationError("n_workers", n_workers, expected_type="positive integer")
    return max(1, math.ceil(n_pairs / (n_workers * BATCHES_PER_WORKER)))


class BatchScheduler:
    """
    Runs a per-pair task over contiguous batches of pairs.

    With more than one worker every batch is mapped through a single process
    pool created for the whole run; with one worker batches run inline.
    Results come back in pair order.
    """

    def __init__(
        self,
        n_workers: int = 1,
        batch_size: Optional[int] = None,
        executor_factory: Callable[..., Executor] = ProcessPoolExecutor,
    ):
        if n_workers < 1:
            raise ParameterValidationError(
                "n_workers", n_workers, expected_type="positive integer"
            )
        if batch_size is not None and batch_size < 1:
            raise ParameterValidationError(
                "batch_size", batch_size, expected_type="positive integer"
            )
        self.n_workers = n_workers
        self.batch_size = batch_size
        self.executor_factory = executor_factory

    def run(
        self,
        pairs: Sequence[ModelPair],
        task: PairTask,
        on_batch: Optional[BatchCallback] = None,
    ) -> List[ModelResult]:
        """
        Run ``task`` for every pair.

        ``on_batch(batch_index, n_batches, start, end, results)`` is called after
        each batch with 1-based model positions.
        """
        if not pairs:
            return []

        size = resolve_batch_size(len(pairs), self.n_workers, self.batch_size)
        n_batches = math.ceil(len(pairs) / size)
        logger.info(
            "Scheduling %d pairs in %d batches of up to %d (workers=%d)",
            len(pairs), n_batches, size, self.n_workers,
        )

        results: List[ModelResult] = []
        with section_timer(f"Building {len(pairs)} models", logger):
            if self.n_workers == 1:
                for batch_index, (start, end, batch) in enumerate(batch_slices(pairs, size), 1):
                    batch_results = self._run_batch(batch, batch_index, lambda b: map(task, b))
                    results.extend(batch_results)
                    if on_batch is not None:
                        on_batch(batch_index, n_batches, start, end, batch_results)
                return results

            with self.executor_factory(max_workers=self.n_workers) as executor:
                for batch_index, (start, end, batch) in enumerate(batch_slices(pairs, size), 1):
                    batch_results = self._run_batch(batch, batch_index, lambda b: executor.map(task, b))
                    results.extend(batch_results)
                    if on_batch is not None:
                        on_batch(batch_index, n_batches, start, end, batch_results)
        return results

    def _run_batch(self, batch: Sequence[ModelPair], batch_index: int, mapper) -> List[ModelResult]:
        try:
            return list(mapper(batch))
        except BatchProcessingError:
            raise
        except Exception as e:
            # per-pair problems are returned as results, so anything here is the pool itself
            logger.exception("Batch %d failed: %s", batch_index, e)
            raise BatchProcessingError(
                f"Batch {batch_index} could not be processed: {e}",
                batch_size=len(batch),
                failed_count=len(batch),
                batch_id=str(batch_index),
            ).add_context("first_pair", f"{batch[0].sys1_id} -> {batch[0].sys2_id}") from e
