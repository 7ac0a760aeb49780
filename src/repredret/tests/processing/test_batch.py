import pytest
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from unittest.mock import MagicMock

import numpy as np
import pandas as pd

from repredret.domain.exceptions import BatchProcessingError, ParameterValidationError
from repredret.domain.models import ModelPair, ModelResult
from repredret.processing.batch import BatchScheduler, resolve_batch_size
from repredret.processing.worker import WorkerOptions, build_pair


def _pairs(n):
    x = np.arange(10, dtype=float)
    matrix = pd.DataFrame({"compound": [f"C{i}" for i in range(10)], "rt_sys1": x, "rt_sys2": 2 * x + 1})
    return [ModelPair(f"s{i:02d}", f"t{i:02d}", matrix) for i in range(n)]


def _echo(pair):
    return ModelResult.failed(pair.sys1_id, pair.sys2_id, "echo")


class TestResolveBatchSize:
    """Test batch size resolution."""

    @pytest.mark.parametrize("n_pairs,n_workers,expected", [
        (100, 4, 7),    # ceil(100 / 16)
        (16, 4, 1),
        (17, 4, 2),
        (0, 4, 1),
        (5, 1, 2),      # ceil(5 / 4)
    ])
    def test_auto(self, n_pairs, n_workers, expected):
        """Test automatic batch sizes."""
        assert resolve_batch_size(n_pairs, n_workers) == expected

    def test_explicit(self):
        """Test explicit batch sizes are used as given."""
        assert resolve_batch_size(100, 4, 3) == 3

    def test_invalid(self):
        """Test invalid batch sizes are rejected."""
        with pytest.raises(ParameterValidationError):
            resolve_batch_size(10, 2, 0)
        with pytest.raises(ParameterValidationError):
            resolve_batch_size(10, 0)


class TestBatchScheduler:
    """Test BatchScheduler."""

    def test_rejects_bad_parameters(self):
        """Test bad worker counts and batch sizes are rejected."""
        with pytest.raises(ParameterValidationError):
            BatchScheduler(n_workers=0)
        with pytest.raises(ParameterValidationError):
            BatchScheduler(n_workers=2, batch_size=0)

    def test_empty(self):
        """Test no pairs gives no results."""
        assert BatchScheduler(n_workers=2).run([], _echo) == []

    def test_inline_batches_and_callback(self):
        """Test inline batches and the per-batch callback."""
        callback = MagicMock()
        pairs = _pairs(7)
        results = BatchScheduler(n_workers=1, batch_size=3).run(pairs, _echo, on_batch=callback)

        assert [r.key for r in results] == [p.key for p in pairs]
        ranges = [(c.args[0], c.args[1], c.args[2], c.args[3], len(c.args[4])) for c in callback.call_args_list]
        assert ranges == [(1, 3, 1, 3, 3), (2, 3, 4, 6, 3), (3, 3, 7, 7, 1)]

    def test_inline_does_not_create_executor(self):
        """Test one worker runs without a pool."""
        factory = MagicMock()
        BatchScheduler(n_workers=1, executor_factory=factory).run(_pairs(2), _echo)
        factory.assert_not_called()

    def test_pool_preserves_order_and_reuses_executor(self):
        """Test one pool serves every batch in pair order."""
        created = []

        def factory(max_workers):
            ex = ThreadPoolExecutor(max_workers=max_workers)
            created.append(ex)
            return ex

        pairs = _pairs(20)
        results = BatchScheduler(n_workers=4, batch_size=3, executor_factory=factory).run(pairs, _echo)
        assert [r.key for r in results] == [p.key for p in pairs]
        assert len(created) == 1

    def test_infrastructure_error_becomes_batch_error(self):
        """Test pool failures become BatchProcessingError."""
        def broken(pair):
            raise RuntimeError("worker died")

        with pytest.raises(BatchProcessingError) as exc_info:
            BatchScheduler(n_workers=2, batch_size=2, executor_factory=ThreadPoolExecutor).run(_pairs(3), broken)
        assert exc_info.value.context["batch_id"] == "1"
        assert exc_info.value.context["batch_size"] == 2

    def test_process_pool_end_to_end(self):
        """Test a real process pool builds every pair."""
        task = partial(build_pair, options=WorkerOptions())
        pairs = _pairs(5)
        results = BatchScheduler(n_workers=2, batch_size=2).run(pairs, task)
        assert [r.key for r in results] == [p.key for p in pairs]
        assert all(r.success for r in results)
        assert results[0].median_error == pytest.approx(0.0, abs=1e-9)
