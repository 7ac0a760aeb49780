import json

import pandas as pd
import pytest

from repredret.domain.models import ModelResult, SUCCESS, INDEX_COLUMNS
from repredret.results import assemblers


def _ok(s1, s2, n, ci, err, from_cache=False):
    return ModelResult(status=SUCCESS, sys1_id=s1, sys2_id=s2, n_compounds=n,
                       median_ci_width=ci, median_error=err, from_cache=from_cache)


@pytest.fixture
def results():
    return [
        _ok("a", "b", 20, 1.0, 0.1),
        ModelResult.failed("a", "c", "too few points"),
        _ok("b", "a", 20, 2.0, 0.3, from_cache=True),
        _ok("c", "a", 12, 4.0, 0.5),
    ]


def test_assemble_index_only_successes_in_order(results):
    index = assemblers.assemble_index(results)
    assert list(index.columns) == INDEX_COLUMNS
    assert list(zip(index["sys1_id"], index["sys2_id"])) == [("a", "b"), ("b", "a"), ("c", "a")]
    assert index["n_compounds"].dtype == "int64"


def test_assemble_index_empty_has_columns():
    index = assemblers.assemble_index([ModelResult.failed("a", "b", "x")])
    assert list(index.columns) == INDEX_COLUMNS
    assert len(index) == 0


def test_summarize(results):
    stats = assemblers.summarize(results, total_pairs=4, elapsed_seconds=12.3456)
    assert stats.total_pairs == 4
    assert stats.successful == 3
    assert stats.failed == 1
    assert stats.success_rate == 75.0
    assert stats.built == 3
    assert stats.cached == 1
    assert stats.median_ci_width == 2.0
    assert stats.mean_ci_width == pytest.approx(2.333)
    assert stats.median_error == 0.3
    assert stats.mean_error == 0.3
    assert stats.elapsed_seconds == 12.346


def test_summarize_rounding():
    stats = assemblers.summarize([_ok("a", "b", 10, 1.0, 0.1), ModelResult.failed("b", "a", "x"),
                                  ModelResult.failed("a", "c", "x")], total_pairs=3)
    assert stats.success_rate == 33.3


def test_summarize_empty():
    stats = assemblers.summarize([], total_pairs=0)
    assert stats.to_dict()["success_rate"] == 0
    assert stats.successful == 0
    assert stats.median_ci_width is None


def test_write_index(tmp_path, results):
    index = assemblers.assemble_index(results)
    csv_path, json_path = assemblers.write_index(index, tmp_path / "out")

    assert csv_path.name == "model_index.csv"
    back = pd.read_csv(csv_path)
    assert back["sys1_id"].tolist() == ["a", "b", "c"]

    records = json.loads(json_path.read_text())
    assert records[0] == {"sys1_id": "a", "sys2_id": "b", "n_compounds": 20,
                          "median_ci_width": 1.0, "median_error": 0.1}
