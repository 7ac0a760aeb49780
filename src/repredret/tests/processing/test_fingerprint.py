import pandas as pd

from repredret.domain.models import Dataset
from repredret.processing.fingerprint import dataset_fingerprint, compute_fingerprints


def _ds(rows, dataset_id="a"):
    return Dataset(dataset_id, pd.DataFrame(rows, columns=["compound", "rt"]))


def test_stable_under_row_order():
    """Test row order does not change the fingerprint."""
    fp1 = dataset_fingerprint(_ds([("A", 1.0), ("B", 2.0)]))
    fp2 = dataset_fingerprint(_ds([("B", 2.0), ("A", 1.0)]))
    assert fp1 == fp2
    assert len(fp1) == 64


def test_changes_with_content():
    """Test content edits change the fingerprint."""
    base = dataset_fingerprint(_ds([("A", 1.0), ("B", 2.0)]))
    assert dataset_fingerprint(_ds([("A", 1.0), ("B", 2.5)])) != base
    assert dataset_fingerprint(_ds([("A", 1.0), ("C", 2.0)])) != base
    assert dataset_fingerprint(_ds([("A", 1.0)])) != base


def test_independent_of_dataset_id():
    """Test the dataset id is not part of the fingerprint."""
    assert dataset_fingerprint(_ds([("A", 1.0)], "x")) == dataset_fingerprint(_ds([("A", 1.0)], "y"))


def test_compute_fingerprints_keys():
    """Test fingerprints are keyed by dataset id."""
    fps = compute_fingerprints({"x": _ds([("A", 1.0)], "x"), "y": _ds([("B", 1.0)], "y")})
    assert set(fps) == {"x", "y"}
    assert fps["x"] != fps["y"]


def test_detects_small_rt_edits():
    """Edits past the tenth significant digit still change the fingerprint."""
    base = dataset_fingerprint(_ds([("A", 12.345678901)]))
    assert dataset_fingerprint(_ds([("A", 12.3456789012)])) != base
