import pytest
import sqlite3

from repredret.data.cache_schema import create_cache
from repredret.data.cache_repo import (
    load_fingerprints,
    upsert_datasets,
    delete_datasets,
    load_model_entries,
    pairs_touching,
    delete_model_entries,
    record_model_results,
    DATASET_UPSERT_SQL,
    MODEL_UPSERT_SQL,
)
from repredret.domain.models import ModelResult, SUCCESS, FAILURE


@pytest.fixture
def test_db():
    """In-memory build cache with the real schema."""
    conn = sqlite3.connect(":memory:")
    create_cache(conn)
    yield conn
    conn.close()


def _ok(s1, s2, n=12, ci=1.2, err=0.3, from_cache=False):
    return ModelResult(status=SUCCESS, sys1_id=s1, sys2_id=s2, n_compounds=n,
                       median_ci_width=ci, median_error=err, from_cache=from_cache)


FPS = {"a": "fa", "b": "fb", "c": "fc"}


class TestDatasets:
    """Test dataset fingerprint rows."""

    def test_upsert_and_load(self, test_db):
        """Test fingerprints round trip through the cache."""
        assert upsert_datasets(test_db, [("a", "fa", 10), ("b", "fb", 20)]) == 2
        assert load_fingerprints(test_db) == {"a": "fa", "b": "fb"}

    def test_upsert_overwrites(self, test_db):
        """Test upserting a dataset replaces its row."""
        upsert_datasets(test_db, [("a", "fa", 10)])
        upsert_datasets(test_db, [("a", "fa2", 11)])
        assert load_fingerprints(test_db) == {"a": "fa2"}
        n = test_db.execute("SELECT n_compounds FROM datasets WHERE dataset_id='a'").fetchone()[0]
        assert n == 11

    def test_empty_upsert(self, test_db):
        """Test upserting nothing writes nothing."""
        assert upsert_datasets(test_db, []) == 0

    def test_delete(self, test_db):
        """Test deleting datasets."""
        upsert_datasets(test_db, [("a", "fa", 10), ("b", "fb", 20)])
        delete_datasets(test_db, ["a"])
        assert load_fingerprints(test_db) == {"b": "fb"}


class TestModels:
    """Test cached model results."""

    def test_record_and_load(self, test_db):
        """Test recorded results carry fingerprints and parameters."""
        written = record_model_results(
            test_db,
            [_ok("a", "b"), ModelResult.failed("b", "a", "too few points")],
            FPS, method="fast_ci", alpha=0.05,
        )
        assert written == 2

        entries = load_model_entries(test_db)
        entry = entries[("a", "b")]
        assert entry.status == SUCCESS
        assert entry.sys1_fingerprint == "fa"
        assert entry.sys2_fingerprint == "fb"
        assert entry.method == "fast_ci"
        assert entry.alpha == pytest.approx(0.05)
        assert entry.n_compounds == 12

        failed = entries[("b", "a")]
        assert failed.status == FAILURE
        assert failed.message == "too few points"
        assert failed.n_compounds is None

    def test_empty_cache_has_no_entries(self, test_db):
        """Test a new cache has no model entries."""
        assert load_model_entries(test_db) == {}

    def test_cached_results_not_rewritten(self, test_db):
        """Test results reused from the cache are not written again."""
        written = record_model_results(test_db, [_ok("a", "b", from_cache=True)], FPS,
                                       method="fast_ci", alpha=0.05)
        assert written == 0
        assert load_model_entries(test_db) == {}

    def test_record_overwrites_pair(self, test_db):
        """Test recording a pair again replaces its entry."""
        record_model_results(test_db, [_ok("a", "b", ci=1.0)], FPS, method="fast_ci", alpha=0.05)
        record_model_results(test_db, [_ok("a", "b", ci=2.0)], FPS, method="bootstrap", alpha=0.1)
        entry = load_model_entries(test_db)[("a", "b")]
        assert entry.median_ci_width == 2.0
        assert entry.method == "bootstrap"

    def test_chunked_writes(self, test_db):
        """Test writes split into chunks store every result."""
        results = [_ok("a", "b"), _ok("b", "a"), _ok("a", "c"), _ok("c", "a"), _ok("b", "c")]
        assert record_model_results(test_db, results, FPS, method="fast_ci", alpha=0.05, chunk_size=2) == 5
        assert len(load_model_entries(test_db)) == 5

    def test_pairs_touching_and_delete(self, test_db):
        """Test finding and deleting pairs that involve a dataset."""
        results = [_ok("a", "b"), _ok("b", "a"), _ok("b", "c"), _ok("c", "b")]
        record_model_results(test_db, results, FPS, method="fast_ci", alpha=0.05)

        touching = pairs_touching(test_db, ["a"])
        assert touching == [("a", "b"), ("b", "a")]
        assert pairs_touching(test_db, []) == []

        assert delete_model_entries(test_db, touching) == 2
        assert set(load_model_entries(test_db)) == {("b", "c"), ("c", "b")}

    def test_status_check_constraint(self, test_db):
        """Test the schema rejects unknown statuses."""
        with pytest.raises(sqlite3.IntegrityError):
            test_db.execute(
                MODEL_UPSERT_SQL,
                ("a", "b", "maybe", "fa", "fb", "fast_ci", 0.05, None, None, None, None),
            )


def test_sql_constants_are_upserts():
    """Test the write statements are upserts."""
    assert "ON CONFLICT(dataset_id)" in DATASET_UPSERT_SQL
    assert "ON CONFLICT(sys1_id, sys2_id)" in MODEL_UPSERT_SQL
