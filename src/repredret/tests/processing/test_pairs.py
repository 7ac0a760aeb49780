import pandas as pd
import pytest

from repredret.domain.models import Dataset
from repredret.processing.pairs import collect_model_pairs, get_common_compounds


def _ds(dataset_id, compounds, method_type=None, offset=0.0):
    return Dataset(
        dataset_id,
        pd.DataFrame({"compound": compounds, "rt": [i + offset for i in range(len(compounds))]}),
        method_type=method_type,
    )


@pytest.fixture
def datasets():
    shared = [f"C{i:02d}" for i in range(12)]
    return {
        "b": _ds("b", shared, "RP", offset=1.0),
        "a": _ds("a", shared + ["X"], "RP"),
        "c": _ds("c", shared[:5] + ["Y", "Z"], "HILIC"),
        "d": _ds("d", shared, "HILIC", offset=2.0),
    }


class TestGetCommonCompounds:
    """Test shared compound matrices."""

    def test_inner_join_sorted(self):
        """Test only shared compounds are kept, sorted."""
        ds1 = _ds("1", ["B", "A", "C"])
        ds2 = _ds("2", ["C", "A", "D"], offset=10.0)
        common = get_common_compounds(ds1, ds2)
        assert list(common.columns) == ["compound", "rt_sys1", "rt_sys2"]
        assert common["compound"].tolist() == ["A", "C"]
        assert common["rt_sys1"].tolist() == [1.0, 2.0]
        assert common["rt_sys2"].tolist() == [11.0, 10.0]


class TestCollectModelPairs:
    """Test candidate pair collection."""

    def test_ordered_pairs_in_id_order(self, datasets):
        """Test ordered pairs come in dataset id order."""
        pairs = collect_model_pairs(datasets, min_compounds=10)
        assert [p.key for p in pairs] == [
            ("a", "b"), ("a", "d"),
            ("b", "a"), ("b", "d"),
            ("d", "a"), ("d", "b"),
        ]
        assert all(p.n_compounds == 12 for p in pairs)

    def test_threshold_is_inclusive(self, datasets):
        """Test a pair exactly at the threshold is kept."""
        keys = {p.key for p in collect_model_pairs(datasets, min_compounds=5)}
        assert ("a", "c") in keys and ("c", "a") in keys

        keys = {p.key for p in collect_model_pairs(datasets, min_compounds=6)}
        assert ("a", "c") not in keys

    def test_no_self_pairs(self, datasets):
        """Test a dataset is never paired with itself."""
        assert all(p.sys1_id != p.sys2_id for p in collect_model_pairs(datasets, min_compounds=1))

    def test_method_match(self, datasets):
        """Test method matching skips differing types."""
        keys = {p.key for p in collect_model_pairs(datasets, min_compounds=10, method_match=True)}
        assert keys == {("a", "b"), ("b", "a")}

    def test_method_match_keeps_unknown_types(self, datasets):
        """Test method matching keeps datasets of unknown type."""
        datasets["d"].method_type = None
        keys = {p.key for p in collect_model_pairs(datasets, min_compounds=10, method_match=True)}
        assert ("a", "d") in keys and ("d", "b") in keys

    def test_single_dataset(self):
        """Test one dataset gives no pairs."""
        assert collect_model_pairs({"a": _ds("a", ["A"])}, min_compounds=1) == []
