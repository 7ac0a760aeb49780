"""Content fingerprints of datasets for incremental builds."""
import hashlib
from typing import Dict, Mapping

from repredret.domain.models import Dataset

def dataset_fingerprint(dataset: Dataset) -> str:
    """
    SHA-256 of the dataset's (compound, rt) table.

    Rows are sorted first, so reordering a source file does not change the
    fingerprint while any edit to a compound or a retention time does.
    """
    table = (
        dataset.rt_table[["compound", "rt"]]
        .sort_values(["compound", "rt"], kind="mergesort")
    )
    payload = table.to_csv(index=False, lineterminator="\n")
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()

def compute_fingerprints(datasets: Mapping[str, Dataset]) -> Dict[str, str]:
    return {dataset_id: dataset_fingerprint(ds) for dataset_id, ds in datasets.items()}
