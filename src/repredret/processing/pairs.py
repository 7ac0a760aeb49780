"""Candidate model pairs between systems."""
import logging
from typing import List, Mapping

import pandas as pd

from repredret.domain.models import Dataset, ModelPair

logger = logging.getLogger(__name__)

def get_common_compounds(ds1: Dataset, ds2: Dataset) -> pd.DataFrame:
    """
    Compounds measured on both systems.

    Returns:
        DataFrame with columns compound, rt_sys1, rt_sys2 sorted by compound
    """
    merged = ds1.rt_table[["compound", "rt"]].merge(
        ds2.rt_table[["compound", "rt"]],
        on="compound",
        how="inner",
        suffixes=("_sys1", "_sys2"),
    )
    return merged.sort_values("compound", kind="mergesort").reset_index(drop=True)

def _methods_compatible(ds1: Dataset, ds2: Dataset) -> bool:
    if ds1.method_type is None or ds2.method_type is None:
        return True
    return ds1.method_type == ds2.method_type

def collect_model_pairs(
    datasets: Mapping[str, Dataset],
    min_compounds: int = 10,
    method_match: bool = False,
) -> List[ModelPair]:
    """
    Every ordered pair of distinct systems sharing at least ``min_compounds`` compounds.

    Pairs are produced in (sys1_id, sys2_id) order over sorted dataset ids.
    With ``method_match`` systems of different known method types are not paired.
    """
    ids = sorted(datasets)
    compound_sets = {i: datasets[i].compounds for i in ids}

    pairs: List[ModelPair] = []
    skipped_overlap = 0
    skipped_method = 0

    for id1 in ids:
        for id2 in ids:
            if id1 == id2:
                continue
            if method_match and not _methods_compatible(datasets[id1], datasets[id2]):
                skipped_method += 1
                continue
            # cheap set check before building the matrix
            if len(compound_sets[id1] & compound_sets[id2]) < min_compounds:
                skipped_overlap += 1
                continue
            rt_matrix = get_common_compounds(datasets[id1], datasets[id2])
            pairs.append(ModelPair(sys1_id=id1, sys2_id=id2, rt_matrix=rt_matrix))

    logger.info(
        "Collected %d model pairs from %d datasets (below min_compounds=%d: %d, method mismatch: %d)",
        len(pairs), len(ids), min_compounds, skipped_overlap, skipped_method,
    )
    return pairs
