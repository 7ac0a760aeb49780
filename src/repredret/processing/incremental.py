"""Incremental builds: decide which pairs need (re)building against the build cache."""
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from repredret.data import cache_repo
from repredret.domain.models import (
    Dataset,
    DatasetChanges,
    ModelCacheEntry,
    ModelPair,
    ModelResult,
)
from repredret.modeling.export import artifacts_exist, remove_model

logger = logging.getLogger(__name__)

PairKey = Tuple[str, str]


def analyze_dataset_changes(
    fingerprints: Mapping[str, str],
    cached_fingerprints: Mapping[str, str],
) -> DatasetChanges:
    """
    Classify current datasets against the fingerprints recorded in the cache.

    Returns:
        DatasetChanges with sorted id lists
    """
    changes = DatasetChanges()
    for dataset_id in sorted(fingerprints):
        cached = cached_fingerprints.get(dataset_id)
        if cached is None:
            changes.new_ids.append(dataset_id)
        elif cached != fingerprints[dataset_id]:
            changes.changed_ids.append(dataset_id)
        else:
            changes.unchanged_ids.append(dataset_id)
    changes.removed_ids = sorted(set(cached_fingerprints) - set(fingerprints))
    return changes


def update_dataset_cache(
    conn: sqlite3.Connection,
    datasets: Mapping[str, Dataset],
    fingerprints: Mapping[str, str],
    dataset_ids: Optional[Iterable[str]] = None,
) -> int:
    """Record fingerprints of ``dataset_ids`` (all datasets when None)."""
    ids = sorted(datasets) if dataset_ids is None else list(dataset_ids)
    rows = [(i, fingerprints[i], datasets[i].n_compounds) for i in ids]
    return cache_repo.upsert_datasets(conn, rows)


def _drop_models(
    conn: sqlite3.Connection,
    keys: List[PairKey],
    export_dir: Optional[Path],
) -> int:
    if export_dir is not None:
        for sys1_id, sys2_id in keys:
            remove_model(export_dir, sys1_id, sys2_id)
    return cache_repo.delete_model_entries(conn, keys)


def purge_removed_models(
    conn: sqlite3.Connection,
    removed_ids: Iterable[str],
    export_dir: Optional[Path],
) -> int:
    """
    Forget datasets that disappeared from the input, together with every
    cached model (and exported model directory) that involves them.

    Returns:
        Number of model entries removed
    """
    removed_ids = list(removed_ids)
    if not removed_ids:
        return 0
    keys = cache_repo.pairs_touching(conn, removed_ids)
    n = _drop_models(conn, keys, export_dir)
    cache_repo.delete_datasets(conn, removed_ids)
    logger.info("Purged %d datasets and %d cached models", len(removed_ids), n)
    return n


def prune_stale_models(
    conn: sqlite3.Connection,
    candidate_keys: Set[PairKey],
    export_dir: Optional[Path],
) -> int:
    """Drop cached models of pairs that are no longer candidates."""
    stale = sorted(k for k in cache_repo.load_model_entries(conn) if k not in candidate_keys)
    if not stale:
        return 0
    n = _drop_models(conn, stale, export_dir)
    logger.info("Pruned %d cached models that are no longer candidate pairs", n)
    return n


@dataclass
class BuildPlan:
    """Pairs that must be built and results that can be reused as they are."""
    to_build: List[ModelPair] = field(default_factory=list)
    reused: Dict[PairKey, ModelResult] = field(default_factory=dict)

    @property
    def n_reused(self) -> int:
        return len(self.reused)


def _reusable(
    entry: Optional[ModelCacheEntry],
    pair: ModelPair,
    fingerprints: Mapping[str, str],
    method: str,
    alpha: float,
    export_dir: Optional[Path],
    save_json: bool,
) -> bool:
    if entry is None:
        return False
    if not entry.matches(fingerprints[pair.sys1_id], fingerprints[pair.sys2_id], method, alpha):
        return False
    if entry.status == "success":
        return export_dir is not None and artifacts_exist(export_dir, pair.sys1_id, pair.sys2_id, save_json)
    # failures are remembered, not retried
    return True


def plan_builds(
    pairs: List[ModelPair],
    entries: Mapping[PairKey, ModelCacheEntry],
    fingerprints: Mapping[str, str],
    *,
    method: str,
    alpha: float,
    export_dir: Optional[Path],
    save_json: bool = True,
) -> BuildPlan:
    """
    Split candidate pairs into those to build and those whose cached result is
    still valid. Pair order is kept in ``to_build``.
    """
    plan = BuildPlan()
    for pair in pairs:
        entry = entries.get(pair.key)
        if _reusable(entry, pair, fingerprints, method, alpha, export_dir, save_json):
            plan.reused[pair.key] = entry.to_result()
        else:
            plan.to_build.append(pair)

    logger.info(
        "Build plan: %d to build, %d reused from cache (of %d pairs)",
        len(plan.to_build), plan.n_reused, len(pairs),
    )
    return plan
