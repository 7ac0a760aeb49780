# data/cache_repo.py
import sqlite3
from itertools import islice
from typing import Dict, Iterable, List, Tuple

from repredret.domain.models import ModelCacheEntry, ModelResult

PairKey = Tuple[str, str]


def load_fingerprints(conn: sqlite3.Connection) -> Dict[str, str]:
    """Fingerprint of every dataset recorded in the cache, keyed by dataset id."""
    cur = conn.execute("SELECT dataset_id, fingerprint FROM datasets;")
    return {dataset_id: fingerprint for dataset_id, fingerprint in cur.fetchall()}


DATASET_UPSERT_SQL = """
INSERT INTO datasets (dataset_id, fingerprint, n_compounds, updated_at)
VALUES (?, ?, ?, CURRENT_TIMESTAMP)
ON CONFLICT(dataset_id) DO UPDATE SET
    fingerprint = excluded.fingerprint,
    n_compounds = excluded.n_compounds,
    updated_at  = CURRENT_TIMESTAMP;
"""

def upsert_datasets(conn: sqlite3.Connection, rows: Iterable[Tuple[str, str, int]]) -> int:
    """
    rows are (dataset_id, fingerprint, n_compounds). Uses a single transaction.
    Returns the number of rows written.
    """
    rows = list(rows)
    if not rows:
        return 0
    with conn:
        conn.executemany(DATASET_UPSERT_SQL, rows)
    return len(rows)


def delete_datasets(conn: sqlite3.Connection, dataset_ids: Iterable[str]) -> None:
    ids = [(d,) for d in dataset_ids]
    if not ids:
        return
    with conn:
        conn.executemany("DELETE FROM datasets WHERE dataset_id = ?;", ids)


def load_model_entries(conn: sqlite3.Connection) -> Dict[PairKey, ModelCacheEntry]:
    """All cached pair results keyed by (sys1_id, sys2_id)."""
    cur = conn.execute(f"SELECT {_ENTRY_COLUMNS} FROM models;")
    entries = (_row_to_entry(row) for row in cur.fetchall())
    return {(e.sys1_id, e.sys2_id): e for e in entries}


def pairs_touching(conn: sqlite3.Connection, dataset_ids: Iterable[str]) -> List[PairKey]:
    """Cached pairs where either side is one of ``dataset_ids``."""
    ids = list(dict.fromkeys(dataset_ids))
    if not ids:
        return []
    placeholders = ",".join(["?"] * len(ids))
    sql = f"""
        SELECT sys1_id, sys2_id FROM models
        WHERE sys1_id IN ({placeholders}) OR sys2_id IN ({placeholders})
        ORDER BY sys1_id, sys2_id;
    """
    return [tuple(r) for r in conn.execute(sql, ids + ids).fetchall()]


def delete_model_entries(conn: sqlite3.Connection, keys: Iterable[PairKey]) -> int:
    keys = list(keys)
    if not keys:
        return 0
    with conn:
        conn.executemany("DELETE FROM models WHERE sys1_id = ? AND sys2_id = ?;", keys)
    return len(keys)


MODEL_UPSERT_SQL = """
INSERT INTO models (
    sys1_id, sys2_id, status, sys1_fingerprint, sys2_fingerprint,
    method, alpha, n_compounds, median_ci_width, median_error, message, built_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
ON CONFLICT(sys1_id, sys2_id) DO UPDATE SET
    status           = excluded.status,
    sys1_fingerprint = excluded.sys1_fingerprint,
    sys2_fingerprint = excluded.sys2_fingerprint,
    method           = excluded.method,
    alpha            = excluded.alpha,
    n_compounds      = excluded.n_compounds,
    median_ci_width  = excluded.median_ci_width,
    median_error     = excluded.median_error,
    message          = excluded.message,
    built_at         = CURRENT_TIMESTAMP;
"""

def record_model_results(
    conn: sqlite3.Connection,
    results: Iterable[ModelResult],
    fingerprints: Dict[str, str],
    *,
    method: str,
    alpha: float,
    chunk_size: int = 2000,
) -> int:
    """
    Store freshly built results together with the fingerprints they were built from.
    Results reused from the cache are not rewritten.
    """
    rows = (
        (
            r.sys1_id, r.sys2_id, r.status,
            fingerprints[r.sys1_id], fingerprints[r.sys2_id],
            method, float(alpha),
            r.n_compounds, r.median_ci_width, r.median_error, r.message,
        )
        for r in results if not r.from_cache
    )
    written = 0
    with conn:  # single transaction
        while True:
            batch = list(islice(rows, chunk_size))
            if not batch:
                break
            conn.executemany(MODEL_UPSERT_SQL, batch)
            written += len(batch)
    return written


_ENTRY_COLUMNS = """
    sys1_id, sys2_id, status, sys1_fingerprint, sys2_fingerprint, method, alpha,
    n_compounds, median_ci_width, median_error, message
"""

def _row_to_entry(row) -> ModelCacheEntry:
    (sys1_id, sys2_id, status, fp1, fp2, method, alpha,
     n_compounds, median_ci_width, median_error, message) = row
    return ModelCacheEntry(
        sys1_id=sys1_id,
        sys2_id=sys2_id,
        status=status,
        sys1_fingerprint=fp1,
        sys2_fingerprint=fp2,
        method=method,
        alpha=float(alpha),
        n_compounds=int(n_compounds) if n_compounds is not None else None,
        median_ci_width=median_ci_width,
        median_error=median_error,
        message=message,
    )
