# results/assemblers.py
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from repredret.domain.models import BuildStats, ModelResult, INDEX_COLUMNS

logger = logging.getLogger(__name__)

INDEX_CSV = "model_index.csv"
INDEX_JSON = "model_index.json"


def assemble_index(results: Iterable[ModelResult]) -> pd.DataFrame:
    """
    Index of successful models, one row per ordered pair, in result order.
    Always has the index columns, also when nothing succeeded.
    """
    rows = [
        {
            "sys1_id": r.sys1_id,
            "sys2_id": r.sys2_id,
            "n_compounds": r.n_compounds,
            "median_ci_width": r.median_ci_width,
            "median_error": r.median_error,
        }
        for r in results if r.success
    ]
    if not rows:
        return pd.DataFrame({
            "sys1_id": pd.Series(dtype="object"),
            "sys2_id": pd.Series(dtype="object"),
            "n_compounds": pd.Series(dtype="int64"),
            "median_ci_width": pd.Series(dtype="float64"),
            "median_error": pd.Series(dtype="float64"),
        })
    index = pd.DataFrame(rows, columns=INDEX_COLUMNS)
    index["n_compounds"] = index["n_compounds"].astype("int64")
    return index


def _round3(value: float) -> Optional[float]:
    return None if value is None or np.isnan(value) else round(float(value), 3)


def summarize(
    results: List[ModelResult],
    total_pairs: int,
    *,
    elapsed_seconds: float = 0.0,
) -> BuildStats:
    """
    Run statistics. CI width and error summaries are taken over the per-model
    medians of the successful models.
    """
    successful = [r for r in results if r.success]
    n_ok = len(successful)
    stats = BuildStats(
        total_pairs=total_pairs,
        successful=n_ok,
        success_rate=round(n_ok / total_pairs * 100, 1) if total_pairs else 0.0,
        failed=len(results) - n_ok,
        built=sum(1 for r in results if not r.from_cache),
        cached=sum(1 for r in results if r.from_cache),
        elapsed_seconds=round(elapsed_seconds, 3),
    )
    if n_ok:
        ci = np.array([r.median_ci_width for r in successful], dtype=float)
        err = np.array([r.median_error for r in successful], dtype=float)
        stats.median_ci_width = _round3(np.nanmedian(ci))
        stats.mean_ci_width = _round3(np.nanmean(ci))
        stats.median_error = _round3(np.nanmedian(err))
        stats.mean_error = _round3(np.nanmean(err))
    return stats


def write_index(index: pd.DataFrame, export_dir: str | Path) -> Tuple[Path, Path]:
    """Write the index as CSV and as a JSON array of records."""
    out = Path(export_dir)
    out.mkdir(parents=True, exist_ok=True)
    csv_path = out / INDEX_CSV
    json_path = out / INDEX_JSON

    index.to_csv(csv_path, index=False)
    records = json.loads(index.to_json(orient="records"))
    with open(json_path, "w", encoding="utf-8") as fh:
        json.dump(records, fh, indent=2)

    logger.info("Wrote model index with %d models to %s", len(index), out)
    return csv_path, json_path
