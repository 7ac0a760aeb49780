"""Loading retention time datasets from a directory of per-system tables.

Layout (one dataset per table, sub-directories optional)::

    data/0001/0001_rtdata_canonical_success.tsv
    data/0001/0001_metadata.tsv        # optional, provides the method type
    data/0002_rtdata.csv

The dataset id is the file name up to ``_rtdata``. When several tables share
an id, the first in sorted order wins.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd

from repredret.domain.models import Dataset, ReportData
from repredret.domain.exceptions import (
    DatasetNotFoundError,
    InvalidDatasetError,
    ValidationError,
)

logger = logging.getLogger(__name__)

RT_TABLE_MARKER = "_rtdata"
RT_TABLE_SUFFIXES = (".tsv", ".csv")
RT_COLUMN = "rt"
COMPOUND_COLUMNS = ("inchikey.std", "pubchem.inchikey", "inchikey", "compound", "name")
METHOD_COLUMNS = ("column.type", "method.type")


def discover_dataset_files(data_dir: Path) -> Dict[str, Path]:
    """Map dataset id -> retention time table under ``data_dir`` (recursive)."""
    found: Dict[str, Path] = {}
    candidates = sorted(
        p for p in Path(data_dir).rglob(f"*{RT_TABLE_MARKER}*")
        if p.is_file() and p.suffix.lower() in RT_TABLE_SUFFIXES
    )
    for path in candidates:
        dataset_id = path.name.split(RT_TABLE_MARKER, 1)[0]
        if not dataset_id:
            logger.warning("Skipping table without dataset id: %s", path)
            continue
        if dataset_id in found:
            logger.debug("Dataset %s already loaded from %s, ignoring %s", dataset_id, found[dataset_id], path)
            continue
        found[dataset_id] = path
    return found


def _read_table(path: Path) -> pd.DataFrame:
    sep = "\t" if path.suffix.lower() == ".tsv" else ","
    return pd.read_csv(path, sep=sep, dtype=str, keep_default_na=True)


def read_rt_table(path: Path, compound_column: Optional[str] = None) -> pd.DataFrame:
    """
    Read one retention time table into the canonical ``compound, rt`` frame.

    Rows without a compound or with a non-numeric RT are dropped; duplicate
    compounds collapse to their median RT.
    """
    try:
        raw = _read_table(path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise InvalidDatasetError(str(path), f"unreadable table ({e})") from e

    if RT_COLUMN not in raw.columns:
        raise InvalidDatasetError(str(path), f"missing '{RT_COLUMN}' column")

    if compound_column is not None:
        if compound_column not in raw.columns:
            raise InvalidDatasetError(str(path), f"missing compound column '{compound_column}'")
        key = compound_column
    else:
        key = next((c for c in COMPOUND_COLUMNS if c in raw.columns), None)
        if key is None:
            raise InvalidDatasetError(
                str(path), f"no compound column (looked for {', '.join(COMPOUND_COLUMNS)})"
            )

    table = pd.DataFrame({
        "compound": raw[key].astype("string").str.strip(),
        "rt": pd.to_numeric(raw[RT_COLUMN], errors="coerce"),
    })
    table = table[table["compound"].notna() & (table["compound"] != "") & table["rt"].notna()]
    table = (
        table.groupby("compound", sort=True)["rt"].median()
        .reset_index()
        .astype({"compound": str, "rt": float})
    )
    return table


def read_method_type(table_path: Path, dataset_id: str) -> Optional[str]:
    """Method type (RP, HILIC, ...) from ``<id>_metadata.tsv`` next to the table, if any."""
    meta_path = table_path.parent / f"{dataset_id}_metadata.tsv"
    if not meta_path.is_file():
        return None
    try:
        meta = _read_table(meta_path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        logger.warning("Could not read metadata for %s: %s", dataset_id, e)
        return None
    for column in METHOD_COLUMNS:
        if column in meta.columns:
            values = meta[column].dropna().astype(str).str.strip()
            values = values[values != ""]
            if not values.empty:
                return values.iloc[0].upper()
    return None


def load_report_data(
    path: str | Path,
    method_types: Optional[Iterable[str]] = None,
    compound_column: Optional[str] = None,
) -> ReportData:
    """
    Load every dataset under ``path``.

    Args:
        path: Data directory
        method_types: Keep only datasets of these method types (case-insensitive);
            datasets without a method type are dropped when a filter is given
        compound_column: Column identifying compounds; auto-detected when None

    Raises:
        DatasetNotFoundError: ``path`` is not a directory
        ValidationError: no usable dataset was found
    """
    data_dir = Path(path).expanduser()
    if not data_dir.is_dir():
        raise DatasetNotFoundError(str(data_dir))

    wanted = {m.upper() for m in method_types} if method_types else None
    files = discover_dataset_files(data_dir)

    datasets: Dict[str, Dataset] = {}
    skipped_invalid: List[str] = []
    skipped_method = 0

    for dataset_id, table_path in files.items():
        method_type = read_method_type(table_path, dataset_id)
        if wanted is not None and (method_type is None or method_type not in wanted):
            skipped_method += 1
            continue
        try:
            rt_table = read_rt_table(table_path, compound_column=compound_column)
        except InvalidDatasetError as e:
            logger.warning("Skipping dataset %s: %s", dataset_id, e.message)
            skipped_invalid.append(dataset_id)
            continue
        if rt_table.empty:
            logger.warning("Skipping dataset %s: no usable retention times", dataset_id)
            skipped_invalid.append(dataset_id)
            continue
        datasets[dataset_id] = Dataset(dataset_id=dataset_id, rt_table=rt_table, method_type=method_type)

    if skipped_method:
        logger.info("Filtered out %d datasets by method type (keeping %s)", skipped_method, sorted(wanted))
    if skipped_invalid:
        logger.warning("Skipped %d invalid datasets: %s", len(skipped_invalid), skipped_invalid[:5])

    if not datasets:
        raise ValidationError(
            f"No usable datasets found in {data_dir}",
            field_name="data_dir",
            field_value=str(data_dir),
        ).add_suggestion(f"Tables must be named '<id>{RT_TABLE_MARKER}*.tsv' or '.csv'")

    logger.info("Loaded %d datasets from %s", len(datasets), data_dir)
    return ReportData(datasets=dict(sorted(datasets.items())), source_path=data_dir)
