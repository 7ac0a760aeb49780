"""Core domain models for the retention time model pipeline."""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from pathlib import Path

import pandas as pd

SUCCESS = "success"
FAILURE = "failure"

INDEX_COLUMNS = ["sys1_id", "sys2_id", "n_compounds", "median_ci_width", "median_error"]


@dataclass(eq=False)
class Dataset:
    """One chromatographic system: compound -> retention time.

    ``rt_table`` has the columns ``compound`` and ``rt`` with one row per
    compound.
    """
    dataset_id: str
    rt_table: pd.DataFrame
    method_type: Optional[str] = None

    @property
    def n_compounds(self) -> int:
        return len(self.rt_table)

    @property
    def compounds(self) -> set:
        return set(self.rt_table["compound"])


@dataclass
class ReportData:
    """Collection of datasets keyed by id, as returned by the loader."""
    datasets: Dict[str, Dataset] = field(default_factory=dict)
    source_path: Optional[Path] = None

    @property
    def dataset_ids(self) -> List[str]:
        return sorted(self.datasets)

    def __len__(self) -> int:
        return len(self.datasets)


@dataclass(eq=False)
class ModelPair:
    """Two distinct systems with their shared-compound matrix.

    ``rt_matrix`` has the columns ``compound``, ``rt_sys1`` and ``rt_sys2``.
    """
    sys1_id: str
    sys2_id: str
    rt_matrix: pd.DataFrame

    @property
    def key(self) -> tuple:
        return (self.sys1_id, self.sys2_id)

    @property
    def n_compounds(self) -> int:
        return len(self.rt_matrix)

    @property
    def model_dir_name(self) -> str:
        return model_dir_name(self.sys1_id, self.sys2_id)


def model_dir_name(sys1_id: str, sys2_id: str) -> str:
    """Directory name of an exported model under the export directory."""
    return f"{sys1_id}_to_{sys2_id}"


@dataclass
class ModelFit:
    """Output of a model builder for a single pair."""
    status: str
    sys1_id: str
    sys2_id: str
    n_points: int = 0
    stats: Dict[str, float] = field(default_factory=dict)
    predictions: Optional[pd.DataFrame] = None
    method: Optional[str] = None
    alpha: Optional[float] = None
    message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == SUCCESS


@dataclass(frozen=True)
class ModelResult:
    """Summary of one pair's build, successful or not."""
    status: str
    sys1_id: str
    sys2_id: str
    n_compounds: Optional[int] = None
    median_ci_width: Optional[float] = None
    median_error: Optional[float] = None
    message: Optional[str] = None
    from_cache: bool = False

    @property
    def success(self) -> bool:
        return self.status == SUCCESS

    @property
    def key(self) -> tuple:
        return (self.sys1_id, self.sys2_id)

    @classmethod
    def succeeded(cls, sys1_id: str, sys2_id: str, fit: ModelFit) -> "ModelResult":
        """Success result for the pair (sys1_id, sys2_id); ids in ``fit`` are not used."""
        return cls(
            status=SUCCESS,
            sys1_id=sys1_id,
            sys2_id=sys2_id,
            n_compounds=fit.n_points,
            median_ci_width=fit.stats.get("median_ci_width"),
            median_error=fit.stats.get("median_error"),
        )

    @classmethod
    def failed(cls, sys1_id: str, sys2_id: str, message: Optional[str]) -> "ModelResult":
        return cls(status=FAILURE, sys1_id=sys1_id, sys2_id=sys2_id, message=message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON storage."""
        if self.success:
            return {
                "status": self.status,
                "sys1_id": self.sys1_id,
                "sys2_id": self.sys2_id,
                "n_compounds": self.n_compounds,
                "median_ci_width": self.median_ci_width,
                "median_error": self.median_error,
            }
        return {
            "status": self.status,
            "sys1_id": self.sys1_id,
            "sys2_id": self.sys2_id,
            "message": self.message,
        }


@dataclass(frozen=True)
class ModelCacheEntry:
    """A pair's last recorded result in the build cache."""
    sys1_id: str
    sys2_id: str
    status: str
    sys1_fingerprint: str
    sys2_fingerprint: str
    method: str
    alpha: float
    n_compounds: Optional[int] = None
    median_ci_width: Optional[float] = None
    median_error: Optional[float] = None
    message: Optional[str] = None

    def matches(self, sys1_fingerprint: str, sys2_fingerprint: str, method: str, alpha: float) -> bool:
        """Whether this entry was built from the same inputs and parameters."""
        return (
            self.sys1_fingerprint == sys1_fingerprint
            and self.sys2_fingerprint == sys2_fingerprint
            and self.method == method
            and abs(self.alpha - alpha) < 1e-12
        )

    def to_result(self) -> ModelResult:
        return ModelResult(
            status=self.status,
            sys1_id=self.sys1_id,
            sys2_id=self.sys2_id,
            n_compounds=self.n_compounds,
            median_ci_width=self.median_ci_width,
            median_error=self.median_error,
            message=self.message,
            from_cache=True,
        )


@dataclass
class DatasetChanges:
    """Classification of the current datasets against the build cache."""
    new_ids: List[str] = field(default_factory=list)
    changed_ids: List[str] = field(default_factory=list)
    unchanged_ids: List[str] = field(default_factory=list)
    removed_ids: List[str] = field(default_factory=list)

    @property
    def dirty_ids(self) -> List[str]:
        """Datasets whose models must be rebuilt."""
        return self.new_ids + self.changed_ids

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "new": list(self.new_ids),
            "changed": list(self.changed_ids),
            "unchanged": list(self.unchanged_ids),
            "removed": list(self.removed_ids),
        }


@dataclass
class BuildStats:
    """Summary statistics of a build run."""
    total_pairs: int = 0
    successful: int = 0
    success_rate: float = 0.0
    failed: int = 0
    built: int = 0
    cached: int = 0
    median_ci_width: Optional[float] = None
    mean_ci_width: Optional[float] = None
    median_error: Optional[float] = None
    mean_error: Optional[float] = None
    elapsed_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "total_pairs": self.total_pairs,
            "successful": self.successful,
            "success_rate": self.success_rate,
            "failed": self.failed,
            "built": self.built,
            "cached": self.cached,
            "elapsed_seconds": self.elapsed_seconds,
        }
        if self.successful > 0:
            out.update({
                "median_ci_width": self.median_ci_width,
                "mean_ci_width": self.mean_ci_width,
                "median_error": self.median_error,
                "mean_error": self.mean_error,
            })
        return out


@dataclass
class BuildResult:
    """Everything a build run produces."""
    models: List[ModelResult]
    index: pd.DataFrame
    stats: BuildStats
    changes: Optional[DatasetChanges] = None
    index_paths: Optional[tuple] = None

    @property
    def successful(self) -> List[ModelResult]:
        return [m for m in self.models if m.success]

    @property
    def failed(self) -> List[ModelResult]:
        return [m for m in self.models if not m.success]
