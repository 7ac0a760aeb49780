"""Core domain models."""

from .models import (
    Dataset,
    ReportData,
    ModelPair,
    ModelFit,
    ModelResult,
    ModelCacheEntry,
    DatasetChanges,
    BuildStats,
    BuildResult,
)

__all__ = [
    "Dataset",
    "ReportData",
    "ModelPair",
    "ModelFit",
    "ModelResult",
    "ModelCacheEntry",
    "DatasetChanges",
    "BuildStats",
    "BuildResult",
]
