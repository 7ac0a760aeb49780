"""Per-pair model fitting and export."""

from .builder import build_model
from .export import export_model, artifacts_exist, remove_model

__all__ = [
    "build_model",
    "export_model",
    "artifacts_exist",
    "remove_model",
]
