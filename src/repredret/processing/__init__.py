"""Processing modules for the repredret model build pipeline"""

from .batch import BatchScheduler, resolve_batch_size
from .validation import BuildParameterValidator
from .pairs import collect_model_pairs, get_common_compounds
from .progress import ProgressTracker

__all__ = [
    "BatchScheduler",
    "resolve_batch_size",
    "BuildParameterValidator",
    "collect_model_pairs",
    "get_common_compounds",
    "ProgressTracker",
]
