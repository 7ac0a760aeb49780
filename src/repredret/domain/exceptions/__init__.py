"""Custom exceptions for the repredret package."""

# Base exceptions
from .base import (
    RePredRetError,
    RetryableError,
    ConfigurationError,
)

# Processing exceptions
from .processing import (
    ProcessingError,
    BatchProcessingError,
    CacheError,
    PipelineConfigurationError,
    ModelBuildError,
)

# Validation exceptions
from .validation import (
    ValidationError,
    FileValidationError,
    DatasetNotFoundError,
    InvalidDatasetError,
    ParameterValidationError,
)

__all__ = [
    # Base
    "RePredRetError",
    "RetryableError",
    "ConfigurationError",

    # Processing
    "ProcessingError",
    "BatchProcessingError",
    "CacheError",
    "PipelineConfigurationError",
    "ModelBuildError",

    # Validation
    "ValidationError",
    "FileValidationError",
    "DatasetNotFoundError",
    "InvalidDatasetError",
    "ParameterValidationError",
]
