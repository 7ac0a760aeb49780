"""Processing pipeline exceptions."""

from typing import Optional
from .base import RePredRetError, RetryableError

class ProcessingError(RePredRetError):
    """Base class for processing pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        batch_id: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if stage:
            self.add_context('processing_stage', stage)
        if batch_id:
            self.add_context('batch_id', batch_id)


class BatchProcessingError(ProcessingError):
    """Raised when a whole batch of model pairs cannot be run."""

    def __init__(
        self,
        message: str,
        *,
        batch_size: Optional[int] = None,
        failed_count: Optional[int] = None,
        **kwargs
    ):
        super().__init__(message, stage="batch_processing", **kwargs)
        if batch_size:
            self.add_context('batch_size', batch_size)
        if failed_count:
            self.add_context('failed_models', failed_count)

        self.add_suggestion("Try reducing the number of workers or the batch size")
        self.add_suggestion("Check system resources (memory, disk space)")

    def _get_default_error_code(self) -> str:
        return "BATCH_PROCESSING_FAILED"


class CacheError(RetryableError, ProcessingError):
    """Raised when build cache operations fail."""

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        cache_key: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, stage="caching", **kwargs)
        if operation:
            self.add_context('cache_operation', operation)
        if cache_key:
            self.add_context('cache_key', cache_key)

        self.add_suggestion("Check the build cache database")
        self.add_suggestion("Re-run with --fresh-cache to rebuild everything")

    def _get_default_error_code(self) -> str:
        return "CACHE_OPERATION_FAILED"


class PipelineConfigurationError(ProcessingError):
    """Raised when pipeline configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_field: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, stage="configuration", **kwargs)
        if config_field:
            self.add_context('config_field', config_field)
        if expected_type:
            self.add_context('expected_type', expected_type)

        self.add_suggestion("Check pipeline configuration")
        self.add_suggestion("Verify all required parameters are set")

    def _get_default_error_code(self) -> str:
        return "PIPELINE_CONFIG_INVALID"


class ModelBuildError(ProcessingError):
    """Raised by a model builder that cannot fit a pair."""

    def __init__(
        self,
        message: str,
        *,
        sys1_id: Optional[str] = None,
        sys2_id: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, stage="model_build", **kwargs)
        if sys1_id:
            self.add_context('sys1_id', sys1_id)
        if sys2_id:
            self.add_context('sys2_id', sys2_id)

    def _get_default_error_code(self) -> str:
        return "MODEL_BUILD_FAILED"
