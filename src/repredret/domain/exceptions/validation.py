"""Input validation exceptions."""

from typing import Optional, Any
from .base import RePredRetError

class ValidationError(RePredRetError):
    """Base class for validation errors."""

    def __init__(
        self,
        message: str,
        *,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if field_name:
            self.add_context('field_name', field_name)
        if field_value is not None:
            self.add_context('field_value', str(field_value))

    def _get_default_error_code(self) -> str:
        return "VALIDATION_ERROR"


class FileValidationError(ValidationError):
    """Raised when file validation fails."""

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        validation_type: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if file_path:
            self.add_context('file_path', file_path)
        if validation_type:
            self.add_context('validation_type', validation_type)

    def _get_default_error_code(self) -> str:
        return "FILE_VALIDATION_FAILED"


class DatasetNotFoundError(FileValidationError):
    """Raised when a dataset directory or file doesn't exist."""
    def __init__(self, file_path: str, **kwargs):
        message = f"Dataset path not found: {file_path}"
        super().__init__(message, file_path=file_path, validation_type="existence_check", **kwargs)
        self.add_suggestion("Check that the data directory path is correct and accessible")
    def _get_default_error_code(self) -> str:
        return "DATASET_NOT_FOUND"


class InvalidDatasetError(FileValidationError):
    """Raised when a retention time table cannot be parsed."""
    def __init__(
        self,
        file_path: str,
        reason: str,
        **kwargs
    ):
        message = f"Invalid retention time table {file_path}: {reason}"
        super().__init__(message, file_path=file_path, validation_type="format_check", **kwargs)
        self.add_context('reason', reason)
        self.add_suggestion("Tables need a compound column and a numeric 'rt' column")
    def _get_default_error_code(self) -> str:
        return "INVALID_DATASET"


class ParameterValidationError(ValidationError):
    """Raised when parameter validation fails."""
    def __init__(
        self,
        parameter_name: str,
        parameter_value: Any,
        expected_type: Optional[str] = None,
        **kwargs
    ):
        message = f"Invalid parameter '{parameter_name}': {parameter_value}"
        super().__init__(message, field_name=parameter_name, field_value=str(parameter_value), **kwargs)
        if expected_type:
            self.add_context('expected_type', expected_type)
        self.add_suggestion(f"Check the value and type of parameter '{parameter_name}'")
    def _get_default_error_code(self) -> str:
        return "PARAMETER_VALIDATION_FAILED"
