"""Core configuration settings for repredret."""

import os
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from enum import Enum

from repredret.domain.exceptions import PipelineConfigurationError as ConfigurationError

logger = logging.getLogger(__name__)

class LogLevel(Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

class BuildMethod(Enum):
    """Prediction interval methods understood by the default model builder."""
    FAST_CI = "fast_ci"
    BOOTSTRAP = "bootstrap"

@dataclass
class ProcessingSettings:
    """Pair selection and scheduling configuration."""
    n_workers: int = field(default_factory=lambda: os.cpu_count() or 4)
    batch_size: Optional[int] = None  # None = auto
    min_compounds: int = 10
    method_match: bool = False
    sequential: bool = False

    def validate(self) -> None:
        """Validate processing settings."""
        if self.n_workers <= 0:
            raise ConfigurationError(
                "n_workers must be positive",
                config_field="processing.n_workers"
            )

        if self.batch_size is not None and self.batch_size <= 0:
            raise ConfigurationError(
                "batch_size must be positive",
                config_field="processing.batch_size"
            ).add_suggestion("Leave batch_size unset to size batches automatically")

        if self.min_compounds < 1:
            raise ConfigurationError(
                "min_compounds must be at least 1",
                config_field="processing.min_compounds"
            )

@dataclass
class ModelSettings:
    """Model fitting configuration."""
    method: BuildMethod = BuildMethod.FAST_CI
    alpha: float = 0.05

    def validate(self) -> None:
        """Validate model settings."""
        if not 0.0 < self.alpha < 1.0:
            raise ConfigurationError(
                f"alpha must lie strictly between 0 and 1, got {self.alpha}",
                config_field="model.alpha"
            ).add_suggestion("Use 0.05 for 95% prediction intervals")

@dataclass
class ExportSettings:
    """Export directory and build cache configuration."""
    export_dir: Optional[Path] = None
    save_json: bool = True
    fresh_cache: bool = False
    write_index: bool = True

    def validate(self) -> None:
        """Validate export settings."""
        if self.export_dir and self.export_dir.exists() and not self.export_dir.is_dir():
            raise ConfigurationError(
                f"Export path is not a directory: {self.export_dir}",
                config_field="export.export_dir"
            )

        if self.fresh_cache and not self.export_dir:
            raise ConfigurationError(
                "fresh_cache requires an export directory",
                config_field="export.fresh_cache"
            ).add_suggestion("Provide --export-dir, the build cache lives there")

@dataclass
class DataSettings:
    """Dataset source configuration."""
    data_dir: Optional[Path] = None
    method_types: List[str] = field(default_factory=list)
    compound_column: Optional[str] = None

    def validate(self) -> None:
        """Validate data settings."""
        if self.data_dir is None:
            raise ConfigurationError(
                "A data directory must be specified",
                config_field="data.data_dir"
            ).add_suggestion("Provide --data-dir")

        if not self.data_dir.is_dir():
            raise ConfigurationError(
                f"Data directory does not exist: {self.data_dir}",
                config_field="data.data_dir"
            )

@dataclass
class LoggingSettings:
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    file_path: Optional[Path] = None
    console_output: bool = True

    def validate(self) -> None:
        """Validate logging settings."""
        if self.file_path and not self.file_path.parent.exists():
            raise ConfigurationError(
                f"Log directory does not exist: {self.file_path.parent}",
                config_field="logging.file_path"
            ).add_suggestion("Create the directory or use console logging only")

@dataclass
class Settings:
    """Main configuration settings for repredret."""

    processing: ProcessingSettings = field(default_factory=ProcessingSettings)
    model: ModelSettings = field(default_factory=ModelSettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    data: DataSettings = field(default_factory=DataSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    # Debug/development settings
    debug_mode: bool = False
    dry_run: bool = False
    show_progress: bool = True

    def validate(self) -> None:
        """Validate all configuration settings."""
        try:
            self.processing.validate()
            self.model.validate()
            self.export.validate()
            self.data.validate()
            self.logging.validate()
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Configuration validation failed: {str(e)}"
            ) from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary for debugging."""
        return {
            'processing': {
                'n_workers': self.processing.n_workers,
                'batch_size': self.processing.batch_size,
                'min_compounds': self.processing.min_compounds,
                'method_match': self.processing.method_match,
                'sequential': self.processing.sequential,
            },
            'model': {
                'method': self.model.method.value,
                'alpha': self.model.alpha,
            },
            'export': {
                'export_dir': str(self.export.export_dir) if self.export.export_dir else None,
                'save_json': self.export.save_json,
                'fresh_cache': self.export.fresh_cache,
            },
            'data': {
                'data_dir': str(self.data.data_dir) if self.data.data_dir else None,
                'method_types': list(self.data.method_types),
                'compound_column': self.data.compound_column,
            },
            'runtime': {
                'debug_mode': self.debug_mode,
                'dry_run': self.dry_run,
            }
        }

# Global settings instance
_settings: Optional[Settings] = None

def get_settings() -> Settings:
    """Get the current global settings instance."""
    if _settings is None:
        raise ConfigurationError(
            "Settings not initialized. Call set_settings() first."
        ).add_suggestion("Initialize settings in your application startup")
    return _settings

def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings
    settings.validate()
    _settings = settings
    logger.info("Configuration loaded and validated successfully")
