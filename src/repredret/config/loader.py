"""Configuration loading from CLI and programmatic sources."""

import os
import logging
from pathlib import Path
from dataclasses import replace
from repredret.config.settings import (
    Settings, ProcessingSettings, ModelSettings, ExportSettings,
    DataSettings, LoggingSettings, LogLevel, BuildMethod
)
from repredret.config.resolvers import default_export_dir
from repredret.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

class ConfigurationLoader:
    """Loads configuration from CLI args and system defaults."""

    def load_from_cli_args(self, args) -> Settings:
        """Load configuration from CLI arguments."""
        try:
            settings = self.load_defaults()

            processing_updates = {}
            if getattr(args, 'workers', None) is not None:
                processing_updates['n_workers'] = args.workers
            if getattr(args, 'batch_size', None) is not None:
                processing_updates['batch_size'] = args.batch_size
            if getattr(args, 'min_compounds', None) is not None:
                processing_updates['min_compounds'] = args.min_compounds
            if getattr(args, 'method_match', False):
                processing_updates['method_match'] = True
            if getattr(args, 'sequential', False):
                processing_updates['sequential'] = True

            model_updates = {}
            if getattr(args, 'method', None):
                model_updates['method'] = BuildMethod(args.method)
            if getattr(args, 'alpha', None) is not None:
                model_updates['alpha'] = args.alpha

            export_updates = {}
            if getattr(args, 'export_dir', None):
                export_updates['export_dir'] = Path(args.export_dir)
            elif getattr(args, 'default_export_dir', False):
                export_updates['export_dir'] = default_export_dir()
            if getattr(args, 'no_json', False):
                export_updates['save_json'] = False
            if getattr(args, 'no_index', False):
                export_updates['write_index'] = False
            if getattr(args, 'fresh_cache', False):
                export_updates['fresh_cache'] = True

            data_updates = {}
            if getattr(args, 'data_dir', None):
                data_updates['data_dir'] = Path(args.data_dir)
            if getattr(args, 'method_types', None):
                data_updates['method_types'] = [m.upper() for m in args.method_types]
            if getattr(args, 'compound_column', None):
                data_updates['compound_column'] = args.compound_column

            logging_updates = {}
            if getattr(args, 'log_file', None):
                logging_updates['file_path'] = Path(args.log_file)
            if getattr(args, 'debug', False):
                logging_updates['level'] = LogLevel.DEBUG

            return replace(
                settings,
                processing=replace(settings.processing, **processing_updates),
                model=replace(settings.model, **model_updates),
                export=replace(settings.export, **export_updates),
                data=replace(settings.data, **data_updates),
                logging=replace(settings.logging, **logging_updates),
                debug_mode=getattr(args, 'debug', False),
                dry_run=getattr(args, 'dry_run', False),
                show_progress=not _progress_disabled(),
            )

        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to load configuration from CLI arguments: {str(e)}"
            ) from e

    def load_defaults(self) -> Settings:
        """Load default configuration settings."""
        return Settings(
            processing=ProcessingSettings(
                n_workers=os.cpu_count() or 4,
                batch_size=None,
                min_compounds=10,
                method_match=False,
                sequential=False,
            ),
            model=ModelSettings(
                method=BuildMethod.FAST_CI,
                alpha=0.05,
            ),
            export=ExportSettings(
                export_dir=None,
                save_json=True,
                fresh_cache=False,
            ),
            data=DataSettings(
                data_dir=None,
                method_types=[],
                compound_column=None,
            ),
            logging=LoggingSettings(
                level=LogLevel.INFO,
                file_path=None,
                console_output=True,
            ),
            debug_mode=False,
            dry_run=False,
        )

def _progress_disabled() -> bool:
    return os.getenv('NO_PROGRESS', '').lower() in ('1', 'true', 'yes')

def configure_from_cli(args) -> Settings:
    """Main entry point to configure settings from CLI args."""
    loader = ConfigurationLoader()
    settings = loader.load_from_cli_args(args)
    settings.validate()
    return settings
