import pytest
from argparse import Namespace
from pathlib import Path
from unittest.mock import patch

from repredret.config.loader import ConfigurationLoader, configure_from_cli
from repredret.config.settings import LogLevel, BuildMethod
from repredret.domain.exceptions import ConfigurationError, PipelineConfigurationError


class TestConfigurationLoader:
    """Test ConfigurationLoader."""

    def test_load_defaults(self):
        """Test default settings."""
        settings = ConfigurationLoader().load_defaults()

        assert settings.processing.batch_size is None
        assert settings.processing.min_compounds == 10
        assert settings.model.method is BuildMethod.FAST_CI
        assert settings.model.alpha == 0.05
        assert settings.export.export_dir is None
        assert settings.export.save_json is True
        assert settings.data.method_types == []
        assert settings.logging.level == LogLevel.INFO
        assert settings.debug_mode is False
        assert settings.dry_run is False

    def test_load_from_cli_args_empty_args(self):
        """Test an empty namespace gives the defaults."""
        settings = ConfigurationLoader().load_from_cli_args(Namespace())
        assert settings.processing.min_compounds == 10
        assert settings.model.method is BuildMethod.FAST_CI

    def test_load_from_cli_args_overrides(self, tmp_path):
        """Test CLI arguments override every section."""
        args = Namespace(
            workers=3,
            batch_size=7,
            min_compounds=5,
            method_match=True,
            sequential=True,
            method="bootstrap",
            alpha=0.1,
            export_dir=str(tmp_path / "out"),
            no_json=True,
            fresh_cache=True,
            data_dir=str(tmp_path),
            method_types=["rp", "Hilic"],
            compound_column="inchikey",
            log_file=str(tmp_path / "run.log"),
            debug=True,
            dry_run=True,
        )
        settings = ConfigurationLoader().load_from_cli_args(args)

        assert settings.processing.n_workers == 3
        assert settings.processing.batch_size == 7
        assert settings.processing.min_compounds == 5
        assert settings.processing.method_match is True
        assert settings.processing.sequential is True
        assert settings.model.method is BuildMethod.BOOTSTRAP
        assert settings.model.alpha == 0.1
        assert settings.export.export_dir == Path(tmp_path / "out")
        assert settings.export.save_json is False
        assert settings.export.fresh_cache is True
        assert settings.data.method_types == ["RP", "HILIC"]
        assert settings.data.compound_column == "inchikey"
        assert settings.logging.level == LogLevel.DEBUG
        assert settings.debug_mode is True
        assert settings.dry_run is True

    def test_default_export_dir_only_without_explicit_dir(self, tmp_path):
        """Test the per-user export directory is only used without --export-dir."""
        with patch("repredret.config.loader.default_export_dir", return_value=tmp_path / "user") as mock_default:
            settings = ConfigurationLoader().load_from_cli_args(Namespace(default_export_dir=True))
            assert settings.export.export_dir == tmp_path / "user"

            settings = ConfigurationLoader().load_from_cli_args(
                Namespace(default_export_dir=True, export_dir=str(tmp_path / "out"))
            )
            assert settings.export.export_dir == tmp_path / "out"
        mock_default.assert_called_once()

    def test_zero_values_are_kept(self):
        """Explicit zeros reach the settings instead of falling back to defaults."""
        settings = ConfigurationLoader().load_from_cli_args(
            Namespace(workers=0, batch_size=0, min_compounds=0)
        )
        assert settings.processing.n_workers == 0
        assert settings.processing.batch_size == 0
        assert settings.processing.min_compounds == 0

    def test_no_index(self):
        """--no-index turns off index writing."""
        settings = ConfigurationLoader().load_from_cli_args(Namespace(no_index=True))
        assert settings.export.write_index is False

    def test_unknown_method_wrapped(self):
        """Test an unknown method is reported as a configuration error."""
        with pytest.raises(ConfigurationError):
            ConfigurationLoader().load_from_cli_args(Namespace(method="spline"))

    def test_no_progress_env(self, monkeypatch):
        """Test NO_PROGRESS disables progress display."""
        monkeypatch.setenv("NO_PROGRESS", "1")
        settings = ConfigurationLoader().load_from_cli_args(Namespace())
        assert settings.show_progress is False

        monkeypatch.delenv("NO_PROGRESS")
        settings = ConfigurationLoader().load_from_cli_args(Namespace())
        assert settings.show_progress is True


class TestConfigureFromCli:
    """Test configure_from_cli."""

    def test_validates(self, tmp_path):
        """Test valid arguments pass validation."""
        settings = configure_from_cli(Namespace(data_dir=str(tmp_path)))
        assert settings.data.data_dir == tmp_path

    def test_missing_data_dir_fails_validation(self):
        """Test a data directory is required."""
        with pytest.raises(PipelineConfigurationError):
            configure_from_cli(Namespace())

    def test_wraps_unexpected_errors(self):
        """Test unexpected loader errors are wrapped."""
        loader = ConfigurationLoader()
        with patch.object(loader, "load_defaults", side_effect=RuntimeError("boom")):
            with pytest.raises(ConfigurationError, match="Failed to load configuration"):
                loader.load_from_cli_args(Namespace())

    @pytest.mark.parametrize("option", ["workers", "batch_size", "min_compounds"])
    def test_zero_rejected(self, tmp_path, option):
        """A zero worker count, batch size or overlap threshold fails validation."""
        with pytest.raises(PipelineConfigurationError):
            configure_from_cli(Namespace(data_dir=str(tmp_path), **{option: 0}))
