import pytest
from pathlib import Path

from repredret.config.integration import BuildConfig
from repredret.config.settings import (
    Settings,
    ProcessingSettings,
    ModelSettings,
    ExportSettings,
    DataSettings,
    BuildMethod,
)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        processing=ProcessingSettings(n_workers=6, batch_size=4, min_compounds=8, method_match=True),
        model=ModelSettings(method=BuildMethod.BOOTSTRAP, alpha=0.1),
        export=ExportSettings(export_dir=tmp_path / "out", save_json=False, fresh_cache=True, write_index=False),
        data=DataSettings(data_dir=tmp_path, method_types=["RP"]),
        show_progress=False,
    )


class TestBuildConfig:
    """Test BuildConfig dataclass."""

    def test_defaults(self):
        """Test default values are set correctly."""
        config = BuildConfig()
        assert config.min_compounds == 10
        assert config.method == "fast_ci"
        assert config.alpha == 0.05
        assert config.export_dir is None
        assert config.batch_size is None
        assert config.write_index is True

    def test_from_settings(self, settings, tmp_path):
        """Test every settings section maps onto the config."""
        config = BuildConfig.from_settings(settings)
        assert config.n_workers == 6
        assert config.batch_size == 4
        assert config.min_compounds == 8
        assert config.method == "bootstrap"
        assert config.alpha == 0.1
        assert config.export_dir == tmp_path / "out"
        assert config.save_json is False
        assert config.fresh_cache is True
        assert config.method_match is True
        assert config.show_progress is False
        assert config.write_index is False

    def test_sequential_forces_one_worker(self, settings):
        """Test sequential mode uses a single worker."""
        settings.processing.sequential = True
        assert BuildConfig.from_settings(settings).n_workers == 1
