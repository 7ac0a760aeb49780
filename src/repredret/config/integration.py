"""Bridge between Settings and the build functions."""
from typing import Optional
from dataclasses import dataclass
from pathlib import Path
from repredret.config.settings import Settings

@dataclass
class BuildConfig:
    """Flat parameter set accepted by the build runners."""
    min_compounds: int = 10
    method: str = "fast_ci"
    alpha: float = 0.05
    n_workers: int = 1
    save_json: bool = True
    export_dir: Optional[Path] = None
    batch_size: Optional[int] = None
    verbose: bool = True
    method_match: bool = False
    fresh_cache: bool = False
    show_progress: bool = True
    write_index: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> 'BuildConfig':
        """Create BuildConfig from Settings."""
        return cls(
            min_compounds=settings.processing.min_compounds,
            method=settings.model.method.value,
            alpha=settings.model.alpha,
            n_workers=1 if settings.processing.sequential else settings.processing.n_workers,
            save_json=settings.export.save_json,
            export_dir=settings.export.export_dir,
            batch_size=settings.processing.batch_size,
            verbose=True,
            method_match=settings.processing.method_match,
            fresh_cache=settings.export.fresh_cache,
            show_progress=settings.show_progress,
            write_index=settings.export.write_index,
        )
