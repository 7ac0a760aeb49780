# config/resolvers.py
from pathlib import Path
from typing import Optional
from platformdirs import user_data_dir

APP = "repredret"
SCHEMA_VERSION = 1  # increment when the build cache schema changes
CACHE_FILENAME = "build_cache.sqlite"

def default_export_dir() -> Path:
    p = Path(user_data_dir(APP)) / f"models-v{SCHEMA_VERSION}"
    p.mkdir(parents=True, exist_ok=True)
    return p

def resolve_export_dir(export_dir: Optional[str | Path]) -> Optional[Path]:
    """
    Decide where models, the index and the build cache go:
    - an explicit path is created if missing;
    - otherwise None, which disables export and caching.
    """
    if export_dir:
        p = Path(export_dir).expanduser()
        p.mkdir(parents=True, exist_ok=True)
        return p
    return None

def resolve_cache_path(export_dir: Optional[Path], *, fresh_cache: bool = False) -> Optional[Path]:
    """
    Path of the build cache for an export directory.
    - no export directory: no cache (None);
    - fresh_cache=True: any existing cache file is removed first.
    """
    if export_dir is None:
        if fresh_cache:
            raise ValueError("fresh_cache=True requires an export directory.")
        return None

    p = Path(export_dir) / CACHE_FILENAME
    if fresh_cache and p.exists():
        p.unlink()
    return p
