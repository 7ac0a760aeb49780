# data/db.py
import sqlite3
from pathlib import Path

def connect(db_path: str | Path, use_wal: bool = False) -> sqlite3.Connection:
    """Open the build cache database with the pragmas the pipeline expects."""
    conn = sqlite3.connect(str(db_path), timeout=120.0)
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA busy_timeout = 120000;")

    if use_wal:
        conn.execute("PRAGMA journal_mode = WAL;")
    else:
        conn.execute("PRAGMA journal_mode = DELETE;")
    conn.execute("PRAGMA synchronous = NORMAL;")
    conn.execute("PRAGMA temp_store = MEMORY;")

    return conn
