import sqlite3

from repredret.data.cache_schema import create_cache
from repredret.data.db import connect


def _tables(conn):
    return {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}


def test_create_cache_tables(tmp_path):
    """Test the cache schema creates both tables."""
    conn = connect(tmp_path / "cache.sqlite")
    try:
        create_cache(conn)
        assert {"datasets", "models"} <= _tables(conn)
        indexes = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='index'")}
        assert {"idx_models_sys1", "idx_models_sys2"} <= indexes
    finally:
        conn.close()


def test_create_cache_is_idempotent():
    """Test creating the schema twice is harmless."""
    conn = sqlite3.connect(":memory:")
    create_cache(conn)
    conn.execute("INSERT INTO datasets (dataset_id, fingerprint) VALUES ('a', 'fa')")
    create_cache(conn)
    assert conn.execute("SELECT COUNT(*) FROM datasets").fetchone()[0] == 1


def test_connect_pragmas(tmp_path):
    """Test connections get the expected pragmas."""
    conn = connect(tmp_path / "db.sqlite")
    try:
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
        assert conn.execute("PRAGMA journal_mode").fetchone()[0].lower() == "delete"
    finally:
        conn.close()

    conn = connect(tmp_path / "wal.sqlite", use_wal=True)
    try:
        assert conn.execute("PRAGMA journal_mode").fetchone()[0].lower() == "wal"
    finally:
        conn.close()
