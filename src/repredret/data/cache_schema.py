"""Functionality to create the build cache database"""
import sqlite3

def create_cache(con: sqlite3.Connection) -> sqlite3.Connection:
    """ Create the dataset fingerprint / model result tables if they do not exist. """
    con.executescript("""
    -- One row per dataset seen by the last successful fingerprint update
    CREATE TABLE IF NOT EXISTS datasets (
        dataset_id   TEXT PRIMARY KEY,
        fingerprint  TEXT NOT NULL,
        n_compounds  INTEGER NOT NULL DEFAULT 0,
        updated_at   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    );

    -- Last result per ordered pair, with the inputs it was built from
    CREATE TABLE IF NOT EXISTS models (
        sys1_id          TEXT NOT NULL,
        sys2_id          TEXT NOT NULL,
        status           TEXT NOT NULL CHECK (status IN ('success', 'failure')),
        sys1_fingerprint TEXT NOT NULL,
        sys2_fingerprint TEXT NOT NULL,
        method           TEXT NOT NULL,
        alpha            REAL NOT NULL,
        n_compounds      INTEGER,
        median_ci_width  REAL,
        median_error     REAL,
        message          TEXT,
        built_at         TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (sys1_id, sys2_id)
    );

    CREATE INDEX IF NOT EXISTS idx_models_sys1 ON models(sys1_id);
    CREATE INDEX IF NOT EXISTS idx_models_sys2 ON models(sys2_id);
    """)

    return con
