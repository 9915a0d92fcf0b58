"""
Database connection, initialization and transactions.
"""
from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .schema import all_schema_sql

logger = logging.getLogger(__name__)

DB_PATH_ENV = "CARDLEAGUE_DB_PATH"
BUSY_TIMEOUT_SECONDS = 30.0


# Default DB path (project root / data / app.db)
def _default_db_path() -> Path:
    env = os.environ.get(DB_PATH_ENV)
    if env:
        return Path(env)
    return Path(__file__).resolve().parent.parent.parent / "data" / "app.db"


_db_path: Path | None = None


def set_db_path(path: str | Path) -> None:
    """Set the database path. Call before first get_connection if not using default."""
    global _db_path
    _db_path = Path(path)


def get_db_path() -> Path:
    """Return the current database path."""
    if _db_path is not None:
        return _db_path
    return _default_db_path()


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """
    Return a new SQLite connection in autocommit mode.
    Multi-statement writes go through transaction(). Use as context manager or ensure close() is called.
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Run the block in one write transaction (BEGIN IMMEDIATE).
    The write lock is taken up front, so concurrent writers are serialized and a
    read-then-update inside the block cannot interleave with another writer.
    Nested use joins the outer transaction. On error: rollback, log, re-raise.
    """
    if conn.in_transaction:
        yield conn
        return
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except Exception as e:
        logger.error("Transaction failed, rolling back: %s", e, exc_info=True)
        conn.rollback()
        raise
    else:
        conn.commit()


def init_db(
    db_path: str | Path | None = None,
    catalog_path: str | Path | None = None,
) -> None:
    """
    Create or ensure all tables exist.
    If catalog_path is provided, also load player cards from catalog JSON
    (uses cardleague.catalog).
    """
    from cardleague.catalog import _players_schema, load_catalog_into_db, seed_dummy_players

    path = Path(db_path) if db_path else get_db_path()
    conn = get_connection(path)
    try:
        # Players table first (team_slots references it)
        conn.executescript(_players_schema())
        conn.executescript(all_schema_sql())
        with transaction(conn):
            seed_dummy_players(conn)
            if catalog_path:
                load_catalog_into_db(conn, Path(catalog_path))
    finally:
        conn.close()
