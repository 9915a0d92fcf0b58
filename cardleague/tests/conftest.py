"""
Shared fixtures: temporary SQLite DB with schema and placeholder cards.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from cardleague.persistence.db import get_connection, init_db, set_db_path


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "league_test.db"
    set_db_path(path)
    init_db(db_path=path)
    return path


@pytest.fixture
def db_conn(db_path):
    conn = get_connection(db_path)
    try:
        yield conn
    finally:
        conn.close()
