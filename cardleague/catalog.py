"""
Card catalog: SQLite store of player cards (rating, position, color).
Cards are immutable catalog records; ownership and pack acquisition live
outside the league engine. Teams copy rating and color into their slots.
"""
from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

from cardleague.models import DUMMY_PLAYER_PREFIX, Player, PlayerColor, PlayerPosition

DUMMY_THEME = "DUMMY"
DUMMY_RATING = 1
DUMMY_COLOR = "none"
VALID_COLORS = {c.value for c in PlayerColor}
VALID_POSITIONS = {p.value for p in PlayerPosition}


def _slug(name: str) -> str:
    """Stable id from player name (lowercase, spaces to underscores)."""
    return name.strip().lower().replace(" ", "_").replace("-", "_")


def dummy_player_id(position: str) -> str:
    return f"{DUMMY_PLAYER_PREFIX}{position.lower()}"


def _players_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS players (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        rating INTEGER NOT NULL,
        position TEXT NOT NULL,
        color TEXT NOT NULL,
        theme TEXT NOT NULL DEFAULT ''
    );
    CREATE INDEX IF NOT EXISTS ix_players_color ON players(color);
    CREATE INDEX IF NOT EXISTS ix_players_position ON players(position);
    """


def _row_to_player(row: Any) -> Player:
    return Player(
        id=row["id"],
        name=row["name"],
        rating=row["rating"],
        position=row["position"],
        color=row["color"],
        theme=row["theme"],
    )


def validate_player(player: Player) -> None:
    """Raise ValueError for a card outside the 15 positions / 8 colors."""
    if player.position not in VALID_POSITIONS:
        raise ValueError(f"Unknown position {player.position!r} for player {player.id}")
    if not player.is_dummy and player.color not in VALID_COLORS:
        raise ValueError(f"Unknown color {player.color!r} for player {player.id}")
    if player.rating < 0:
        raise ValueError(f"Rating must be non-negative for player {player.id}")


def upsert_player(conn: sqlite3.Connection, player: Player) -> Player:
    validate_player(player)
    conn.execute(
        """INSERT INTO players (id, name, rating, position, color, theme) VALUES (?, ?, ?, ?, ?, ?)
           ON CONFLICT(id) DO UPDATE SET
               name = excluded.name, rating = excluded.rating, position = excluded.position,
               color = excluded.color, theme = excluded.theme""",
        (player.id, player.name, player.rating, player.position, player.color, player.theme),
    )
    return player


def seed_dummy_players(conn: sqlite3.Connection) -> list[Player]:
    """One placeholder card per position ('dummy-gk', 'dummy-cb', ...)."""
    dummies = [
        Player(
            id=dummy_player_id(pos.value),
            name=f"Placeholder {pos.value}",
            rating=DUMMY_RATING,
            position=pos.value,
            color=DUMMY_COLOR,
            theme=DUMMY_THEME,
        )
        for pos in PlayerPosition
    ]
    for p in dummies:
        upsert_player(conn, p)
    return dummies


def load_catalog_into_db(conn: sqlite3.Connection, catalog_path: Path) -> int:
    """
    Load catalog JSON into the players table: {"players": [{name, rating, position, color, theme?, id?}]}.
    Returns number of cards loaded.
    """
    data = json.loads(catalog_path.read_text())
    count = 0
    for r in data.get("players", []):
        upsert_player(conn, Player(
            id=r.get("id") or _slug(r["name"]),
            name=r["name"],
            rating=int(r["rating"]),
            position=r["position"],
            color=r["color"],
            theme=r.get("theme", ""),
        ))
        count += 1
    return count


def get_players(conn: sqlite3.Connection, player_ids: list[str]) -> dict[str, Player]:
    """Cards by id for the given ids; unknown ids are omitted."""
    if not player_ids:
        return {}
    placeholders = ", ".join("?" for _ in player_ids)
    rows = conn.execute(
        f"SELECT id, name, rating, position, color, theme FROM players WHERE id IN ({placeholders})",
        list(player_ids),
    ).fetchall()
    return {r["id"]: _row_to_player(r) for r in rows}


def list_players(
    conn: sqlite3.Connection,
    color: str | None = None,
    include_dummies: bool = False,
    limit: int | None = None,
) -> list[Player]:
    """Catalog cards by rating desc. Placeholders are excluded unless asked for."""
    sql = "SELECT id, name, rating, position, color, theme FROM players WHERE 1 = 1"
    args: list[Any] = []
    if color is not None:
        sql += " AND color = ?"
        args.append(color)
    if not include_dummies:
        sql += " AND theme != ?"
        args.append(DUMMY_THEME)
    sql += " ORDER BY rating DESC, id"
    if limit is not None:
        sql += " LIMIT ?"
        args.append(limit)
    return [_row_to_player(r) for r in conn.execute(sql, args).fetchall()]
