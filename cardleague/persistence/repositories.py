"""
Repository interfaces for league data.
No business logic, only read/write operations.
Repositories never commit: callers group writes with persistence.db.transaction().
"""
from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Sequence

from cardleague.catalog import get_players
from cardleague.formations import DEFAULT_FORMATION
from cardleague.models import (
    PLAYERS_PER_TEAM,
    Lobby,
    LobbyMember,
    LobbyStatus,
    Match,
    Reward,
    Team,
    TeamSlot,
    User,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


# ---------- UserRepository ----------


class UserRepository:
    """CRUD for users. coins is the reward balance."""

    def create(
        self,
        conn: sqlite3.Connection,
        username: str,
        coins: int = 1000,
        id: str | None = None,
    ) -> User:
        uid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            "INSERT INTO users (id, username, coins, created_at) VALUES (?, ?, ?, ?)",
            (uid, username, coins, now),
        )
        return User(id=uid, username=username, coins=coins, created_at=_parse_datetime(now))

    def get(self, conn: sqlite3.Connection, user_id: str) -> User | None:
        row = conn.execute(
            "SELECT id, username, coins, created_at FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return User(
            id=row["id"],
            username=row["username"],
            coins=row["coins"],
            created_at=_parse_datetime(row["created_at"]),
        )

    def credit_coins(self, conn: sqlite3.Connection, user_id: str, amount: int) -> None:
        cur = conn.execute("UPDATE users SET coins = coins + ? WHERE id = ?", (amount, user_id))
        if cur.rowcount != 1:
            raise ValueError(f"User not found: {user_id}")


# ---------- LobbyRepository ----------


def _row_to_lobby(r: Any) -> Lobby:
    return Lobby(
        id=r["id"],
        name=r["name"],
        status=r["status"],
        max_players=r["max_players"],
        current_matchday=r["current_matchday"],
        created_at=_parse_datetime(r["created_at"]),
    )


class LobbyRepository:
    """CRUD for lobbies. No business logic."""

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        max_players: int = 4,
        id: str | None = None,
    ) -> Lobby:
        lid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            "INSERT INTO lobbies (id, name, status, max_players, current_matchday, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (lid, name, LobbyStatus.WAITING.value, max_players, 1, now),
        )
        return Lobby(
            id=lid, name=name, status=LobbyStatus.WAITING.value, max_players=max_players,
            current_matchday=1, created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, lobby_id: str) -> Lobby | None:
        row = conn.execute(
            "SELECT id, name, status, max_players, current_matchday, created_at FROM lobbies WHERE id = ?",
            (lobby_id,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_lobby(row)

    def update_status(self, conn: sqlite3.Connection, lobby_id: str, status: str) -> None:
        conn.execute("UPDATE lobbies SET status = ? WHERE id = ?", (status, lobby_id))

    def update_current_matchday(self, conn: sqlite3.Connection, lobby_id: str, matchday: int) -> None:
        conn.execute("UPDATE lobbies SET current_matchday = ? WHERE id = ?", (matchday, lobby_id))


# ---------- LobbyMemberRepository ----------


class LobbyMemberRepository:
    """CRUD for lobby_members."""

    def add(self, conn: sqlite3.Connection, lobby_id: str, user_id: str) -> LobbyMember:
        now = _now()
        conn.execute(
            "INSERT INTO lobby_members (lobby_id, user_id, joined_at) VALUES (?, ?, ?)",
            (lobby_id, user_id, now),
        )
        return LobbyMember(lobby_id=lobby_id, user_id=user_id, joined_at=_parse_datetime(now))

    def list_by_lobby(self, conn: sqlite3.Connection, lobby_id: str) -> list[LobbyMember]:
        rows = conn.execute(
            "SELECT lobby_id, user_id, joined_at FROM lobby_members WHERE lobby_id = ? ORDER BY joined_at, user_id",
            (lobby_id,),
        ).fetchall()
        return [
            LobbyMember(
                lobby_id=r["lobby_id"], user_id=r["user_id"],
                joined_at=_parse_datetime(r["joined_at"]),
            )
            for r in rows
        ]

    def count(self, conn: sqlite3.Connection, lobby_id: str) -> int:
        row = conn.execute(
            "SELECT COUNT(*) AS n FROM lobby_members WHERE lobby_id = ?", (lobby_id,)
        ).fetchone()
        return row["n"]


# ---------- TeamRepository ----------


class TeamRepository:
    """CRUD for teams and their 11 slots."""

    def create(
        self,
        conn: sqlite3.Connection,
        user_id: str,
        lobby_id: str,
        matchday: int,
        player_ids: Sequence[str | None],
        name: str | None = None,
        formation: str = DEFAULT_FORMATION,
        id: str | None = None,
    ) -> Team:
        """
        Insert a team and its slots. player_ids is the ordered lineup (None = empty slot).
        Slot rating/color are copied from the catalog; an unknown player id raises ValueError.
        """
        if len(player_ids) > PLAYERS_PER_TEAM:
            raise ValueError(f"A team has at most {PLAYERS_PER_TEAM} slots, got {len(player_ids)}")
        tid = id or str(uuid.uuid4())
        now = _now()
        cards = get_players(conn, [p for p in player_ids if p is not None])
        slots: list[TeamSlot] = []
        for idx in range(PLAYERS_PER_TEAM):
            pid = player_ids[idx] if idx < len(player_ids) else None
            if pid is None:
                slots.append(TeamSlot(slot_index=idx, player_id=None))
                continue
            card = cards.get(pid)
            if card is None:
                raise ValueError(f"Unknown player: {pid}")
            slots.append(TeamSlot(slot_index=idx, player_id=pid, rating=card.rating, color=card.color))
        team_name = name or f"Team {user_id} MD{matchday}"
        conn.execute(
            "INSERT INTO teams (id, user_id, lobby_id, name, formation, matchday, created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (tid, user_id, lobby_id, team_name, formation, matchday, now),
        )
        conn.executemany(
            "INSERT INTO team_slots (team_id, slot_index, player_id, rating, color) VALUES (?, ?, ?, ?, ?)",
            [(tid, s.slot_index, s.player_id, s.rating, s.color) for s in slots],
        )
        return Team(
            id=tid, user_id=user_id, lobby_id=lobby_id, name=team_name, formation=formation,
            matchday=matchday, created_at=_parse_datetime(now), slots=slots,
        )

    def _slots(self, conn: sqlite3.Connection, team_id: str) -> list[TeamSlot]:
        rows = conn.execute(
            "SELECT slot_index, player_id, rating, color FROM team_slots WHERE team_id = ? ORDER BY slot_index",
            (team_id,),
        ).fetchall()
        return [
            TeamSlot(slot_index=r["slot_index"], player_id=r["player_id"], rating=r["rating"], color=r["color"])
            for r in rows
        ]

    def _row_to_team(self, conn: sqlite3.Connection, r: Any) -> Team:
        return Team(
            id=r["id"],
            user_id=r["user_id"],
            lobby_id=r["lobby_id"],
            name=r["name"],
            formation=r["formation"],
            matchday=r["matchday"],
            created_at=_parse_datetime(r["created_at"]),
            slots=self._slots(conn, r["id"]),
        )

    def get(self, conn: sqlite3.Connection, team_id: str) -> Team | None:
        row = conn.execute(
            "SELECT id, user_id, lobby_id, name, formation, matchday, created_at FROM teams WHERE id = ?",
            (team_id,),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_team(conn, row)

    def list_by_lobby_and_matchday(self, conn: sqlite3.Connection, lobby_id: str, matchday: int) -> list[Team]:
        """Teams of one matchday, in creation order (this order fixes home/away)."""
        rows = conn.execute(
            "SELECT id, user_id, lobby_id, name, formation, matchday, created_at FROM teams "
            "WHERE lobby_id = ? AND matchday = ? ORDER BY created_at, rowid",
            (lobby_id, matchday),
        ).fetchall()
        return [self._row_to_team(conn, r) for r in rows]

    def owners_by_lobby(self, conn: sqlite3.Connection, lobby_id: str) -> dict[str, str]:
        """team_id -> user_id for every team in the lobby."""
        rows = conn.execute("SELECT id, user_id FROM teams WHERE lobby_id = ?", (lobby_id,)).fetchall()
        return {r["id"]: r["user_id"] for r in rows}

    def get_by_user_and_matchday(
        self, conn: sqlite3.Connection, lobby_id: str, user_id: str, matchday: int
    ) -> Team | None:
        row = conn.execute(
            "SELECT id, user_id, lobby_id, name, formation, matchday, created_at FROM teams "
            "WHERE lobby_id = ? AND user_id = ? AND matchday = ?",
            (lobby_id, user_id, matchday),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_team(conn, row)


# ---------- MatchRepository ----------


_MATCH_COLS = (
    "id, lobby_id, home_team_id, away_team_id, home_score, away_score, matchday, played, "
    "played_at, home_strength, away_strength, events_json, created_at"
)


def _row_to_match(r: Any) -> Match:
    return Match(
        id=r["id"],
        lobby_id=r["lobby_id"],
        home_team_id=r["home_team_id"],
        away_team_id=r["away_team_id"],
        home_score=r["home_score"],
        away_score=r["away_score"],
        matchday=r["matchday"],
        played=bool(r["played"]),
        created_at=_parse_datetime(r["created_at"]),
        played_at=_parse_datetime(r["played_at"]) if r["played_at"] else None,
        home_strength=r["home_strength"],
        away_strength=r["away_strength"],
        events_json=r["events_json"],
    )


class MatchRepository:
    """CRUD for matches. A match row is written unplayed, then marked played exactly once."""

    def create(
        self,
        conn: sqlite3.Connection,
        lobby_id: str,
        home_team_id: str,
        away_team_id: str,
        matchday: int,
        id: str | None = None,
    ) -> Match:
        mid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            "INSERT INTO matches (id, lobby_id, home_team_id, away_team_id, home_score, away_score, matchday, played, created_at) "
            "VALUES (?, ?, ?, ?, 0, 0, ?, 0, ?)",
            (mid, lobby_id, home_team_id, away_team_id, matchday, now),
        )
        return Match(
            id=mid, lobby_id=lobby_id, home_team_id=home_team_id, away_team_id=away_team_id,
            home_score=0, away_score=0, matchday=matchday, played=False,
            created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, match_id: str) -> Match | None:
        row = conn.execute(f"SELECT {_MATCH_COLS} FROM matches WHERE id = ?", (match_id,)).fetchone()
        if row is None:
            return None
        return _row_to_match(row)

    def list_by_lobby(
        self,
        conn: sqlite3.Connection,
        lobby_id: str,
        matchday: int | None = None,
        played: bool | None = None,
    ) -> list[Match]:
        """Matches ordered by (matchday, created order)."""
        sql = f"SELECT {_MATCH_COLS} FROM matches WHERE lobby_id = ?"
        args: list[Any] = [lobby_id]
        if matchday is not None:
            sql += " AND matchday = ?"
            args.append(matchday)
        if played is not None:
            sql += " AND played = ?"
            args.append(1 if played else 0)
        sql += " ORDER BY matchday, rowid"
        return [_row_to_match(r) for r in conn.execute(sql, args).fetchall()]

    def count(self, conn: sqlite3.Connection, lobby_id: str, played: bool | None = None) -> int:
        sql = "SELECT COUNT(*) AS n FROM matches WHERE lobby_id = ?"
        args: list[Any] = [lobby_id]
        if played is not None:
            sql += " AND played = ?"
            args.append(1 if played else 0)
        return conn.execute(sql, args).fetchone()["n"]

    def exists_for_lobby(self, conn: sqlite3.Connection, lobby_id: str) -> bool:
        row = conn.execute("SELECT 1 FROM matches WHERE lobby_id = ? LIMIT 1", (lobby_id,)).fetchone()
        return row is not None

    def exists_for_matchday(self, conn: sqlite3.Connection, lobby_id: str, matchday: int) -> bool:
        row = conn.execute(
            "SELECT 1 FROM matches WHERE lobby_id = ? AND matchday = ? LIMIT 1",
            (lobby_id, matchday),
        ).fetchone()
        return row is not None

    def mark_played(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        home_score: int,
        away_score: int,
        home_strength: int | None = None,
        away_strength: int | None = None,
        events_json: str | None = None,
    ) -> bool:
        """
        Persist a result only if the match is still unplayed.
        Returns False when another writer already played it (first writer wins).
        """
        cur = conn.execute(
            "UPDATE matches SET home_score = ?, away_score = ?, played = 1, played_at = ?, "
            "home_strength = ?, away_strength = ?, events_json = ? "
            "WHERE id = ? AND played = 0",
            (home_score, away_score, _now(), home_strength, away_strength, events_json, match_id),
        )
        return cur.rowcount == 1


# ---------- RewardRepository ----------


class RewardRepository:
    """Append-only reward ledger. UNIQUE(lobby_id, user_id) rejects a second payout."""

    def create(
        self,
        conn: sqlite3.Connection,
        lobby_id: str,
        user_id: str,
        position: int,
        coins: int,
        id: str | None = None,
    ) -> Reward:
        rid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            "INSERT INTO rewards (id, lobby_id, user_id, position, coins, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (rid, lobby_id, user_id, position, coins, now),
        )
        return Reward(
            id=rid, lobby_id=lobby_id, user_id=user_id, position=position, coins=coins,
            created_at=_parse_datetime(now),
        )

    def list_by_lobby(self, conn: sqlite3.Connection, lobby_id: str) -> list[Reward]:
        rows = conn.execute(
            "SELECT id, lobby_id, user_id, position, coins, created_at FROM rewards WHERE lobby_id = ? ORDER BY position",
            (lobby_id,),
        ).fetchall()
        return [
            Reward(
                id=r["id"], lobby_id=r["lobby_id"], user_id=r["user_id"], position=r["position"],
                coins=r["coins"], created_at=_parse_datetime(r["created_at"]),
            )
            for r in rows
        ]

    def exists_for_lobby(self, conn: sqlite3.Connection, lobby_id: str) -> bool:
        row = conn.execute("SELECT 1 FROM rewards WHERE lobby_id = ? LIMIT 1", (lobby_id,)).fetchone()
        return row is not None
