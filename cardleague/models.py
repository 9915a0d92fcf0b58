"""
Data models for the card league backend.
Domain objects only; no persistence or API logic.

Lobby-centric architecture: 4 users join a lobby; each user fields one team per
matchday; a league is 3 matchdays of 6 round-robin matches (18 total).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

PLAYERS_PER_TEAM = 11
DUMMY_PLAYER_PREFIX = "dummy-"


# ---------- Lobby status ----------
class LobbyStatus(str, Enum):
    """Lobby lifecycle: WAITING → IN_PROGRESS → FINISHED."""
    WAITING = "WAITING"          # Accepting members
    IN_PROGRESS = "IN_PROGRESS"  # League scheduled, matches being played
    FINISHED = "FINISHED"        # All 18 matches played, rewards issued


# ---------- League state (derived from persisted rows) ----------
class LeagueState(str, Enum):
    NO_LEAGUE = "NO_LEAGUE"
    SCHEDULED = "SCHEDULED"
    COMPLETE = "COMPLETE"
    REWARDED = "REWARDED"


# ---------- Card catalog enums ----------
class PlayerColor(str, Enum):
    DUNKELGRUEN = "dunkelgruen"
    HELLGRUEN = "hellgruen"
    DUNKELBLAU = "dunkelblau"
    HELLBLAU = "hellblau"
    ROT = "rot"
    GELB = "gelb"
    LILA = "lila"
    ORANGE = "orange"


class PlayerPosition(str, Enum):
    GK = "GK"
    CB = "CB"
    LB = "LB"
    RB = "RB"
    CDM = "CDM"
    CM = "CM"
    CAM = "CAM"
    LM = "LM"
    RM = "RM"
    LW = "LW"
    RW = "RW"
    ST = "ST"
    CF = "CF"
    LF = "LF"
    RF = "RF"


def is_dummy_player(player_id: str | None) -> bool:
    """Placeholder cards fill empty positions; ids look like 'dummy-gk'."""
    return bool(player_id) and player_id.startswith(DUMMY_PLAYER_PREFIX)


# ---------- User ----------
@dataclass
class User:
    """A league participant. Coins are credited by end-of-league rewards."""
    id: str
    username: str
    coins: int
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "coins": self.coins,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Player (catalog card) ----------
@dataclass(frozen=True)
class Player:
    """
    Immutable catalog record. Ownership lives outside the league engine.
    rating is the card's point value; color drives chemistry.
    """
    id: str
    name: str
    rating: int
    position: str  # PlayerPosition value
    color: str  # PlayerColor value
    theme: str = ""

    @property
    def is_dummy(self) -> bool:
        return is_dummy_player(self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "rating": self.rating,
            "position": self.position,
            "color": self.color,
            "theme": self.theme,
        }


# ---------- TeamSlot ----------
@dataclass(frozen=True)
class TeamSlot:
    """
    One of a team's 11 ordered positions.
    rating and color are snapshotted from the catalog when the slot is written,
    so later catalog edits never change a fielded team.
    """
    slot_index: int  # 0-10
    player_id: str | None
    rating: int = 0
    color: str | None = None

    @property
    def is_filled(self) -> bool:
        return self.player_id is not None

    @property
    def is_dummy(self) -> bool:
        return is_dummy_player(self.player_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "slot_index": self.slot_index,
            "player_id": self.player_id,
            "rating": self.rating,
            "color": self.color,
        }


# ---------- Team ----------
@dataclass
class Team:
    """
    A user's lineup for one matchday in one lobby.
    One team per user per matchday per lobby.
    """
    id: str
    user_id: str
    lobby_id: str
    name: str
    formation: str
    matchday: int  # 1..3
    created_at: datetime
    slots: list[TeamSlot] = field(default_factory=list)

    @property
    def filled_slots(self) -> list[TeamSlot]:
        return [s for s in self.slots if s.is_filled]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "lobby_id": self.lobby_id,
            "name": self.name,
            "formation": self.formation,
            "matchday": self.matchday,
            "created_at": self.created_at.isoformat(),
            "slots": [s.to_dict() for s in self.slots],
        }


# ---------- Lobby ----------
@dataclass
class Lobby:
    """
    Fixed-capacity (4) group of users. A league exists only once it is full.
    current_matchday advances as each matchday's 6 matches are played.
    """
    id: str
    name: str
    status: str  # LobbyStatus value
    max_players: int
    current_matchday: int
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "max_players": self.max_players,
            "current_matchday": self.current_matchday,
            "created_at": self.created_at.isoformat(),
        }


# ---------- LobbyMember ----------
@dataclass
class LobbyMember:
    lobby_id: str
    user_id: str
    joined_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "lobby_id": self.lobby_id,
            "user_id": self.user_id,
            "joined_at": self.joined_at.isoformat(),
        }


# ---------- Match ----------
@dataclass
class Match:
    """
    A fixture between two teams of the same matchday.
    Created unplayed in per-matchday batches; immutable once played.
    """
    id: str
    lobby_id: str
    home_team_id: str
    away_team_id: str
    home_score: int
    away_score: int
    matchday: int
    played: bool
    created_at: datetime
    played_at: datetime | None = None
    home_strength: int | None = None
    away_strength: int | None = None
    events_json: str | None = None  # serialized chance log of the persisted simulation

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "lobby_id": self.lobby_id,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "matchday": self.matchday,
            "played": self.played,
            "created_at": self.created_at.isoformat(),
            "played_at": self.played_at.isoformat() if self.played_at else None,
        }
        if self.home_strength is not None:
            d["home_strength"] = self.home_strength
            d["away_strength"] = self.away_strength
        return d


# ---------- LeagueTableEntry (derived) ----------
@dataclass
class LeagueTableEntry:
    """Standings row; always recomputed from played matches, never stored."""
    user_id: str
    points: int = 0
    goals_for: int = 0
    goals_against: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    rank: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    @property
    def matches_played(self) -> int:
        return self.wins + self.draws + self.losses

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "user_id": self.user_id,
            "points": self.points,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "wins": self.wins,
            "draws": self.draws,
            "losses": self.losses,
            "matches_played": self.matches_played,
        }


# ---------- Reward ----------
@dataclass
class Reward:
    """End-of-league payout. One per (lobby, user); issued exactly once."""
    id: str
    lobby_id: str
    user_id: str
    position: int
    coins: int
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "lobby_id": self.lobby_id,
            "user_id": self.user_id,
            "position": self.position,
            "coins": self.coins,
            "created_at": self.created_at.isoformat(),
        }
