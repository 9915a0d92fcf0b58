"""
Persistence layer for league data.
No business logic, no simulation; only read/write interfaces.
"""
from .db import get_connection, init_db, set_db_path, transaction
from .repositories import (
    UserRepository,
    LobbyRepository,
    LobbyMemberRepository,
    TeamRepository,
    MatchRepository,
    RewardRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "set_db_path",
    "transaction",
    "UserRepository",
    "LobbyRepository",
    "LobbyMemberRepository",
    "TeamRepository",
    "MatchRepository",
    "RewardRepository",
]
