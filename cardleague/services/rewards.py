"""
End-of-league rewards: coins by final table position, issued exactly once per lobby.
"""
from __future__ import annotations

import logging
import sqlite3

from cardleague.exceptions import RewardsAlreadyIssued
from cardleague.models import LeagueTableEntry, Reward
from cardleague.persistence.db import transaction
from cardleague.persistence.repositories import RewardRepository, UserRepository

logger = logging.getLogger(__name__)

REWARD_SCHEDULE: dict[int, int] = {1: 250, 2: 200, 3: 150, 4: 100}


def allocate_rewards(table: list[LeagueTableEntry]) -> list[tuple[str, int, int]]:
    """(user_id, position, coins) for each ranked entry. Positions outside the schedule earn 0."""
    return [(e.user_id, e.rank, REWARD_SCHEDULE.get(e.rank, 0)) for e in table]


def issue_rewards(conn: sqlite3.Connection, lobby_id: str, table: list[LeagueTableEntry]) -> list[Reward]:
    """
    Write one reward row per user and credit their balance.
    Joins the caller's transaction when there is one.
    Raises RewardsAlreadyIssued if the lobby has been paid out before.
    """
    reward_repo = RewardRepository()
    user_repo = UserRepository()
    with transaction(conn):
        if reward_repo.exists_for_lobby(conn, lobby_id):
            raise RewardsAlreadyIssued(lobby_id)
        issued: list[Reward] = []
        for user_id, position, coins in allocate_rewards(table):
            issued.append(reward_repo.create(conn, lobby_id, user_id, position, coins))
            user_repo.credit_coins(conn, user_id, coins)
    for r in issued:
        logger.info("Reward issued: lobby=%s user=%s position=%d coins=%d", lobby_id, r.user_id, r.position, r.coins)
    return issued
