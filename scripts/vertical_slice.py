#!/usr/bin/env python3
"""
Vertical slice: Seed cards → Fill a lobby → Create league → Simulate 18 matches → Table and rewards.
Run from project root: python3 scripts/vertical_slice.py [--seed N]
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from cardleague.catalog import upsert_player
from cardleague.formations import DEFAULT_FORMATION, formation_positions
from cardleague.models import Player, PlayerColor
from cardleague.persistence import (
    LobbyMemberRepository,
    LobbyRepository,
    UserRepository,
    get_connection,
    init_db,
    transaction,
)
from cardleague.persistence.db import set_db_path
from cardleague.services.league_service import LeagueService
from cardleague.simulation import SeededRNG

DEMO_USERS = ["alice", "bob", "carla", "dev"]
DEMO_RATINGS = [88, 82, 76, 70]


def _demo_lineup(conn, username: str, matchday: int, rating: int, colors: list[str]) -> list[str]:
    """{4,4,3} lineup in the default formation: chemistry bonus 41."""
    positions = formation_positions(DEFAULT_FORMATION)
    ids: list[str] = []
    for color, count in zip(colors, (4, 4, 3)):
        for i in range(count):
            pid = f"{username}-md{matchday}-{color}-{i}"
            upsert_player(conn, Player(id=pid, name=pid, rating=rating, position=positions[len(ids)], color=color))
            ids.append(pid)
    return ids


def main() -> None:
    parser = argparse.ArgumentParser(description="Run one full card league end to end")
    parser.add_argument("--seed", type=int, default=99999)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Use data/vertical_slice.db for demo (distinct from app.db); start fresh each run
    db_path = PROJECT_ROOT / "data" / "vertical_slice.db"
    if db_path.exists():
        db_path.unlink()
    set_db_path(db_path)
    init_db(db_path=db_path)

    svc = LeagueService(rng=SeededRNG(args.seed))
    palette = [c.value for c in PlayerColor]
    conn = get_connection()
    try:
        # 1. Lobby with 4 members
        with transaction(conn):
            lobby = LobbyRepository().create(conn, "Vertical Slice Lobby")
            for name in DEMO_USERS:
                user = UserRepository().create(conn, name, id=name)
                LobbyMemberRepository().add(conn, lobby.id, user.id)
        print(f"Created lobby: {lobby.id}")

        # 2. One team per user per matchday
        for md in (1, 2, 3):
            for i, (name, rating) in enumerate(zip(DEMO_USERS, DEMO_RATINGS)):
                colors = palette[(i + md) % 8:] + palette[:(i + md) % 8]
                svc.submit_team(conn, lobby.id, name, md, _demo_lineup(conn, name, md, rating, colors[:3]))

        # 3. Schedule and play
        created = svc.create_league(conn, lobby.id)
        print(f"Scheduled {created['total_matches']} matches: {created['per_matchday_counts']}")
        result = svc.simulate_entire_league(conn, lobby.id)
        for r in result["results"]:
            print(f"  MD{r['matchday']} {r['home_team_id'][:8]} {r['home_score']}-{r['away_score']} {r['away_team_id'][:8]}")

        # 4. Final table and rewards
        status = svc.get_league_status(conn, lobby.id)
        print(f"\nState: {status['state']}  ({status['played_matches']}/{status['total_matches']} played)")
        for row in status["league_table"]:
            print(f"  {row['rank']}. {row['user_id']:<6} pts={row['points']:<3} gd={row['goal_difference']:+d}")
        for reward in status["rewards"]:
            print(f"  reward: {reward['user_id']} +{reward['coins']} coins")

        print("\nVertical slice complete.")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
