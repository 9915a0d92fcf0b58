"""
Seeding helpers for league tests: catalog cards, lineups, a full 4-member lobby.
"""
from __future__ import annotations

from cardleague.catalog import upsert_player
from cardleague.formations import DEFAULT_FORMATION, formation_positions
from cardleague.models import Player
from cardleague.persistence.repositories import LobbyMemberRepository, LobbyRepository, UserRepository

DEFAULT_COLORS = ("rot", "gelb", "lila")


def make_lineup(
    conn,
    rating: int = 80,
    split: tuple[int, ...] = (5, 3, 3),
    colors: tuple[str, ...] = DEFAULT_COLORS,
    prefix: str = "",
    formation: str = DEFAULT_FORMATION,
) -> list[str]:
    """
    Insert catalog cards for one lineup and return their ids (len = sum(split)).
    Card i gets the position of formation slot i, so the lineup passes position checks.
    """
    positions = formation_positions(formation)
    ids: list[str] = []
    for color, count in zip(colors, split):
        for i in range(count):
            pid = f"{prefix}{color}-{rating}-{i}"
            upsert_player(conn, Player(id=pid, name=pid, rating=rating, position=positions[len(ids)], color=color))
            ids.append(pid)
    return ids


def seed_full_lobby(conn, service, ratings: tuple[int, ...] = (90, 80, 70, 60)):
    """
    Lobby with 4 members (user-1..user-4) and a valid {5,3,3} team per member per matchday.
    Each team's strength is 11 * rating + 43. Returns (lobby, users).
    """
    lobby = LobbyRepository().create(conn, "Test Lobby")
    user_repo = UserRepository()
    member_repo = LobbyMemberRepository()
    users = []
    for i in range(len(ratings)):
        user = user_repo.create(conn, f"player{i + 1}", id=f"user-{i + 1}")
        member_repo.add(conn, lobby.id, user.id)
        users.append(user)
    for md in (1, 2, 3):
        for user, rating in zip(users, ratings):
            lineup = make_lineup(conn, rating=rating, prefix=f"{user.id}-md{md}-")
            service.submit_team(conn, lobby.id, user.id, md, lineup)
    return lobby, users
