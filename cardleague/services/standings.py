"""
League table: full fold over a lobby's match log.
No incremental or cached state; rebuilding from the same played matches always
gives the same table.
"""
from __future__ import annotations

from typing import Iterable

from cardleague.models import LeagueTableEntry, Match

POINTS_WIN = 3
POINTS_DRAW = 1
POINTS_LOSS = 0


def match_points(goals_for: int, goals_against: int) -> int:
    if goals_for > goals_against:
        return POINTS_WIN
    if goals_for < goals_against:
        return POINTS_LOSS
    return POINTS_DRAW


def _apply_result(entry: LeagueTableEntry, goals_for: int, goals_against: int) -> None:
    entry.goals_for += goals_for
    entry.goals_against += goals_against
    entry.points += match_points(goals_for, goals_against)
    if goals_for > goals_against:
        entry.wins += 1
    elif goals_for < goals_against:
        entry.losses += 1
    else:
        entry.draws += 1


def sort_key(entry: LeagueTableEntry) -> tuple[int, int, int, str]:
    """points desc → goal difference desc → goals for desc → user id asc (total order)."""
    return (-entry.points, -entry.goal_difference, -entry.goals_for, entry.user_id)


def build_league_table(
    matches: Iterable[Match],
    team_owners: dict[str, str],
    member_ids: Iterable[str] = (),
    matchday: int | None = None,
) -> list[LeagueTableEntry]:
    """
    One entry per user, built from played matches only.
    team_owners maps team_id -> user_id (teams differ per matchday, standings are per user).
    member_ids seeds zero rows so every lobby member is listed before they have played.
    matchday restricts the fold to one matchday's matches.
    """
    by_user: dict[str, LeagueTableEntry] = {uid: LeagueTableEntry(user_id=uid) for uid in member_ids}
    for m in matches:
        if not m.played:
            continue
        if matchday is not None and m.matchday != matchday:
            continue
        home_user = team_owners[m.home_team_id]
        away_user = team_owners[m.away_team_id]
        home = by_user.setdefault(home_user, LeagueTableEntry(user_id=home_user))
        away = by_user.setdefault(away_user, LeagueTableEntry(user_id=away_user))
        _apply_result(home, m.home_score, m.away_score)
        _apply_result(away, m.away_score, m.home_score)
    table = sorted(by_user.values(), key=sort_key)
    for position, entry in enumerate(table, start=1):
        entry.rank = position
    return table
