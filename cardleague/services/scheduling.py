"""
Deterministic round-robin schedule generation for a 4-team matchday.

Each matchday every team plays every other team exactly once: the 6 unordered
2-combinations of the 4 team ids. Pairs are emitted in input order (i < j) and
the earlier team is home. Same team list ordering yields the same schedule.

A league is 3 matchdays; each matchday uses its own 4 teams (one per user),
so the full league is 18 fixtures.
"""
from __future__ import annotations

from itertools import combinations
from typing import Any

TEAMS_PER_MATCHDAY = 4
MATCHDAYS_PER_LEAGUE = 3
MATCHES_PER_MATCHDAY = TEAMS_PER_MATCHDAY * (TEAMS_PER_MATCHDAY - 1) // 2
TOTAL_LEAGUE_MATCHES = MATCHES_PER_MATCHDAY * MATCHDAYS_PER_LEAGUE


def round_robin_pairings(team_ids: list[str]) -> list[tuple[str, str]]:
    """
    (home_team_id, away_team_id) for every pair of the 4 teams.
    Raises ValueError unless given exactly 4 distinct ids.
    """
    ids = list(team_ids)
    if len(ids) != TEAMS_PER_MATCHDAY:
        raise ValueError(f"A matchday needs exactly {TEAMS_PER_MATCHDAY} teams, got {len(ids)}")
    if len(set(ids)) != len(ids):
        raise ValueError("Team ids for a matchday must be distinct")
    return list(combinations(ids, 2))


def generate_matchday_schedule(team_ids: list[str], matchday: int) -> list[dict[str, Any]]:
    """
    Return list of fixtures: { "matchday": int, "home_team_id": str, "away_team_id": str }.
    No duplicate matchups, no self-pairs.
    """
    if not 1 <= matchday <= MATCHDAYS_PER_LEAGUE:
        raise ValueError(f"matchday must be 1..{MATCHDAYS_PER_LEAGUE}, got {matchday}")
    return [
        {"matchday": matchday, "home_team_id": h, "away_team_id": a}
        for h, a in round_robin_pairings(team_ids)
    ]


def generate_league_schedule(teams_by_matchday: dict[int, list[str]]) -> list[dict[str, Any]]:
    """Fixtures for all 3 matchdays, ordered by matchday."""
    missing = [md for md in range(1, MATCHDAYS_PER_LEAGUE + 1) if md not in teams_by_matchday]
    if missing:
        raise ValueError(f"No teams for matchday(s): {missing}")
    fixtures: list[dict[str, Any]] = []
    for md in range(1, MATCHDAYS_PER_LEAGUE + 1):
        fixtures.extend(generate_matchday_schedule(teams_by_matchday[md], md))
    return fixtures
