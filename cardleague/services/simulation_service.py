"""
Pure team-vs-team simulation: no persistence writes.
Loads both lineups, scores them, runs the match engine. The league service
persists the outcome exactly once.
"""
from __future__ import annotations

import sqlite3
from typing import Any

from cardleague.persistence.repositories import TeamRepository
from cardleague.simulation.match_engine import simulate_match
from cardleague.simulation.rng import SeededRNG
from cardleague.simulation.strength import calculate_team_strength


def run_team_match_simulation(
    conn: sqlite3.Connection,
    home_team_id: str,
    away_team_id: str,
    rng: SeededRNG | None = None,
) -> dict[str, Any]:
    """
    Simulate home vs away. Does not persist anything.
    Returns home_strength / away_strength (TeamStrength) and simulation (MatchSimulation).
    Raises IncompleteTeam / InvalidChemistry for lineups that cannot play.
    """
    team_repo = TeamRepository()
    home_team = team_repo.get(conn, home_team_id)
    away_team = team_repo.get(conn, away_team_id)
    if home_team is None:
        raise ValueError(f"Team not found: {home_team_id}")
    if away_team is None:
        raise ValueError(f"Team not found: {away_team_id}")

    home_strength = calculate_team_strength(home_team)
    away_strength = calculate_team_strength(away_team)
    simulation = simulate_match(home_strength.total, away_strength.total, rng=rng)
    return {
        "home_strength": home_strength,
        "away_strength": away_strength,
        "simulation": simulation,
    }
