"""
Match engine: two team strengths → a final score via weighted Bernoulli trials.

Each side gets CHANCES_PER_TEAM independent chances. A side converts each chance
with probability equal to its share of the combined strength (0.5 each when both
strengths are 0). Every converted chance is stamped with a minute in 1..90 and
the goal log is returned sorted by minute.
"""
from __future__ import annotations

from .rng import SeededRNG
from .schemas import ChanceEvent, MatchSimulation, Side

CHANCES_PER_TEAM = 100
MATCH_MINUTES = 90


def conversion_probabilities(strength_home: float, strength_away: float) -> tuple[float, float]:
    """(p_home, p_away) per-chance conversion probabilities."""
    if strength_home < 0 or strength_away < 0:
        raise ValueError(
            f"Strengths must be non-negative (home={strength_home}, away={strength_away})"
        )
    total = strength_home + strength_away
    if total == 0:
        return 0.5, 0.5
    return strength_home / total, strength_away / total


def _run_chances(rng: SeededRNG, side: Side, p: float, chances: int) -> list[ChanceEvent]:
    goals: list[ChanceEvent] = []
    for i in range(chances):
        if rng.bernoulli(p):
            goals.append(ChanceEvent(minute=rng.randint(1, MATCH_MINUTES), side=side.value, chance_index=i))
    return goals


def simulate_match(
    strength_home: float,
    strength_away: float,
    rng: SeededRNG | None = None,
    chances_per_team: int = CHANCES_PER_TEAM,
) -> MatchSimulation:
    """
    Simulate one match. Not idempotent without a seeded rng: callers persist the
    outcome exactly once.
    """
    p_home, p_away = conversion_probabilities(strength_home, strength_away)
    rng = rng or SeededRNG()
    home_goals = _run_chances(rng, Side.HOME, p_home, chances_per_team)
    away_goals = _run_chances(rng, Side.AWAY, p_away, chances_per_team)
    # sorted() is stable: same-minute goals keep home-then-away trial order
    events = sorted(home_goals + away_goals, key=lambda e: e.minute)
    return MatchSimulation(
        home_score=len(home_goals),
        away_score=len(away_goals),
        home_probability=p_home,
        away_probability=p_away,
        chances_per_team=chances_per_team,
        events=events,
        seed=rng.seed,
    )
