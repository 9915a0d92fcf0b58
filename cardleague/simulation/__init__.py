"""
Match simulation: team strength, seeded RNG, and the weighted-chance match engine.
Pure functions; no persistence.
"""
from .schemas import (
    ChanceEvent,
    MatchSimulation,
    Side,
    event_to_dict,
    dump_events,
    load_events,
)
from .rng import SeededRNG
from .strength import TeamStrength, calculate_team_strength, check_team_eligible
from .match_engine import (
    CHANCES_PER_TEAM,
    MATCH_MINUTES,
    conversion_probabilities,
    simulate_match,
)

__all__ = [
    "ChanceEvent",
    "MatchSimulation",
    "Side",
    "event_to_dict",
    "dump_events",
    "load_events",
    "SeededRNG",
    "TeamStrength",
    "calculate_team_strength",
    "check_team_eligible",
    "CHANCES_PER_TEAM",
    "MATCH_MINUTES",
    "conversion_probabilities",
    "simulate_match",
]
