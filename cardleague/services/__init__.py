"""
Service layer: scheduling, standings, rewards, simulation, league orchestration.
No persistence writes in simulation_service; league_service orchestrates persistence.
"""
from .simulation_service import run_team_match_simulation
from .league_service import LeagueService
from .rewards import REWARD_SCHEDULE, allocate_rewards, issue_rewards
from .scheduling import generate_league_schedule, generate_matchday_schedule, round_robin_pairings
from .standings import build_league_table

__all__ = [
    "run_team_match_simulation",
    "LeagueService",
    "REWARD_SCHEDULE",
    "allocate_rewards",
    "issue_rewards",
    "generate_league_schedule",
    "generate_matchday_schedule",
    "round_robin_pairings",
    "build_league_table",
]
