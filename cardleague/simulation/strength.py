"""
Team strength: sum of the 11 snapshotted ratings plus the chemistry bonus.
Pure and deterministic. Invalid lineups raise instead of scoring zero.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cardleague.chemistry import evaluate_chemistry, validate_chemistry
from cardleague.exceptions import IncompleteTeam, InvalidChemistry
from cardleague.models import PLAYERS_PER_TEAM, Team, TeamSlot


@dataclass(frozen=True)
class TeamStrength:
    team_id: str
    player_points: int
    chemistry_points: int

    @property
    def total(self) -> int:
        return self.player_points + self.chemistry_points

    def to_dict(self) -> dict[str, Any]:
        return {
            "team_id": self.team_id,
            "player_points": self.player_points,
            "chemistry_points": self.chemistry_points,
            "total_strength": self.total,
        }


def chemistry_colors(slots: list[TeamSlot]) -> list[str | None]:
    """Colors that count toward chemistry: filled, non-dummy slots only."""
    return [s.color for s in slots if s.is_filled and not s.is_dummy]


def check_team_eligible(team: Team) -> None:
    """Raise IncompleteTeam / InvalidChemistry if the team cannot be simulated."""
    filled = team.filled_slots
    if len(filled) < PLAYERS_PER_TEAM:
        raise IncompleteTeam(team.id, len(filled), PLAYERS_PER_TEAM)
    errors = validate_chemistry(chemistry_colors(filled))
    if errors:
        raise InvalidChemistry(team.id, errors)


def calculate_team_strength(team: Team) -> TeamStrength:
    check_team_eligible(team)
    filled = team.filled_slots
    chemistry = evaluate_chemistry(chemistry_colors(filled))
    return TeamStrength(
        team_id=team.id,
        player_points=sum(s.rating for s in filled),
        chemistry_points=chemistry.bonus,
    )
