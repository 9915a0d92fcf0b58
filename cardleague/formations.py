"""
Formations: the position each of the 11 slots expects, in slot order.
A real card only fits a slot of its own position; placeholder cards fit any slot.
"""
from __future__ import annotations

from typing import Sequence

from cardleague.models import Player

DEFAULT_FORMATION = "4-4-2"

FORMATIONS: dict[str, tuple[str, ...]] = {
    "4-4-2": ("GK", "LB", "CB", "CB", "RB", "LM", "CM", "CM", "RM", "ST", "ST"),
    "4-3-3": ("GK", "LB", "CB", "CB", "RB", "CDM", "CM", "CAM", "LW", "ST", "RW"),
    "4-2-3-1": ("GK", "LB", "CB", "CB", "RB", "CDM", "CDM", "LM", "CAM", "RM", "ST"),
    "3-5-2": ("GK", "CB", "CB", "CB", "LM", "CDM", "CM", "CDM", "RM", "ST", "ST"),
    "3-4-3": ("GK", "CB", "CB", "CB", "LM", "CM", "CM", "RM", "LF", "CF", "RF"),
}


def formation_positions(formation: str) -> tuple[str, ...]:
    positions = FORMATIONS.get(formation)
    if positions is None:
        raise ValueError(f"Unknown formation {formation!r}; expected one of {sorted(FORMATIONS)}")
    return positions


def position_errors(cards: Sequence[Player | None], formation: str) -> list[str]:
    """
    One message per misplaced card. cards[i] is the card in slot i (None = empty slot).
    Empty slots and placeholder cards are not checked.
    """
    positions = formation_positions(formation)
    errors: list[str] = []
    for idx, card in enumerate(cards):
        if card is None or card.is_dummy or idx >= len(positions):
            continue
        if card.position != positions[idx]:
            errors.append(f"{card.name} ({card.position}) cannot be placed in {positions[idx]} position")
    return errors
