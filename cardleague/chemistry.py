"""
Team chemistry: color clustering bonus.
Every color with 2+ players adds count² to team strength; singletons add nothing.
Placeholder (dummy) cards are excluded before counting.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable

# ---------- Chemistry rules ----------
EXACT_CHEMISTRY_COLORS = 3
MIN_PLAYERS_PER_COLOR = 2


@dataclass(frozen=True)
class ColorBonus:
    """Chemistry contribution of one color group."""
    color: str
    player_count: int
    bonus: int

    def to_dict(self) -> dict[str, Any]:
        return {"color": self.color, "player_count": self.player_count, "bonus": self.bonus}


@dataclass(frozen=True)
class ChemistryResult:
    bonus: int
    breakdown: tuple[ColorBonus, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"bonus": self.bonus, "breakdown": [b.to_dict() for b in self.breakdown]}


def count_colors(colors: Iterable[str | None]) -> Counter:
    """Players per color. None entries (empty slots) are ignored."""
    return Counter(c for c in colors if c is not None)


def color_bonus(count: int) -> int:
    """count² for groups of 2+, else 0."""
    if count < MIN_PLAYERS_PER_COLOR:
        return 0
    return count * count


def evaluate_chemistry(colors: Iterable[str | None]) -> ChemistryResult:
    """
    Sum-of-squares bonus over all qualifying color groups.
    Does not enforce the 3-color rule; see validate_chemistry.
    Breakdown is sorted by bonus desc, then color name.
    """
    counts = count_colors(colors)
    breakdown = [
        ColorBonus(color=color, player_count=n, bonus=color_bonus(n))
        for color, n in counts.items()
        if n >= MIN_PLAYERS_PER_COLOR
    ]
    breakdown.sort(key=lambda b: (-b.bonus, b.color))
    return ChemistryResult(bonus=sum(b.bonus for b in breakdown), breakdown=tuple(breakdown))


def validate_chemistry(colors: Iterable[str | None]) -> list[str]:
    """
    Rule violations for a lineup's colors: exactly 3 distinct colors, each with 2+ players.
    Empty list = valid.
    """
    counts = count_colors(colors)
    errors: list[str] = []
    if len(counts) != EXACT_CHEMISTRY_COLORS:
        errors.append(
            f"Team must have exactly {EXACT_CHEMISTRY_COLORS} different colors (has {len(counts)})"
        )
    for color in sorted(counts):
        if counts[color] < MIN_PLAYERS_PER_COLOR:
            errors.append(
                f"Color {color} must have at least {MIN_PLAYERS_PER_COLOR} players (has {counts[color]})"
            )
    return errors
