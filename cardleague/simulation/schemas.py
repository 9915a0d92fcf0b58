"""
Output schema for the match simulator.
Chance events are JSON-serializable for persistence on the match row.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Side(str, Enum):
    HOME = "home"
    AWAY = "away"


@dataclass(frozen=True)
class ChanceEvent:
    """A converted scoring chance (goal)."""
    minute: int  # 1..90
    side: str  # Side value
    chance_index: int  # 0..99 within the side's allotment
    type: str = "goal"


@dataclass
class MatchSimulation:
    """
    Result of one simulated match.
    events is sorted by minute ascending.
    """
    home_score: int
    away_score: int
    home_probability: float
    away_probability: float
    chances_per_team: int
    events: list[ChanceEvent] = field(default_factory=list)
    seed: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "home_score": self.home_score,
            "away_score": self.away_score,
            "home_probability": self.home_probability,
            "away_probability": self.away_probability,
            "chances_per_team": self.chances_per_team,
            "events": [event_to_dict(e) for e in self.events],
        }


def event_to_dict(e: ChanceEvent) -> dict[str, Any]:
    return {
        "minute": e.minute,
        "side": e.side,
        "chance_index": e.chance_index,
        "type": e.type,
    }


def event_from_dict(d: dict[str, Any]) -> ChanceEvent:
    return ChanceEvent(
        minute=int(d["minute"]),
        side=d["side"],
        chance_index=int(d["chance_index"]),
        type=d.get("type", "goal"),
    )


def dump_events(events: list[ChanceEvent]) -> str:
    return json.dumps([event_to_dict(e) for e in events])


def load_events(events_json: str | None) -> list[ChanceEvent]:
    if not events_json:
        return []
    return [event_from_dict(d) for d in json.loads(events_json)]
