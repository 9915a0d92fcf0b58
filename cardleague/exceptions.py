"""
League engine exceptions.
Raised by services; the API layer maps them to HTTP status codes.
"""
from __future__ import annotations


class LeagueError(ValueError):
    """Base class for all league engine errors."""


# ---------- Lobby ----------


class LobbyNotFound(LeagueError):
    def __init__(self, lobby_id: str) -> None:
        self.lobby_id = lobby_id
        super().__init__(f"Lobby not found: {lobby_id}")


class LobbyNotFull(LeagueError):
    """A league needs exactly 4 lobby members."""

    def __init__(self, lobby_id: str, members: int, required: int) -> None:
        self.lobby_id = lobby_id
        self.members = members
        self.required = required
        super().__init__(
            f"Lobby {lobby_id} must have exactly {required} members to create a league (has {members})"
        )


# ---------- Scheduling ----------


class AlreadyScheduled(LeagueError):
    """League already exists for this lobby."""

    def __init__(self, lobby_id: str) -> None:
        self.lobby_id = lobby_id
        super().__init__(f"League already exists for lobby {lobby_id}")


class ScheduleAlreadyExists(LeagueError):
    """Matches already exist for (lobby, matchday)."""

    def __init__(self, lobby_id: str, matchday: int) -> None:
        self.lobby_id = lobby_id
        self.matchday = matchday
        super().__init__(f"Matches already exist for lobby {lobby_id}, matchday {matchday}")


# ---------- Matches ----------


class MatchNotFound(LeagueError):
    def __init__(self, match_id: str) -> None:
        self.match_id = match_id
        super().__init__(f"Match not found: {match_id}")


class AlreadyPlayed(LeagueError):
    """Match has a persisted result; results are never re-simulated."""

    def __init__(self, match_id: str) -> None:
        self.match_id = match_id
        super().__init__(f"Match {match_id} has already been played")


# ---------- Rosters ----------


class IncompleteTeam(LeagueError):
    def __init__(self, team_id: str, filled: int, required: int) -> None:
        self.team_id = team_id
        self.filled = filled
        self.required = required
        super().__init__(f"Team {team_id} has {filled} of {required} slots filled")


class InvalidChemistry(LeagueError):
    """Team colors break the chemistry rule (exactly 3 colors, 2+ players each)."""

    def __init__(self, team_id: str, errors: list[str]) -> None:
        self.team_id = team_id
        self.errors = list(errors)
        super().__init__(f"Team {team_id} has invalid chemistry: " + "; ".join(self.errors))


class PlayerAlreadyUsed(LeagueError):
    """A real card may appear once per user per matchday."""

    def __init__(self, player_ids: list[str], matchday: int) -> None:
        self.player_ids = list(player_ids)
        self.matchday = matchday
        super().__init__(
            f"Players already used on matchday {matchday}: " + ", ".join(sorted(self.player_ids))
        )


class TeamAlreadyExists(LeagueError):
    """One team per user per matchday in a lobby."""

    def __init__(self, lobby_id: str, user_id: str, matchday: int) -> None:
        self.lobby_id = lobby_id
        self.user_id = user_id
        self.matchday = matchday
        super().__init__(
            f"Team for this matchday already exists (lobby {lobby_id}, user {user_id}, matchday {matchday})"
        )


class InvalidPositions(LeagueError):
    """A real card stands in a slot whose formation position differs from its own."""

    def __init__(self, formation: str, errors: list[str]) -> None:
        self.formation = formation
        self.errors = list(errors)
        super().__init__(f"Player position validation failed for {formation}: " + "; ".join(self.errors))


# ---------- Rewards ----------


class RewardsAlreadyIssued(LeagueError):
    def __init__(self, lobby_id: str) -> None:
        self.lobby_id = lobby_id
        super().__init__(f"Rewards already issued for lobby {lobby_id}")
