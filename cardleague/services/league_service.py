"""
Lobby-centric league service: scheduling, match execution, matchday sequencing, completion.
Create league: 3 matchdays x 6 round-robin fixtures. Simulate: play one fixture,
persist it exactly once, advance the matchday, pay out rewards after the 18th result.

League state is never stored on its own; it is derived from the lobby's rows:
no matches -> NO_LEAGUE, unplayed matches -> SCHEDULED, all played -> COMPLETE,
rewards written -> REWARDED.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Sequence

from cardleague.catalog import get_players
from cardleague.exceptions import (
    AlreadyPlayed,
    AlreadyScheduled,
    InvalidPositions,
    LobbyNotFound,
    LobbyNotFull,
    MatchNotFound,
    PlayerAlreadyUsed,
    ScheduleAlreadyExists,
    TeamAlreadyExists,
)
from cardleague.formations import DEFAULT_FORMATION, formation_positions, position_errors
from cardleague.models import (
    LeagueState,
    LeagueTableEntry,
    Lobby,
    LobbyStatus,
    Match,
    Reward,
    Team,
    is_dummy_player,
)
from cardleague.persistence.db import transaction
from cardleague.persistence.repositories import (
    LobbyMemberRepository,
    LobbyRepository,
    MatchRepository,
    RewardRepository,
    TeamRepository,
)
from cardleague.services.rewards import issue_rewards
from cardleague.services.scheduling import (
    MATCHDAYS_PER_LEAGUE,
    TEAMS_PER_MATCHDAY,
    TOTAL_LEAGUE_MATCHES,
    generate_league_schedule,
    generate_matchday_schedule,
)
from cardleague.services.simulation_service import run_team_match_simulation
from cardleague.services.standings import build_league_table
from cardleague.simulation.rng import SeededRNG
from cardleague.simulation.schemas import dump_events, event_to_dict

logger = logging.getLogger(__name__)

MATCHDAYS = range(1, MATCHDAYS_PER_LEAGUE + 1)


# ---------- LeagueService ----------


class LeagueService:
    """
    Domain logic for a lobby's league: guards, scheduling, simulation, completion.
    Persistence is delegated to repositories; every multi-row write runs in one transaction.
    rng: inject a SeededRNG for reproducible results; None draws fresh entropy per match.
    """

    def __init__(self, rng: SeededRNG | None = None) -> None:
        self._rng = rng
        self._lobby_repo = LobbyRepository()
        self._member_repo = LobbyMemberRepository()
        self._team_repo = TeamRepository()
        self._match_repo = MatchRepository()
        self._reward_repo = RewardRepository()

    # ---------- Guards ----------

    def _get_lobby(self, conn: sqlite3.Connection, lobby_id: str) -> Lobby:
        lobby = self._lobby_repo.get(conn, lobby_id)
        if lobby is None:
            raise LobbyNotFound(lobby_id)
        return lobby

    def _check_matchday(self, matchday: int) -> None:
        if matchday not in MATCHDAYS:
            raise ValueError(f"matchday must be 1..{MATCHDAYS_PER_LEAGUE}, got {matchday}")

    # ---------- Teams ----------

    def submit_team(
        self,
        conn: sqlite3.Connection,
        lobby_id: str,
        user_id: str,
        matchday: int,
        player_ids: Sequence[str | None],
        name: str | None = None,
        formation: str = DEFAULT_FORMATION,
    ) -> Team:
        """
        Register a member's lineup for one matchday, before the league is created.
        One team per user per matchday. A real card may appear only once in the lineup
        and only in a slot of its own position; dummies are exempt from both checks.
        """
        self._check_matchday(matchday)
        formation_positions(formation)
        with transaction(conn):
            self._get_lobby(conn, lobby_id)
            if user_id not in {m.user_id for m in self._member_repo.list_by_lobby(conn, lobby_id)}:
                raise ValueError(f"User {user_id} is not a member of lobby {lobby_id}")
            if self._match_repo.exists_for_lobby(conn, lobby_id):
                raise AlreadyScheduled(lobby_id)
            if self._team_repo.get_by_user_and_matchday(conn, lobby_id, user_id, matchday) is not None:
                raise TeamAlreadyExists(lobby_id, user_id, matchday)
            real_ids = [p for p in player_ids if p is not None and not is_dummy_player(p)]
            duplicates = {p for p in real_ids if real_ids.count(p) > 1}
            if duplicates:
                raise PlayerAlreadyUsed(sorted(duplicates), matchday)
            cards = get_players(conn, real_ids)
            errors = position_errors([cards.get(p) if p else None for p in player_ids], formation)
            if errors:
                raise InvalidPositions(formation, errors)
            team = self._team_repo.create(
                conn, user_id, lobby_id, matchday, player_ids, name=name, formation=formation
            )
        logger.info("Team submitted: lobby=%s user=%s matchday=%d team=%s", lobby_id, user_id, matchday, team.id)
        return team

    # ---------- Scheduling ----------

    def create_matchday_schedule(
        self,
        conn: sqlite3.Connection,
        lobby_id: str,
        matchday: int,
        team_ids: list[str] | None = None,
    ) -> list[Match]:
        """
        Materialize the 6 round-robin fixtures of one matchday as unplayed matches.
        team_ids defaults to the matchday's teams in submission order (earlier team is home).
        """
        self._check_matchday(matchday)
        with transaction(conn):
            if self._match_repo.exists_for_matchday(conn, lobby_id, matchday):
                raise ScheduleAlreadyExists(lobby_id, matchday)
            if team_ids is None:
                team_ids = [t.id for t in self._team_repo.list_by_lobby_and_matchday(conn, lobby_id, matchday)]
            fixtures = generate_matchday_schedule(team_ids, matchday)
            return [
                self._match_repo.create(
                    conn, lobby_id, f["home_team_id"], f["away_team_id"], f["matchday"]
                )
                for f in fixtures
            ]

    def create_league(self, conn: sqlite3.Connection, lobby_id: str) -> dict[str, Any]:
        """
        Schedule all 18 fixtures for a full lobby and move it to IN_PROGRESS.
        Requires 4 members, no existing matches, 4 teams on every matchday.
        """
        with transaction(conn):
            lobby = self._get_lobby(conn, lobby_id)
            members = self._member_repo.count(conn, lobby_id)
            if members != TEAMS_PER_MATCHDAY:
                raise LobbyNotFull(lobby_id, members, TEAMS_PER_MATCHDAY)
            if self._match_repo.exists_for_lobby(conn, lobby_id):
                raise AlreadyScheduled(lobby_id)
            teams_by_matchday = {
                md: [t.id for t in self._team_repo.list_by_lobby_and_matchday(conn, lobby_id, md)]
                for md in MATCHDAYS
            }
            missing = [md for md, ids in teams_by_matchday.items() if len(ids) != TEAMS_PER_MATCHDAY]
            if missing:
                raise ValueError(
                    f"Every matchday needs {TEAMS_PER_MATCHDAY} teams; incomplete matchday(s): {missing}"
                )
            per_matchday_counts: dict[int, int] = {md: 0 for md in MATCHDAYS}
            for f in generate_league_schedule(teams_by_matchday):
                self._match_repo.create(conn, lobby_id, f["home_team_id"], f["away_team_id"], f["matchday"])
                per_matchday_counts[f["matchday"]] += 1
            self._lobby_repo.update_status(conn, lobby_id, LobbyStatus.IN_PROGRESS.value)
            self._lobby_repo.update_current_matchday(conn, lobby_id, 1)
        total = sum(per_matchday_counts.values())
        logger.info("League created: lobby=%s (%s) matches=%d", lobby_id, lobby.name, total)
        return {
            "lobby_id": lobby_id,
            "total_matches": total,
            "per_matchday_counts": per_matchday_counts,
        }

    # ---------- Simulation ----------

    def simulate_match(self, conn: sqlite3.Connection, match_id: str) -> dict[str, Any]:
        """
        Simulate one fixture and persist it. Raises MatchNotFound, AlreadyPlayed,
        IncompleteTeam, InvalidChemistry. A concurrent caller that loses the race
        to persist gets AlreadyPlayed; its simulation is discarded.
        """
        match = self._match_repo.get(conn, match_id)
        if match is None:
            raise MatchNotFound(match_id)
        if match.played:
            raise AlreadyPlayed(match_id)

        result = run_team_match_simulation(conn, match.home_team_id, match.away_team_id, rng=self._rng)
        home_strength = result["home_strength"]
        away_strength = result["away_strength"]
        sim = result["simulation"]

        rewards: list[Reward] = []
        with transaction(conn):
            persisted = self._match_repo.mark_played(
                conn,
                match_id,
                sim.home_score,
                sim.away_score,
                home_strength=home_strength.total,
                away_strength=away_strength.total,
                events_json=dump_events(sim.events),
            )
            if persisted:
                self._advance_matchday(conn, match.lobby_id)
                rewards = self._complete_if_finished(conn, match.lobby_id)
        if not persisted:
            logger.warning("Match %s was played by a concurrent request; result discarded", match_id)
            raise AlreadyPlayed(match_id)

        logger.info(
            "Match played: lobby=%s matchday=%d %s %d-%d %s",
            match.lobby_id, match.matchday, match.home_team_id, sim.home_score, sim.away_score, match.away_team_id,
        )
        return {
            "match_id": match_id,
            "lobby_id": match.lobby_id,
            "matchday": match.matchday,
            "home_team_id": match.home_team_id,
            "away_team_id": match.away_team_id,
            "home_score": sim.home_score,
            "away_score": sim.away_score,
            "home_strength": home_strength.to_dict(),
            "away_strength": away_strength.to_dict(),
            "home_probability": sim.home_probability,
            "away_probability": sim.away_probability,
            "events": [event_to_dict(e) for e in sim.events],
            "league_complete": self._is_complete(conn, match.lobby_id),
            "rewards": [r.to_dict() for r in rewards],
        }

    def _simulate_batch(self, conn: sqlite3.Connection, matches: list[Match]) -> list[dict[str, Any]]:
        results: list[dict[str, Any]] = []
        for m in sorted(matches, key=lambda m: (m.matchday, m.id)):
            try:
                results.append(self.simulate_match(conn, m.id))
            except AlreadyPlayed:
                logger.warning("Skipping match %s: already played", m.id)
        return results

    def simulate_entire_league(self, conn: sqlite3.Connection, lobby_id: str) -> dict[str, Any]:
        """Play every unplayed fixture in (matchday, match id) order. Re-running resumes where it stopped."""
        self._get_lobby(conn, lobby_id)
        pending = self._match_repo.list_by_lobby(conn, lobby_id, played=False)
        results = self._simulate_batch(conn, pending)
        return {
            "lobby_id": lobby_id,
            "results": results,
            "league_complete": self._is_complete(conn, lobby_id),
        }

    def simulate_matchday(self, conn: sqlite3.Connection, lobby_id: str, matchday: int) -> dict[str, Any]:
        """Play every unplayed fixture of one matchday."""
        self._check_matchday(matchday)
        self._get_lobby(conn, lobby_id)
        pending = self._match_repo.list_by_lobby(conn, lobby_id, matchday=matchday, played=False)
        results = self._simulate_batch(conn, pending)
        return {
            "lobby_id": lobby_id,
            "matchday": matchday,
            "results": results,
            "matchday_complete": self._match_repo.exists_for_matchday(conn, lobby_id, matchday)
            and not self._match_repo.list_by_lobby(conn, lobby_id, matchday=matchday, played=False),
            "league_complete": self._is_complete(conn, lobby_id),
        }

    # ---------- Matchday sequencing & completion ----------

    def _advance_matchday(self, conn: sqlite3.Connection, lobby_id: str) -> None:
        """current_matchday = lowest matchday with unplayed fixtures (last matchday once all are played)."""
        pending = self._match_repo.list_by_lobby(conn, lobby_id, played=False)
        current = min((m.matchday for m in pending), default=MATCHDAYS_PER_LEAGUE)
        lobby = self._get_lobby(conn, lobby_id)
        if current != lobby.current_matchday:
            self._lobby_repo.update_current_matchday(conn, lobby_id, current)
            logger.info("Lobby %s advanced to matchday %d", lobby_id, current)

    def _is_complete(self, conn: sqlite3.Connection, lobby_id: str) -> bool:
        total = self._match_repo.count(conn, lobby_id)
        played = self._match_repo.count(conn, lobby_id, played=True)
        return total == TOTAL_LEAGUE_MATCHES and played == total

    def _complete_if_finished(self, conn: sqlite3.Connection, lobby_id: str) -> list[Reward]:
        """Runs inside the caller's transaction: pay out and finish the lobby after the last result."""
        if not self._is_complete(conn, lobby_id):
            return []
        if self._reward_repo.exists_for_lobby(conn, lobby_id):
            logger.warning("Rewards already issued for lobby %s; skipping", lobby_id)
            return []
        table = self.get_league_table(conn, lobby_id)
        rewards = issue_rewards(conn, lobby_id, table)
        self._lobby_repo.update_status(conn, lobby_id, LobbyStatus.FINISHED.value)
        logger.info("League complete: lobby=%s winner=%s", lobby_id, table[0].user_id if table else None)
        return rewards

    # ---------- Queries ----------

    def get_league_table(
        self,
        conn: sqlite3.Connection,
        lobby_id: str,
        matchday: int | None = None,
    ) -> list[LeagueTableEntry]:
        """Standings from played matches; matchday restricts to one matchday."""
        if matchday is not None:
            self._check_matchday(matchday)
        self._get_lobby(conn, lobby_id)
        members = [m.user_id for m in self._member_repo.list_by_lobby(conn, lobby_id)]
        owners = self._team_repo.owners_by_lobby(conn, lobby_id)
        matches = self._match_repo.list_by_lobby(conn, lobby_id, played=True)
        return build_league_table(matches, owners, member_ids=members, matchday=matchday)

    def get_league_state(self, conn: sqlite3.Connection, lobby_id: str) -> LeagueState:
        self._get_lobby(conn, lobby_id)
        if not self._match_repo.exists_for_lobby(conn, lobby_id):
            return LeagueState.NO_LEAGUE
        if self._reward_repo.exists_for_lobby(conn, lobby_id):
            return LeagueState.REWARDED
        if self._is_complete(conn, lobby_id):
            return LeagueState.COMPLETE
        return LeagueState.SCHEDULED

    def get_league_status(self, conn: sqlite3.Connection, lobby_id: str) -> dict[str, Any]:
        lobby = self._get_lobby(conn, lobby_id)
        matches = self._match_repo.list_by_lobby(conn, lobby_id)
        played = [m for m in matches if m.played]
        matchday_progress = []
        for md in MATCHDAYS:
            md_matches = [m for m in matches if m.matchday == md]
            md_played = sum(1 for m in md_matches if m.played)
            matchday_progress.append({
                "matchday": md,
                "total_matches": len(md_matches),
                "played_matches": md_played,
                "complete": bool(md_matches) and md_played == len(md_matches),
            })
        return {
            "lobby_id": lobby_id,
            "status": lobby.status,
            "state": self.get_league_state(conn, lobby_id).value,
            "total_matches": len(matches),
            "played_matches": len(played),
            "current_matchday": lobby.current_matchday,
            "matchday_progress": matchday_progress,
            "league_table": [e.to_dict() for e in self.get_league_table(conn, lobby_id)],
            "league_complete": len(matches) == TOTAL_LEAGUE_MATCHES and len(played) == len(matches),
            "rewards": [r.to_dict() for r in self._reward_repo.list_by_lobby(conn, lobby_id)],
        }

    def list_matches(
        self,
        conn: sqlite3.Connection,
        lobby_id: str,
        matchday: int | None = None,
    ) -> list[Match]:
        self._get_lobby(conn, lobby_id)
        return self._match_repo.list_by_lobby(conn, lobby_id, matchday=matchday)

    def get_match(self, conn: sqlite3.Connection, match_id: str) -> Match:
        match = self._match_repo.get(conn, match_id)
        if match is None:
            raise MatchNotFound(match_id)
        return match
