"""
Tests for the lobby league service: creation guards, simulation, matchday sequencing,
completion, rewards exactly once, concurrent simulation of the same match.
"""
from __future__ import annotations

import threading
from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from helpers import make_lineup, seed_full_lobby

from cardleague.exceptions import (
    AlreadyPlayed,
    AlreadyScheduled,
    IncompleteTeam,
    InvalidChemistry,
    InvalidPositions,
    LobbyNotFound,
    LobbyNotFull,
    MatchNotFound,
    PlayerAlreadyUsed,
    RewardsAlreadyIssued,
    ScheduleAlreadyExists,
    TeamAlreadyExists,
)
from cardleague.models import LeagueState, LobbyStatus
from cardleague.persistence.db import get_connection
from cardleague.persistence.repositories import (
    LobbyMemberRepository,
    LobbyRepository,
    MatchRepository,
    RewardRepository,
    TeamRepository,
    UserRepository,
)
from cardleague.services.league_service import LeagueService
from cardleague.services.rewards import issue_rewards
from cardleague.services.simulation_service import run_team_match_simulation
from cardleague.simulation import SeededRNG


@pytest.fixture
def league_service():
    return LeagueService(rng=SeededRNG(1234))


@pytest.fixture
def full_lobby(db_conn, league_service):
    return seed_full_lobby(db_conn, league_service)


@pytest.fixture
def league(db_conn, league_service, full_lobby):
    lobby, users = full_lobby
    league_service.create_league(db_conn, lobby.id)
    return lobby, users


# ---------- create_league ----------


def test_create_league_schedules_18_matches(db_conn, league_service, full_lobby):
    lobby, _ = full_lobby
    result = league_service.create_league(db_conn, lobby.id)
    assert result["total_matches"] == 18
    assert result["per_matchday_counts"] == {1: 6, 2: 6, 3: 6}
    stored = LobbyRepository().get(db_conn, lobby.id)
    assert stored.status == LobbyStatus.IN_PROGRESS.value
    assert stored.current_matchday == 1
    assert league_service.get_league_state(db_conn, lobby.id) == LeagueState.SCHEDULED


def test_fixtures_pair_teams_of_the_same_matchday(db_conn, league_service, league):
    lobby, _ = league
    team_repo = TeamRepository()
    for m in MatchRepository().list_by_lobby(db_conn, lobby.id):
        home = team_repo.get(db_conn, m.home_team_id)
        away = team_repo.get(db_conn, m.away_team_id)
        assert home.matchday == away.matchday == m.matchday
        assert home.user_id != away.user_id
        assert not m.played


def test_create_league_twice_rejected(db_conn, league_service, league):
    lobby, _ = league
    with pytest.raises(AlreadyScheduled):
        league_service.create_league(db_conn, lobby.id)
    assert MatchRepository().count(db_conn, lobby.id) == 18


def test_create_league_unknown_lobby(db_conn, league_service):
    with pytest.raises(LobbyNotFound):
        league_service.create_league(db_conn, "nope")


def test_create_league_lobby_not_full(db_conn, league_service):
    lobby = LobbyRepository().create(db_conn, "Half")
    for i in range(3):
        user = UserRepository().create(db_conn, f"p{i}")
        LobbyMemberRepository().add(db_conn, lobby.id, user.id)
    with pytest.raises(LobbyNotFull) as exc:
        league_service.create_league(db_conn, lobby.id)
    assert exc.value.members == 3
    assert league_service.get_league_state(db_conn, lobby.id) == LeagueState.NO_LEAGUE


def test_create_league_missing_matchday_teams(db_conn, league_service):
    lobby = LobbyRepository().create(db_conn, "No MD3")
    users = []
    for i in range(4):
        user = UserRepository().create(db_conn, f"p{i}")
        LobbyMemberRepository().add(db_conn, lobby.id, user.id)
        users.append(user)
    for md in (1, 2):
        for u in users:
            league_service.submit_team(db_conn, lobby.id, u.id, md, make_lineup(db_conn, prefix=f"{u.id}{md}"))
    with pytest.raises(ValueError, match=r"\[3\]"):
        league_service.create_league(db_conn, lobby.id)
    # nothing persisted by the failed attempt
    assert MatchRepository().count(db_conn, lobby.id) == 0
    assert LobbyRepository().get(db_conn, lobby.id).status == LobbyStatus.WAITING.value


def test_create_matchday_schedule_rejects_existing(db_conn, league_service, league):
    lobby, _ = league
    with pytest.raises(ScheduleAlreadyExists):
        league_service.create_matchday_schedule(db_conn, lobby.id, 2)


# ---------- submit_team ----------


def test_submit_team_snapshots_catalog(db_conn, league_service, full_lobby):
    lobby, users = full_lobby
    team = TeamRepository().list_by_lobby_and_matchday(db_conn, lobby.id, 1)[0]
    assert len(team.slots) == 11
    assert all(s.rating == 90 for s in team.slots)
    assert {s.color for s in team.slots} == {"rot", "gelb", "lila"}


def test_submit_team_duplicate_player_rejected(db_conn, league_service):
    lobby = LobbyRepository().create(db_conn, "Dupes")
    user = UserRepository().create(db_conn, "solo")
    LobbyMemberRepository().add(db_conn, lobby.id, user.id)
    lineup = make_lineup(db_conn)
    lineup[-1] = lineup[0]
    with pytest.raises(PlayerAlreadyUsed):
        league_service.submit_team(db_conn, lobby.id, user.id, 1, lineup)


def test_submit_team_allows_repeated_dummies(db_conn, league_service):
    lobby = LobbyRepository().create(db_conn, "Dummies")
    user = UserRepository().create(db_conn, "solo")
    LobbyMemberRepository().add(db_conn, lobby.id, user.id)
    lineup = make_lineup(db_conn, split=(3, 3, 3)) + ["dummy-gk", "dummy-gk"]
    team = league_service.submit_team(db_conn, lobby.id, user.id, 1, lineup)
    assert sum(1 for s in team.slots if s.is_dummy) == 2


def test_submit_team_non_member_rejected(db_conn, league_service, full_lobby):
    lobby, _ = full_lobby
    outsider = UserRepository().create(db_conn, "outsider")
    with pytest.raises(ValueError, match="not a member"):
        league_service.submit_team(db_conn, lobby.id, outsider.id, 1, make_lineup(db_conn))


def test_submit_team_second_team_same_matchday_rejected(db_conn, league_service, full_lobby):
    lobby, users = full_lobby
    lineup = make_lineup(db_conn, rating=55, prefix="second-")
    with pytest.raises(TeamAlreadyExists) as exc:
        league_service.submit_team(db_conn, lobby.id, users[0].id, 1, lineup)
    assert (exc.value.user_id, exc.value.matchday) == (users[0].id, 1)
    teams = TeamRepository().list_by_lobby_and_matchday(db_conn, lobby.id, 1)
    assert len(teams) == 4
    assert all(s.rating != 55 for t in teams for s in t.slots)


def test_submit_team_card_out_of_position_rejected(db_conn, league_service):
    lobby = LobbyRepository().create(db_conn, "Positions")
    user = UserRepository().create(db_conn, "solo")
    LobbyMemberRepository().add(db_conn, lobby.id, user.id)
    lineup = make_lineup(db_conn)
    lineup[0], lineup[10] = lineup[10], lineup[0]
    with pytest.raises(InvalidPositions) as exc:
        league_service.submit_team(db_conn, lobby.id, user.id, 1, lineup)
    assert len(exc.value.errors) == 2
    assert "(GK) cannot be placed in ST position" in str(exc.value)
    assert TeamRepository().get_by_user_and_matchday(db_conn, lobby.id, user.id, 1) is None


def test_submit_team_positions_follow_chosen_formation(db_conn, league_service):
    lobby = LobbyRepository().create(db_conn, "Formations")
    user = UserRepository().create(db_conn, "solo")
    LobbyMemberRepository().add(db_conn, lobby.id, user.id)
    lineup = make_lineup(db_conn, formation="4-3-3")
    team = league_service.submit_team(db_conn, lobby.id, user.id, 1, lineup, formation="4-3-3")
    assert team.formation == "4-3-3"
    with pytest.raises(InvalidPositions):
        league_service.submit_team(db_conn, lobby.id, user.id, 2, lineup)
    with pytest.raises(ValueError, match="Unknown formation"):
        league_service.submit_team(db_conn, lobby.id, user.id, 2, lineup, formation="1-1-8")


# ---------- simulate_match ----------


def test_simulate_match_persists_once(db_conn, league_service, league):
    lobby, _ = league
    match = league_service.list_matches(db_conn, lobby.id)[0]
    result = league_service.simulate_match(db_conn, match.id)
    assert 0 <= result["home_score"] <= 100
    assert 0 <= result["away_score"] <= 100
    assert result["home_strength"]["total_strength"] == 11 * 90 + 43
    assert len(result["events"]) == result["home_score"] + result["away_score"]

    stored = league_service.get_match(db_conn, match.id)
    assert stored.played
    assert (stored.home_score, stored.away_score) == (result["home_score"], result["away_score"])
    assert stored.home_strength == 11 * 90 + 43

    with pytest.raises(AlreadyPlayed):
        league_service.simulate_match(db_conn, match.id)
    again = league_service.get_match(db_conn, match.id)
    assert (again.home_score, again.away_score) == (stored.home_score, stored.away_score)


def test_simulate_unknown_match(db_conn, league_service):
    with pytest.raises(MatchNotFound):
        league_service.simulate_match(db_conn, "missing")


def test_simulate_invalid_team_rejected_and_not_persisted(db_conn, league_service):
    lobby = LobbyRepository().create(db_conn, "Bad teams")
    users = []
    for i in range(4):
        user = UserRepository().create(db_conn, f"p{i}")
        LobbyMemberRepository().add(db_conn, lobby.id, user.id)
        users.append(user)
    for md in (1, 2, 3):
        for i, u in enumerate(users):
            if md == 1 and i == 0:
                lineup = make_lineup(db_conn, split=(6, 5), colors=("rot", "gelb"), prefix="bad")
            elif md == 1 and i == 1:
                lineup = make_lineup(db_conn, split=(4, 3, 3), prefix="short")
            else:
                lineup = make_lineup(db_conn, prefix=f"{u.id}{md}")
            league_service.submit_team(db_conn, lobby.id, u.id, md, lineup)
    league_service.create_league(db_conn, lobby.id)
    first, *_ = league_service.list_matches(db_conn, lobby.id, matchday=1)
    with pytest.raises(InvalidChemistry):
        league_service.simulate_match(db_conn, first.id)
    assert not league_service.get_match(db_conn, first.id).played
    md1 = league_service.list_matches(db_conn, lobby.id, matchday=1)
    short_vs_other = [m for m in md1 if m.home_team_id != first.home_team_id][0]
    with pytest.raises(IncompleteTeam):
        league_service.simulate_match(db_conn, short_vs_other.id)


def test_seeded_simulation_is_reproducible(db_conn, league_service, league):
    lobby, _ = league
    match = league_service.list_matches(db_conn, lobby.id)[0]
    a = run_team_match_simulation(db_conn, match.home_team_id, match.away_team_id, rng=SeededRNG(99))
    b = run_team_match_simulation(db_conn, match.home_team_id, match.away_team_id, rng=SeededRNG(99))
    assert a["simulation"].to_dict() == b["simulation"].to_dict()
    assert a["home_strength"] == b["home_strength"]
    # simulation alone never persists
    assert not league_service.get_match(db_conn, match.id).played


# ---------- matchday sequencing & completion ----------


def test_current_matchday_advances(db_conn, league_service, league):
    lobby, _ = league
    result = league_service.simulate_matchday(db_conn, lobby.id, 1)
    assert len(result["results"]) == 6
    assert result["matchday_complete"] is True
    assert result["league_complete"] is False
    status = league_service.get_league_status(db_conn, lobby.id)
    assert status["current_matchday"] == 2
    assert status["played_matches"] == 6
    assert status["matchday_progress"][0] == {
        "matchday": 1, "total_matches": 6, "played_matches": 6, "complete": True,
    }
    assert status["matchday_progress"][1]["played_matches"] == 0


def test_simulate_entire_league_completes_and_rewards_once(db_conn, league_service, league):
    lobby, users = league
    result = league_service.simulate_entire_league(db_conn, lobby.id)
    assert len(result["results"]) == 18
    assert result["league_complete"] is True

    status = league_service.get_league_status(db_conn, lobby.id)
    assert status["played_matches"] == status["total_matches"] == 18
    assert status["league_complete"] is True
    assert status["state"] == LeagueState.REWARDED.value
    assert status["status"] == LobbyStatus.FINISHED.value
    assert status["current_matchday"] == 3

    rewards = RewardRepository().list_by_lobby(db_conn, lobby.id)
    assert [r.coins for r in rewards] == [250, 200, 150, 100]
    table = league_service.get_league_table(db_conn, lobby.id)
    assert [r.user_id for r in rewards] == [e.user_id for e in table]
    user_repo = UserRepository()
    for r in rewards:
        assert user_repo.get(db_conn, r.user_id).coins == 1000 + r.coins

    # re-running is a no-op: nothing left to play, no second payout
    again = league_service.simulate_entire_league(db_conn, lobby.id)
    assert again["results"] == []
    assert len(RewardRepository().list_by_lobby(db_conn, lobby.id)) == 4
    with pytest.raises(RewardsAlreadyIssued):
        issue_rewards(db_conn, lobby.id, table)
    assert sum(user_repo.get(db_conn, u.id).coins for u in users) == 4 * 1000 + 700


def test_table_after_full_league(db_conn, league_service, league):
    lobby, _ = league
    league_service.simulate_entire_league(db_conn, lobby.id)
    table = league_service.get_league_table(db_conn, lobby.id)
    assert [e.rank for e in table] == [1, 2, 3, 4]
    assert all(e.matches_played == 9 for e in table)
    assert sum(e.goal_difference for e in table) == 0
    for md in (1, 2, 3):
        md_table = league_service.get_league_table(db_conn, lobby.id, matchday=md)
        assert all(e.matches_played == 3 for e in md_table)
    totals = {e.user_id: e.points for e in table}
    per_md = {}
    for md in (1, 2, 3):
        for e in league_service.get_league_table(db_conn, lobby.id, matchday=md):
            per_md[e.user_id] = per_md.get(e.user_id, 0) + e.points
    assert per_md == totals


def test_resume_after_partial_run(db_conn, league_service, league):
    lobby, _ = league
    first = league_service.list_matches(db_conn, lobby.id, matchday=2)[0]
    league_service.simulate_match(db_conn, first.id)
    result = league_service.simulate_entire_league(db_conn, lobby.id)
    assert len(result["results"]) == 17
    assert first.id not in {r["match_id"] for r in result["results"]}
    assert result["league_complete"] is True
    order = [(r["matchday"], r["match_id"]) for r in result["results"]]
    assert order == sorted(order)


def test_league_status_unknown_lobby(db_conn, league_service):
    with pytest.raises(LobbyNotFound):
        league_service.get_league_status(db_conn, "missing")


def test_status_before_league(db_conn, league_service, full_lobby):
    lobby, _ = full_lobby
    status = league_service.get_league_status(db_conn, lobby.id)
    assert status["state"] == LeagueState.NO_LEAGUE.value
    assert status["total_matches"] == 0
    assert len(status["league_table"]) == 4
    assert status["league_complete"] is False


# ---------- concurrency ----------


def test_concurrent_simulation_first_writer_wins(db_path, league_service, league):
    lobby, _ = league
    conn = get_connection(db_path)
    try:
        match = league_service.list_matches(conn, lobby.id)[0]
    finally:
        conn.close()

    outcomes: list[str] = []
    lock = threading.Lock()
    barrier = threading.Barrier(4)

    def worker() -> None:
        c = get_connection(db_path)
        try:
            barrier.wait()
            svc = LeagueService()
            try:
                svc.simulate_match(c, match.id)
                result = "played"
            except AlreadyPlayed:
                result = "already"
            with lock:
                outcomes.append(result)
        finally:
            c.close()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("played") == 1
    assert outcomes.count("already") == 3
    conn = get_connection(db_path)
    try:
        assert MatchRepository().count(conn, lobby.id, played=True) == 1
    finally:
        conn.close()


def test_concurrent_last_match_rewards_exactly_once(db_path, league_service, league):
    lobby, _ = league
    conn = get_connection(db_path)
    try:
        matches = league_service.list_matches(conn, lobby.id)
        for m in matches[:-2]:
            league_service.simulate_match(conn, m.id)
    finally:
        conn.close()
    remaining = [m.id for m in matches[-2:]]
    errors: list[BaseException] = []

    def worker(match_id: str) -> None:
        c = get_connection(db_path)
        try:
            LeagueService().simulate_match(c, match_id)
        except BaseException as e:
            errors.append(e)
        finally:
            c.close()

    threads = [threading.Thread(target=worker, args=(mid,)) for mid in remaining for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(isinstance(e, AlreadyPlayed) for e in errors)
    assert len(errors) == 2
    conn = get_connection(db_path)
    try:
        rewards = RewardRepository().list_by_lobby(conn, lobby.id)
        assert len(rewards) == 4
        assert LobbyRepository().get(conn, lobby.id).status == LobbyStatus.FINISHED.value
    finally:
        conn.close()
