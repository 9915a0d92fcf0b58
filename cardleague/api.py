"""
FastAPI app: league endpoints over LeagueService.
Lobby, user and card management live in other services; this surface covers
team submission, scheduling, simulation and standings.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Generator

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from cardleague.catalog import list_players
from cardleague.exceptions import (
    AlreadyPlayed,
    AlreadyScheduled,
    LobbyNotFound,
    MatchNotFound,
    PlayerAlreadyUsed,
    RewardsAlreadyIssued,
    ScheduleAlreadyExists,
    TeamAlreadyExists,
)
from cardleague.formations import DEFAULT_FORMATION, FORMATIONS
from cardleague.models import PLAYERS_PER_TEAM
from cardleague.persistence import get_connection, init_db
from cardleague.persistence.db import get_db_path
from cardleague.services.league_service import LeagueService
from cardleague.simulation.rng import SeededRNG
from cardleague.simulation.schemas import event_to_dict, load_events

logger = logging.getLogger(__name__)

CATALOG_PATH_ENV = "CARDLEAGUE_CATALOG_PATH"
SIM_SEED_ENV = "CARDLEAGUE_SIM_SEED"


# ---------- Project root for data paths ----------
def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _catalog_path() -> Path | None:
    env = os.environ.get(CATALOG_PATH_ENV)
    path = Path(env) if env else _project_root() / "data" / "players.json"
    return path if path.exists() else None


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


def _build_service() -> LeagueService:
    """Seeded service when CARDLEAGUE_SIM_SEED is set (reproducible demos), else fresh entropy per match."""
    seed = os.environ.get(SIM_SEED_ENV)
    if seed:
        return LeagueService(rng=SeededRNG(int(seed)))
    return LeagueService()


# ---------- Startup: ensure DB and catalog ----------
def _ensure_db() -> None:
    init_db(db_path=get_db_path(), catalog_path=_catalog_path())


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    _ensure_db()
    logger.info("Database ready at %s", get_db_path())
    app.state.league_service = _build_service()
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="Card League API",
    description="League engine for the 4-player card game: schedule, simulate, standings, rewards",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _service() -> LeagueService:
    svc = getattr(app.state, "league_service", None)
    if svc is None:
        svc = app.state.league_service = _build_service()
    return svc


# ---------- Error mapping ----------

_NOT_FOUND = (LobbyNotFound, MatchNotFound)
_CONFLICT = (
    AlreadyScheduled,
    ScheduleAlreadyExists,
    AlreadyPlayed,
    RewardsAlreadyIssued,
    PlayerAlreadyUsed,
    TeamAlreadyExists,
)


def _http_error(e: ValueError) -> HTTPException:
    """Not found -> 404, state conflicts -> 409, everything else (validation) -> 400."""
    if isinstance(e, _NOT_FOUND):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, _CONFLICT):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# ---------- Request/Response models ----------


class SubmitTeamRequest(BaseModel):
    user_id: str
    matchday: int = Field(..., ge=1, le=3)
    player_ids: list[str | None] = Field(..., max_length=PLAYERS_PER_TEAM)
    name: str | None = None
    formation: str = DEFAULT_FORMATION


def _match_detail(m) -> dict[str, Any]:
    out = m.to_dict()
    out["events"] = [event_to_dict(e) for e in load_events(m.events_json)]
    return out


# ---------- Routes ----------


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/players")
def get_players(
    color: str | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
) -> dict[str, Any]:
    """Catalog cards by rating (placeholders excluded)."""
    with db_conn() as conn:
        return {"players": [p.to_dict() for p in list_players(conn, color=color, limit=limit)]}


@app.get("/formations")
def get_formations() -> dict[str, Any]:
    """Slot positions per formation, slot 0 first."""
    return {"formations": {name: list(positions) for name, positions in FORMATIONS.items()}}


@app.post("/lobbies/{lobby_id}/teams", status_code=201)
def submit_team(lobby_id: str, req: SubmitTeamRequest) -> dict[str, Any]:
    """Register a member's lineup for one matchday. Rating/color are snapshotted from the catalog."""
    with db_conn() as conn:
        try:
            team = _service().submit_team(
                conn, lobby_id, req.user_id, req.matchday, req.player_ids,
                name=req.name, formation=req.formation,
            )
        except ValueError as e:
            raise _http_error(e)
        return team.to_dict()


@app.post("/lobbies/{lobby_id}/league", status_code=201)
def create_league(lobby_id: str) -> dict[str, Any]:
    """Schedule all 18 fixtures. Lobby must have 4 members and 4 teams per matchday."""
    with db_conn() as conn:
        try:
            return _service().create_league(conn, lobby_id)
        except ValueError as e:
            raise _http_error(e)


@app.get("/lobbies/{lobby_id}/league")
def get_league_status(lobby_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            return _service().get_league_status(conn, lobby_id)
        except ValueError as e:
            raise _http_error(e)


@app.get("/lobbies/{lobby_id}/league/table")
def get_league_table(
    lobby_id: str,
    matchday: int | None = Query(None, ge=1, le=3),
) -> dict[str, Any]:
    """Standings from played matches; matchday restricts to one matchday."""
    with db_conn() as conn:
        try:
            table = _service().get_league_table(conn, lobby_id, matchday=matchday)
        except ValueError as e:
            raise _http_error(e)
        return {"lobby_id": lobby_id, "matchday": matchday, "table": [e.to_dict() for e in table]}


@app.post("/lobbies/{lobby_id}/league/simulate")
def simulate_entire_league(lobby_id: str) -> dict[str, Any]:
    """Play all unplayed fixtures; already-played ones are skipped."""
    with db_conn() as conn:
        try:
            return _service().simulate_entire_league(conn, lobby_id)
        except ValueError as e:
            raise _http_error(e)


@app.post("/lobbies/{lobby_id}/matchdays/{matchday}/simulate")
def simulate_matchday(lobby_id: str, matchday: int) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            return _service().simulate_matchday(conn, lobby_id, matchday)
        except ValueError as e:
            raise _http_error(e)


@app.get("/lobbies/{lobby_id}/matches")
def list_matches(
    lobby_id: str,
    matchday: int | None = Query(None, ge=1, le=3),
) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            matches = _service().list_matches(conn, lobby_id, matchday=matchday)
        except ValueError as e:
            raise _http_error(e)
        return {"lobby_id": lobby_id, "matches": [m.to_dict() for m in matches]}


@app.post("/matches/{match_id}/simulate")
def simulate_match(match_id: str) -> dict[str, Any]:
    """Simulate and persist one fixture. 409 if it was already played."""
    with db_conn() as conn:
        try:
            return _service().simulate_match(conn, match_id)
        except ValueError as e:
            raise _http_error(e)


@app.get("/matches/{match_id}")
def get_match(match_id: str) -> dict[str, Any]:
    """Match with its persisted goal log."""
    with db_conn() as conn:
        try:
            match = _service().get_match(conn, match_id)
        except ValueError as e:
            raise _http_error(e)
        return _match_detail(match)
# ---------- Run with: uvicorn cardleague.api:app --reload ----------
