"""
SQLite schema for league entities.
Each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def users_schema() -> str:
    """coins is the balance credited by end-of-league rewards."""
    return """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        username TEXT NOT NULL,
        coins INTEGER NOT NULL DEFAULT 1000,
        created_at TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_users_username ON users(username);
    """


def lobbies_schema() -> str:
    """status: WAITING | IN_PROGRESS | FINISHED."""
    return """
    CREATE TABLE IF NOT EXISTS lobbies (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'WAITING',
        max_players INTEGER NOT NULL DEFAULT 4,
        current_matchday INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_lobbies_status ON lobbies(status);
    """


def lobby_members_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS lobby_members (
        lobby_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        joined_at TEXT NOT NULL,
        PRIMARY KEY (lobby_id, user_id),
        FOREIGN KEY (lobby_id) REFERENCES lobbies(id),
        FOREIGN KEY (user_id) REFERENCES users(id)
    );
    CREATE INDEX IF NOT EXISTS ix_lobby_members_user ON lobby_members(user_id);
    """


def teams_schema() -> str:
    """One team per user per matchday per lobby."""
    return """
    CREATE TABLE IF NOT EXISTS teams (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        lobby_id TEXT NOT NULL,
        name TEXT NOT NULL,
        formation TEXT NOT NULL,
        matchday INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id),
        FOREIGN KEY (lobby_id) REFERENCES lobbies(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_teams_lobby_user_matchday ON teams(lobby_id, user_id, matchday);
    CREATE INDEX IF NOT EXISTS ix_teams_lobby_matchday ON teams(lobby_id, matchday);
    """


def team_slots_schema() -> str:
    """11 ordered slots per team. rating/color are snapshots taken when the slot is written."""
    return """
    CREATE TABLE IF NOT EXISTS team_slots (
        team_id TEXT NOT NULL,
        slot_index INTEGER NOT NULL,
        player_id TEXT,
        rating INTEGER NOT NULL DEFAULT 0,
        color TEXT,
        PRIMARY KEY (team_id, slot_index),
        FOREIGN KEY (team_id) REFERENCES teams(id),
        FOREIGN KEY (player_id) REFERENCES players(id)
    );
    CREATE INDEX IF NOT EXISTS ix_team_slots_player ON team_slots(player_id);
    """


def matches_schema() -> str:
    """Fixture within a lobby's league. played flips 0 -> 1 exactly once."""
    return """
    CREATE TABLE IF NOT EXISTS matches (
        id TEXT PRIMARY KEY,
        lobby_id TEXT NOT NULL,
        home_team_id TEXT NOT NULL,
        away_team_id TEXT NOT NULL,
        home_score INTEGER NOT NULL DEFAULT 0,
        away_score INTEGER NOT NULL DEFAULT 0,
        matchday INTEGER NOT NULL,
        played INTEGER NOT NULL DEFAULT 0,
        played_at TEXT,
        home_strength INTEGER,
        away_strength INTEGER,
        events_json TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (lobby_id) REFERENCES lobbies(id),
        FOREIGN KEY (home_team_id) REFERENCES teams(id),
        FOREIGN KEY (away_team_id) REFERENCES teams(id)
    );
    CREATE INDEX IF NOT EXISTS ix_matches_lobby_matchday ON matches(lobby_id, matchday);
    CREATE INDEX IF NOT EXISTS ix_matches_home ON matches(home_team_id);
    CREATE INDEX IF NOT EXISTS ix_matches_away ON matches(away_team_id);
    """


def rewards_schema() -> str:
    """End-of-league payouts. The unique index backs the exactly-once guarantee."""
    return """
    CREATE TABLE IF NOT EXISTS rewards (
        id TEXT PRIMARY KEY,
        lobby_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        coins INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (lobby_id) REFERENCES lobbies(id),
        FOREIGN KEY (user_id) REFERENCES users(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_rewards_lobby_user ON rewards(lobby_id, user_id);
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution. Order: users, lobbies, lobby_members, teams, team_slots, matches, rewards."""
    return "\n".join([
        users_schema(),
        lobbies_schema(),
        lobby_members_schema(),
        teams_schema(),
        team_slots_schema(),
        matches_schema(),
        rewards_schema(),
    ])
