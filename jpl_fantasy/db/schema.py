"""Database schema — base CREATE TABLE statements.

Later tables are added by numbered migrations in
:mod:`jpl_fantasy.db.migrations`.
"""

from __future__ import annotations

import sqlite3

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS user_state (
    user_id TEXT PRIMARY KEY,
    transfer_state_json TEXT NOT NULL,
    chips_json TEXT NOT NULL,
    has_saved_squad INTEGER NOT NULL DEFAULT 0,
    version INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS squad (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES user_state(user_id) ON DELETE CASCADE,
    gameweek INTEGER NOT NULL,
    squad_json TEXT NOT NULL,
    saved_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(user_id, gameweek)
);

CREATE TABLE IF NOT EXISTS transfer_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES user_state(user_id) ON DELETE CASCADE,
    gameweek INTEGER NOT NULL,
    player_out_id TEXT NOT NULL,
    player_in_id TEXT NOT NULL,
    transfer_cost INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS gameweek (
    number INTEGER PRIMARY KEY,
    deadline TEXT,
    phase TEXT NOT NULL DEFAULT 'upcoming',
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS player_points (
    player_id TEXT NOT NULL,
    gameweek INTEGER NOT NULL,
    points INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (player_id, gameweek)
);

CREATE TABLE IF NOT EXISTS gameweek_points (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES user_state(user_id) ON DELETE CASCADE,
    gameweek INTEGER NOT NULL,
    points INTEGER NOT NULL,
    starting_points INTEGER,
    bench_points INTEGER,
    captain_id TEXT,
    chip_used TEXT,
    transfers_made INTEGER DEFAULT 0,
    transfer_cost INTEGER DEFAULT 0,
    from_previous_squad INTEGER DEFAULT 0,
    score_json TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(user_id, gameweek)
);
"""


def init_schema(conn: sqlite3.Connection) -> None:
    """Execute the full schema DDL on *conn*."""
    conn.executescript(SCHEMA_SQL)
