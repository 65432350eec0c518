"""Versioned database migrations.

A ``schema_version`` table records how far the database has been
brought forward; numbered migration functions do the rest.
"""

from __future__ import annotations

import sqlite3

from jpl_fantasy.db.schema import init_schema
from jpl_fantasy.logging_config import get_logger

logger = get_logger(__name__)

# ── Version tracking table ─────────────────────────────────────────────

_VERSION_DDL = """\
CREATE TABLE IF NOT EXISTS schema_version (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    version INTEGER NOT NULL DEFAULT 0
);
"""


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.executescript(_VERSION_DDL)
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    if row is None:
        conn.execute("INSERT INTO schema_version (id, version) VALUES (1, 0)")
        conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the current schema version (0 means brand-new database)."""
    _ensure_version_table(conn)
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return row[0] if row else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute("UPDATE schema_version SET version = ? WHERE id = 1", (version,))
    conn.commit()


# ── Migrations ─────────────────────────────────────────────────────────

def _migration_001_initial_schema(conn: sqlite3.Connection) -> None:
    """Migration 1: create base tables (user_state, squad, transfer_log,
    gameweek, player_points, gameweek_points).
    """
    init_schema(conn)


def _migration_002_gameweek_ledger(conn: sqlite3.Connection) -> None:
    """Add gameweek_ledger table and transfer_log lookup index."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS gameweek_ledger (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL REFERENCES user_state(user_id) ON DELETE CASCADE,
            gameweek INTEGER NOT NULL,
            transfers_made INTEGER NOT NULL DEFAULT 0,
            free_transfers_used INTEGER NOT NULL DEFAULT 0,
            paid_transfers INTEGER NOT NULL DEFAULT 0,
            points_deducted INTEGER NOT NULL DEFAULT 0,
            chip_played TEXT,
            wildcard_used INTEGER NOT NULL DEFAULT 0,
            free_hit_used INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL DEFAULT (datetime('now')),
            UNIQUE(user_id, gameweek)
        )
    """)
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_transfer_log_user_gw "
        "ON transfer_log(user_id, gameweek)"
    )
    conn.commit()


def _migration_003_vice_captain(conn: sqlite3.Connection) -> None:
    """Add vice_captain_id to gameweek_points."""
    cols = {row[1] for row in conn.execute("PRAGMA table_info(gameweek_points)")}
    if "vice_captain_id" not in cols:
        conn.execute("ALTER TABLE gameweek_points ADD COLUMN vice_captain_id TEXT")
    conn.commit()


# Registry: version number -> migration function.
# Each migration brings the DB from (version - 1) to (version).
_MIGRATIONS: dict[int, callable] = {
    1: _migration_001_initial_schema,
    2: _migration_002_gameweek_ledger,
    3: _migration_003_vice_captain,
}

LATEST_VERSION: int = max(_MIGRATIONS)


# ── Public API ─────────────────────────────────────────────────────────

def apply_migrations(conn: sqlite3.Connection) -> None:
    """Apply any pending migrations to bring the database up to date.

    Safe to call on every startup; applied migrations are skipped.
    """
    current = get_schema_version(conn)
    if current >= LATEST_VERSION:
        return

    for version in range(current + 1, LATEST_VERSION + 1):
        migration_fn = _MIGRATIONS.get(version)
        if migration_fn is None:
            raise RuntimeError(f"Missing migration function for version {version}")
        logger.info("Applying migration %d: %s", version, migration_fn.__doc__.strip().split("\n")[0])
        migration_fn(conn)
        _set_schema_version(conn, version)

    logger.info("Database schema is now at version %d", LATEST_VERSION)
