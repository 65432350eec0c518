"""SQLite access for the fantasy league store.

Every repository opens a short-lived connection per call. Per-user
read-modify-write goes through :func:`immediate_transaction`, which takes
the database write lock before the user's row is read.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from jpl_fantasy.paths import DB_PATH

# Seconds a writer waits on another user's transaction before giving up.
_BUSY_TIMEOUT = 30


def _ensure_schema(conn: sqlite3.Connection) -> None:
    """Run the migrations when the database has no ``user_state`` table yet."""
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='user_state'"
    ).fetchone()
    if row is None:
        from jpl_fantasy.db.migrations import apply_migrations
        apply_migrations(conn)


def get_connection(db_path: Path | None = None) -> sqlite3.Connection:
    """Open the league database (``DB_PATH`` unless *db_path* is given).

    WAL lets score and status reads run beside a user's transfer
    transaction; foreign keys tie ledger, squad and points rows to
    ``user_state``. Rows come back as :class:`sqlite3.Row`.
    """
    db = Path(db_path or DB_PATH)
    db.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db), timeout=_BUSY_TIMEOUT)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    _ensure_schema(conn)
    return conn


@contextmanager
def connect(db_path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    """Yield a league database connection and close it afterwards."""
    conn = get_connection(db_path)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def immediate_transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
    """Run a block under ``BEGIN IMMEDIATE``: commit on success, roll back on error.

    The state row and every row written from it (ledger entry, transfer
    log line) share this transaction, so two transfers for one user never
    interleave and never leave the ledger behind the state.
    """
    if conn.in_transaction:
        conn.commit()
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()
