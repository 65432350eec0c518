"""Database layer — connection, schema, migrations, and repositories."""

from jpl_fantasy.db.connection import connect, get_connection, immediate_transaction
from jpl_fantasy.db.migrations import apply_migrations, get_schema_version
from jpl_fantasy.db.repositories import (
    GameweekPointsRepository,
    GameweekRepository,
    LedgerRepository,
    PlayerPointsRepository,
    SquadRepository,
    TransferLogRepository,
    UserStateRepository,
)
from jpl_fantasy.db.schema import SCHEMA_SQL, init_schema

__all__ = [
    "connect",
    "get_connection",
    "immediate_transaction",
    "apply_migrations",
    "get_schema_version",
    "init_schema",
    "SCHEMA_SQL",
    "UserStateRepository",
    "SquadRepository",
    "TransferLogRepository",
    "GameweekRepository",
    "PlayerPointsRepository",
    "LedgerRepository",
    "GameweekPointsRepository",
]
