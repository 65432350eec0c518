"""Repository classes — one per database table.

Each repository takes a ``db_path`` in ``__init__`` and uses
:func:`jpl_fantasy.db.connection.connect` for every operation. Values
cross this boundary as pydantic models; rows stay plain dicts.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Mapping

from jpl_fantasy.db.connection import connect, immediate_transaction
from jpl_fantasy.paths import DB_PATH
from jpl_fantasy.schemas.fantasy_rules import ChipKind
from jpl_fantasy.schemas.squad import GameweekScore, Squad
from jpl_fantasy.schemas.state import ChipsUsed, GameweekTransferSummary, TransferState


def _state_json(state: TransferState) -> str:
    return state.model_dump_json(by_alias=True)


def _chips_json(chips: ChipsUsed) -> str:
    return chips.model_dump_json(by_alias=True)


# ---------------------------------------------------------------------------
# UserStateRepository
# ---------------------------------------------------------------------------

class UserStateRepository:
    """CRUD for the ``user_state`` table (transfer state + chips per user)."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH

    @staticmethod
    def _decode(row) -> tuple[TransferState, ChipsUsed]:
        return (
            TransferState.model_validate_json(row["transfer_state_json"]),
            ChipsUsed.model_validate_json(row["chips_json"]),
        )

    def get_row(self, user_id: str) -> dict | None:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM user_state WHERE user_id=?", (user_id,),
            ).fetchone()
        return dict(row) if row else None

    def load(self, user_id: str) -> tuple[TransferState, ChipsUsed] | None:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT transfer_state_json, chips_json FROM user_state WHERE user_id=?",
                (user_id,),
            ).fetchone()
        return self._decode(row) if row else None

    def save(self, user_id: str, state: TransferState, chips: ChipsUsed) -> None:
        with connect(self.db_path) as conn:
            self._write(conn, user_id, state, chips)
            conn.commit()

    @staticmethod
    def _write(conn, user_id: str, state: TransferState, chips: ChipsUsed) -> None:
        conn.execute(
            """INSERT INTO user_state (user_id, transfer_state_json, chips_json)
               VALUES (?, ?, ?)
               ON CONFLICT(user_id) DO UPDATE SET
                 transfer_state_json=excluded.transfer_state_json,
                 chips_json=excluded.chips_json,
                 version=user_state.version + 1,
                 updated_at=datetime('now')""",
            (user_id, _state_json(state), _chips_json(chips)),
        )

    def update(self, user_id: str, fn: Callable, persist: Callable | None = None) -> Any:
        """Read-modify-write one user's state under the database write lock.

        *fn* is called as ``fn(state, chips)`` (both None for an unknown
        user) and returns ``(new_state, new_chips, result)``; a None
        *new_state* skips the write. *result* is returned.

        When the state is written, ``persist(conn, result)`` runs on the
        same connection before the commit, so rows derived from the new
        state (ledger, transfer log) commit or roll back with it.

        Two concurrent updates for the same user serialise: the second
        sees the first one's result.
        """
        with connect(self.db_path) as conn, immediate_transaction(conn):
            row = conn.execute(
                "SELECT transfer_state_json, chips_json FROM user_state WHERE user_id=?",
                (user_id,),
            ).fetchone()
            state, chips = self._decode(row) if row else (None, None)
            new_state, new_chips, result = fn(state, chips)
            if new_state is not None and new_chips is not None:
                self._write(conn, user_id, new_state, new_chips)
                if persist is not None:
                    persist(conn, result)
        return result

    def mark_squad_saved(self, user_id: str) -> None:
        with connect(self.db_path) as conn:
            conn.execute(
                "UPDATE user_state SET has_saved_squad=1, updated_at=datetime('now') WHERE user_id=?",
                (user_id,),
            )
            conn.commit()

    def has_saved_squad(self, user_id: str) -> bool:
        row = self.get_row(user_id)
        return bool(row and row["has_saved_squad"])

    def list_user_ids(self) -> list[str]:
        with connect(self.db_path) as conn:
            rows = conn.execute("SELECT user_id FROM user_state ORDER BY user_id").fetchall()
        return [r["user_id"] for r in rows]


# ---------------------------------------------------------------------------
# SquadRepository
# ---------------------------------------------------------------------------

class SquadRepository:
    """CRUD for the ``squad`` table (one snapshot per user per gameweek)."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH

    def save_squad(self, user_id: str, gameweek: int, squad: Squad) -> None:
        with connect(self.db_path) as conn:
            conn.execute(
                """INSERT INTO squad (user_id, gameweek, squad_json)
                   VALUES (?, ?, ?)
                   ON CONFLICT(user_id, gameweek) DO UPDATE SET
                     squad_json=excluded.squad_json,
                     saved_at=datetime('now')""",
                (user_id, gameweek, squad.model_dump_json(by_alias=True)),
            )
            conn.commit()

    def squad_for(self, user_id: str, gameweek: int) -> Squad | None:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT squad_json FROM squad WHERE user_id=? AND gameweek=?",
                (user_id, gameweek),
            ).fetchone()
        return Squad.model_validate_json(row["squad_json"]) if row else None

    def latest_before(self, user_id: str, gameweek: int) -> tuple[int, Squad] | None:
        """Most recent squad saved for a gameweek earlier than *gameweek*."""
        with connect(self.db_path) as conn:
            row = conn.execute(
                """SELECT gameweek, squad_json FROM squad
                   WHERE user_id=? AND gameweek<?
                   ORDER BY gameweek DESC LIMIT 1""",
                (user_id, gameweek),
            ).fetchone()
        if row is None:
            return None
        return row["gameweek"], Squad.model_validate_json(row["squad_json"])

    def list_gameweeks(self, user_id: str) -> list[int]:
        with connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT gameweek FROM squad WHERE user_id=? ORDER BY gameweek",
                (user_id,),
            ).fetchall()
        return [r["gameweek"] for r in rows]


# ---------------------------------------------------------------------------
# TransferLogRepository
# ---------------------------------------------------------------------------

class TransferLogRepository:
    """Append-only audit log for the ``transfer_log`` table."""

    _INSERT = """INSERT INTO transfer_log
                 (user_id, gameweek, player_out_id, player_in_id, transfer_cost)
                 VALUES (?, ?, ?, ?, ?)"""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH

    def log_transfer(
        self,
        user_id: str,
        gameweek: int,
        player_out_id: str,
        player_in_id: str,
        transfer_cost: int = 0,
        conn=None,
    ) -> int:
        """Append one transfer. With *conn*, the caller owns the commit."""
        params = (user_id, gameweek, str(player_out_id), str(player_in_id), transfer_cost)
        if conn is not None:
            return conn.execute(self._INSERT, params).lastrowid
        with connect(self.db_path) as conn:
            cur = conn.execute(self._INSERT, params)
            conn.commit()
            return cur.lastrowid

    def get_transfers(self, user_id: str, gameweek: int | None = None) -> list[dict]:
        with connect(self.db_path) as conn:
            if gameweek is not None:
                rows = conn.execute(
                    """SELECT * FROM transfer_log
                       WHERE user_id=? AND gameweek=?
                       ORDER BY id""",
                    (user_id, gameweek),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM transfer_log WHERE user_id=? ORDER BY gameweek, id",
                    (user_id,),
                ).fetchall()
        return [dict(r) for r in rows]

    def total_cost(self, user_id: str, gameweek: int) -> int:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT COALESCE(SUM(transfer_cost), 0) FROM transfer_log WHERE user_id=? AND gameweek=?",
                (user_id, gameweek),
            ).fetchone()
        return row[0]


# ---------------------------------------------------------------------------
# GameweekRepository
# ---------------------------------------------------------------------------

class GameweekRepository:
    """CRUD for the ``gameweek`` schedule table."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH

    def upsert_gameweek(
        self, number: int, deadline: str | None = None, phase: str | None = None,
    ) -> None:
        with connect(self.db_path) as conn:
            conn.execute(
                """INSERT INTO gameweek (number, deadline, phase)
                   VALUES (?, ?, COALESCE(?, 'upcoming'))
                   ON CONFLICT(number) DO UPDATE SET
                     deadline=COALESCE(excluded.deadline, gameweek.deadline),
                     phase=COALESCE(?, gameweek.phase),
                     updated_at=datetime('now')""",
                (number, deadline, phase, phase),
            )
            conn.commit()

    def get_gameweek(self, number: int) -> dict | None:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM gameweek WHERE number=?", (number,),
            ).fetchone()
        return dict(row) if row else None

    def list_gameweeks(self) -> list[dict]:
        with connect(self.db_path) as conn:
            rows = conn.execute("SELECT * FROM gameweek ORDER BY number").fetchall()
        return [dict(r) for r in rows]

    def update_phase(self, number: int, phase: str) -> None:
        with connect(self.db_path) as conn:
            conn.execute(
                "UPDATE gameweek SET phase=?, updated_at=datetime('now') WHERE number=?",
                (phase, number),
            )
            conn.commit()


# ---------------------------------------------------------------------------
# PlayerPointsRepository
# ---------------------------------------------------------------------------

class PlayerPointsRepository:
    """CRUD for the ``player_points`` table (raw points per player per GW)."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH

    def save_points_bulk(self, gameweek: int, points: Mapping[str, int]) -> None:
        with connect(self.db_path) as conn:
            conn.executemany(
                """INSERT INTO player_points (player_id, gameweek, points)
                   VALUES (?, ?, ?)
                   ON CONFLICT(player_id, gameweek) DO UPDATE SET
                     points=excluded.points""",
                [(str(pid), gameweek, int(pts)) for pid, pts in points.items()],
            )
            conn.commit()

    def get_points_map(self, gameweek: int) -> dict[str, int]:
        with connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT player_id, points FROM player_points WHERE gameweek=?",
                (gameweek,),
            ).fetchall()
        return {r["player_id"]: r["points"] for r in rows}

    def points_for(self, player_id: str, gameweek: int) -> int:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT points FROM player_points WHERE player_id=? AND gameweek=?",
                (str(player_id), gameweek),
            ).fetchone()
        return row["points"] if row else 0


# ---------------------------------------------------------------------------
# LedgerRepository
# ---------------------------------------------------------------------------

class LedgerRepository:
    """Per-user, per-gameweek record of transfer cost and the chip played.

    Written on every transfer and chip change so a gameweek can still be
    scored after the user state has moved on to the next one.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH

    def record(
        self,
        user_id: str,
        gameweek: int,
        summary: GameweekTransferSummary,
        chip_played: ChipKind | None,
        conn=None,
    ) -> None:
        """Upsert the gameweek's entry. With *conn*, the caller owns the commit."""
        if conn is not None:
            self._upsert(conn, user_id, gameweek, summary, chip_played)
            return
        with connect(self.db_path) as conn:
            self._upsert(conn, user_id, gameweek, summary, chip_played)
            conn.commit()

    @staticmethod
    def _upsert(conn, user_id, gameweek, summary, chip_played) -> None:
        conn.execute(
            """INSERT INTO gameweek_ledger
               (user_id, gameweek, transfers_made, free_transfers_used,
                paid_transfers, points_deducted, chip_played,
                wildcard_used, free_hit_used)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(user_id, gameweek) DO UPDATE SET
                 transfers_made=excluded.transfers_made,
                 free_transfers_used=excluded.free_transfers_used,
                 paid_transfers=excluded.paid_transfers,
                 points_deducted=excluded.points_deducted,
                 chip_played=excluded.chip_played,
                 wildcard_used=excluded.wildcard_used,
                 free_hit_used=excluded.free_hit_used,
                 updated_at=datetime('now')""",
            (
                user_id, gameweek,
                summary.transfers_made,
                summary.free_transfers_used,
                summary.paid_transfers,
                summary.points_deducted,
                chip_played.value if chip_played else None,
                int(summary.wildcard_used),
                int(summary.free_hit_used),
            ),
        )

    def get_entry(self, user_id: str, gameweek: int) -> dict | None:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM gameweek_ledger WHERE user_id=? AND gameweek=?",
                (user_id, gameweek),
            ).fetchone()
        return dict(row) if row else None


# ---------------------------------------------------------------------------
# GameweekPointsRepository
# ---------------------------------------------------------------------------

class GameweekPointsRepository:
    """CRUD for the ``gameweek_points`` table (final score per user per GW)."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH

    def save_score(
        self,
        user_id: str,
        score: GameweekScore,
        transfers_made: int = 0,
        from_previous_squad: bool = False,
    ) -> None:
        with connect(self.db_path) as conn:
            conn.execute(
                """INSERT INTO gameweek_points
                   (user_id, gameweek, points, starting_points, bench_points,
                    captain_id, vice_captain_id, chip_used, transfers_made,
                    transfer_cost, from_previous_squad, score_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(user_id, gameweek) DO UPDATE SET
                     points=excluded.points,
                     starting_points=excluded.starting_points,
                     bench_points=excluded.bench_points,
                     captain_id=excluded.captain_id,
                     vice_captain_id=excluded.vice_captain_id,
                     chip_used=excluded.chip_used,
                     transfers_made=excluded.transfers_made,
                     transfer_cost=excluded.transfer_cost,
                     from_previous_squad=excluded.from_previous_squad,
                     score_json=excluded.score_json,
                     created_at=datetime('now')""",
                (
                    user_id, score.gameweek,
                    score.final_score,
                    score.starting_total,
                    score.bench_total,
                    score.captain_id,
                    score.vice_captain_id,
                    score.chip_played.value if score.chip_played else None,
                    transfers_made,
                    score.points_deducted,
                    int(from_previous_squad),
                    score.model_dump_json(by_alias=True),
                ),
            )
            conn.commit()

    def get_points(self, user_id: str, gameweek: int | None = None) -> list[dict]:
        with connect(self.db_path) as conn:
            if gameweek is not None:
                rows = conn.execute(
                    "SELECT * FROM gameweek_points WHERE user_id=? AND gameweek=?",
                    (user_id, gameweek),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM gameweek_points WHERE user_id=? ORDER BY gameweek",
                    (user_id,),
                ).fetchall()
        result = []
        for r in rows:
            d = dict(r)
            d["score"] = json.loads(d.pop("score_json")) if d.get("score_json") else None
            result.append(d)
        return result

    def season_total(self, user_id: str) -> int:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT COALESCE(SUM(points), 0) FROM gameweek_points WHERE user_id=?",
                (user_id,),
            ).fetchone()
        return row[0]
