"""Fantasy manager — the boundary service around the season core.

Wires the pure chip / transfer / transition / scoring functions to the
SQLite repositories and the gameweek window oracle. Every method returns
a plain dict; business-rule refusals come back as ``{"error": ...}``
(with ``code`` and ``reason``) and are never raised.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from pydantic import ValidationError

from jpl_fantasy.db.connection import connect
from jpl_fantasy.db.migrations import apply_migrations
from jpl_fantasy.db.repositories import (
    GameweekPointsRepository,
    GameweekRepository,
    LedgerRepository,
    PlayerPointsRepository,
    SquadRepository,
    TransferLogRepository,
    UserStateRepository,
)
from jpl_fantasy.paths import DB_PATH
from jpl_fantasy.schemas.fantasy_rules import (
    CHIP_LABELS,
    WILDCARD_CHIPS,
    ChipKind,
    parse_chip_kind,
    require_gameweek,
    wildcard_for_gameweek,
)
from jpl_fantasy.schemas.squad import Squad
from jpl_fantasy.schemas.state import (
    ChipsUsed,
    ChipUsage,
    Rejection,
    RejectionCode,
    TransferState,
    default_chips_used,
    default_transfer_state,
)
from jpl_fantasy.season import chips as chip_registry
from jpl_fantasy.season.interfaces import GameweekWindowOracle
from jpl_fantasy.season.scoring import aggregate_points, validate_squad_for_scoring
from jpl_fantasy.season.transfers import (
    activate_free_hit,
    activate_wildcard,
    apply_transfer,
    calculate_transfer_cost,
    summarise,
    transfer_message,
)
from jpl_fantasy.season.transitions import transition_to_new_gameweek
from jpl_fantasy.season.window import GWPhase, ScheduleOracle, can_transition

logger = logging.getLogger(__name__)


def _closed(gameweek: int) -> Rejection:
    return Rejection(
        code=RejectionCode.GAMEWEEK_CLOSED,
        reason="closed",
        message=f"GW{gameweek} is not open for changes",
    )


def _state_view(state: TransferState) -> dict:
    return state.model_dump(mode="json", by_alias=True)


class FantasyManager:
    """Per-user transfer, chip and scoring operations over one database."""

    def __init__(self, db_path: Path | None = None, oracle: GameweekWindowOracle | None = None):
        self.db_path = Path(db_path or DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with connect(self.db_path) as conn:
            apply_migrations(conn)

        self.user_states = UserStateRepository(self.db_path)
        self.squads = SquadRepository(self.db_path)
        self.transfer_log = TransferLogRepository(self.db_path)
        self.gameweeks = GameweekRepository(self.db_path)
        self.player_points = PlayerPointsRepository(self.db_path)
        self.ledger = LedgerRepository(self.db_path)
        self.gameweek_points = GameweekPointsRepository(self.db_path)
        self.schedule = ScheduleOracle(self.gameweeks)
        self.oracle = oracle or self.schedule

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_first_time(self, user_id: str, gameweek: int) -> bool:
        """True until the user has saved a squad for this or an earlier GW."""
        if self.user_states.has_saved_squad(user_id):
            return False
        return not any(gw <= gameweek for gw in self.squads.list_gameweeks(user_id))

    @staticmethod
    def _prepare(
        state: TransferState | None,
        chips: ChipsUsed | None,
        gameweek: int,
        first_time: bool,
    ) -> tuple[TransferState, ChipsUsed] | Rejection:
        """Bring a stored (or missing) state up to *gameweek*."""
        if state is None:
            return default_transfer_state(gameweek, first_time_user=first_time), default_chips_used()
        return transition_to_new_gameweek(state, chips or default_chips_used(), gameweek)

    def _record_ledger(
        self, conn, user_id: str, gameweek: int, state: TransferState, chips: ChipsUsed,
    ) -> None:
        self.ledger.record(
            user_id, gameweek, summarise(state), chip_registry.active_chip(chips, gameweek),
            conn=conn,
        )

    def _view(self, user_id: str, gameweek: int) -> tuple[TransferState, ChipsUsed] | Rejection:
        """Read-only view of the user's state as of *gameweek*."""
        loaded = self.user_states.load(user_id)
        state, chips = loaded if loaded else (None, None)
        return self._prepare(state, chips, gameweek, self._is_first_time(user_id, gameweek))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self, user_id: str, gameweek: int | None = None) -> dict:
        """Transfer state, chip eligibility and squad flag for *user_id*."""
        gw = gameweek or self.oracle.current_open_gameweek()
        if gw is None:
            return {"error": "No gameweek is currently open"}
        require_gameweek(gw)

        view = self._view(user_id, gw)
        if isinstance(view, Rejection):
            return view.to_error()
        state, chips = view
        return {
            "user_id": user_id,
            "gameweek": gw,
            "is_open": self.oracle.is_gameweek_open(gw),
            "known_user": self.user_states.get_row(user_id) is not None,
            "has_saved_squad": self.user_states.has_saved_squad(user_id),
            "transfer_state": _state_view(state),
            "summary": summarise(state).model_dump(),
            "active_chip": (
                chip.value if (chip := chip_registry.active_chip(chips, gw)) else None
            ),
            "chips": chip_registry.chip_status(chips, gw),
            "wildcard_slot": (
                slot.value if (slot := wildcard_for_gameweek(gw)) else None
            ),
        }

    def get_transfer_history(self, user_id: str, gameweek: int | None = None) -> dict:
        loaded = self.user_states.load(user_id)
        return {
            "user_id": user_id,
            "transfer_state": _state_view(loaded[0]) if loaded else None,
            "transfers": self.transfer_log.get_transfers(user_id, gameweek),
        }

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def make_transfer(
        self,
        user_id: str,
        gameweek: int,
        player_out_id: str,
        player_in_id: str,
    ) -> dict:
        """Apply one transfer for *user_id* in *gameweek*."""
        require_gameweek(gameweek)
        if str(player_out_id) == str(player_in_id):
            return {"error": "Player in and player out must differ"}
        if not self.oracle.is_gameweek_open(gameweek):
            return _closed(gameweek).to_error()

        first_time = self._is_first_time(user_id, gameweek)

        def _apply(state, chips):
            prepared = self._prepare(state, chips, gameweek, first_time)
            if isinstance(prepared, Rejection):
                return None, None, prepared
            state, chips = prepared
            new_state, summary = apply_transfer(state, gameweek)
            added = new_state.points_deducted_this_week - state.points_deducted_this_week
            return new_state, chips, (new_state, chips, summary, added)

        def _persist(conn, result):
            new_state, chips, _, added = result
            self.transfer_log.log_transfer(
                user_id, gameweek, player_out_id, player_in_id, added, conn=conn,
            )
            self._record_ledger(conn, user_id, gameweek, new_state, chips)

        result = self.user_states.update(user_id, _apply, persist=_persist)
        if isinstance(result, Rejection):
            return result.to_error()
        new_state, chips, summary, added = result

        logger.info(
            "User %s GW%d: %s -> %s (cost %d)",
            user_id, gameweek, player_out_id, player_in_id, added,
        )
        return {
            "status": "ok",
            "transfer_state": _state_view(new_state),
            "summary": summary.model_dump(),
            "transfer_cost": added,
            "message": transfer_message(summary, added, gameweek),
        }

    def preview_transfer_cost(self, user_id: str, gameweek: int, transfers: int = 1) -> dict:
        """Cost of *transfers* more transfers this gameweek, without applying them."""
        require_gameweek(gameweek)
        if transfers < 0:
            return {"error": "transfers must be >= 0"}
        view = self._view(user_id, gameweek)
        if isinstance(view, Rejection):
            return view.to_error()
        state, _ = view
        summary = calculate_transfer_cost(
            transfers,
            state.saved_free_transfers,
            gameweek=gameweek,
            wildcard_active=state.wildcard_active,
            free_hit_active=state.free_hit_active,
        )
        return {
            "gameweek": gameweek,
            "transfers": transfers,
            "cost": summary.points_deducted,
            "summary": summary.model_dump(),
            "transfer_state": _state_view(state),
        }

    # ------------------------------------------------------------------
    # Chips
    # ------------------------------------------------------------------

    def activate_chip(self, user_id: str, chip: str, gameweek: int) -> dict:
        """Activate *chip* for *gameweek*, applying its transfer-state side."""
        require_gameweek(gameweek)
        kind = parse_chip_kind(chip)
        if kind is None:
            return Rejection(
                code=RejectionCode.UNKNOWN_CHIP,
                reason="unknown",
                message=f"Unknown chip: {chip}",
            ).to_error()
        if not self.oracle.is_gameweek_open(gameweek):
            return _closed(gameweek).to_error()

        first_time = self._is_first_time(user_id, gameweek)

        def _apply(state, chips):
            prepared = self._prepare(state, chips, gameweek, first_time)
            if isinstance(prepared, Rejection):
                return None, None, prepared
            state, chips = prepared
            new_chips = chip_registry.activate(kind, chips, gameweek)
            if isinstance(new_chips, Rejection):
                return None, None, new_chips
            if kind in WILDCARD_CHIPS:
                state = activate_wildcard(state, kind)
            elif kind is ChipKind.FREE_HIT:
                state = activate_free_hit(state)
            return state, new_chips, (state, new_chips)

        def _persist(conn, result):
            self._record_ledger(conn, user_id, gameweek, *result)

        result = self.user_states.update(user_id, _apply, persist=_persist)
        if isinstance(result, Rejection):
            return result.to_error()
        state, chips = result

        logger.info("User %s activated %s in GW%d", user_id, kind.value, gameweek)
        return {
            "status": "activated",
            "chip": kind.value,
            "message": f"{CHIP_LABELS[kind]} activated for GW{gameweek}",
            "transfer_state": _state_view(state),
            "chips": chip_registry.chip_status(chips, gameweek),
        }

    def deactivate_chips(self, user_id: str, gameweek: int) -> dict:
        """Clear chip flags left active once *gameweek* is over; usage is kept.

        Refused while *gameweek* is still open. Only chips played in
        *gameweek* or earlier are cleared, never one played in the
        currently open gameweek. The ledger still names the chip played.
        """
        require_gameweek(gameweek)
        if self.oracle.is_gameweek_open(gameweek):
            return Rejection(
                code=RejectionCode.GAMEWEEK_OPEN,
                reason="open",
                message=f"Chips can only be deactivated after GW{gameweek} has closed",
            ).to_error()
        open_gw = self.oracle.current_open_gameweek()

        def _apply(state, chips):
            if state is None:
                return None, None, None
            new_chips, cleared = chip_registry.deactivate_through(chips, gameweek, open_gw)
            if not cleared:
                return None, None, (state, chips, [])
            new_state = state
            if any(kind in WILDCARD_CHIPS for kind in cleared):
                new_state = new_state.evolve(wildcard_active=False)
            if ChipKind.FREE_HIT in cleared:
                new_state = new_state.evolve(free_hit_active=False)
            return new_state, new_chips, (new_state, new_chips, cleared)

        result = self.user_states.update(user_id, _apply)
        if result is None:
            return {"error": f"User {user_id} not found"}
        state, chips, cleared = result
        if not cleared:
            return {
                "status": "unchanged",
                "message": "No active chips to deactivate",
                "chips": chip_registry.chip_status(chips, gameweek),
            }
        logger.info(
            "User %s deactivated %s after GW%d",
            user_id, ", ".join(k.value for k in cleared), gameweek,
        )
        return {
            "status": "deactivated",
            "message": "Chips deactivated successfully",
            "deactivated": [k.value for k in cleared],
            "transfer_state": _state_view(state),
            "chips": chip_registry.chip_status(chips, gameweek),
        }

    # ------------------------------------------------------------------
    # Gameweek transitions
    # ------------------------------------------------------------------

    def start_gameweek(self, user_id: str, gameweek: int) -> dict:
        """Run the gameweek transition for one stored user."""
        require_gameweek(gameweek)

        def _apply(state, chips):
            if state is None:
                return None, None, None
            moved = transition_to_new_gameweek(state, chips, gameweek)
            if isinstance(moved, Rejection):
                return None, None, moved
            new_state, new_chips = moved
            return new_state, new_chips, (state, new_state)

        result = self.user_states.update(user_id, _apply)
        if result is None:
            return {"error": f"User {user_id} not found"}
        if isinstance(result, Rejection):
            return result.to_error()
        before, after = result
        return {
            "status": "unchanged" if before == after else "started",
            "gameweek": gameweek,
            "transfer_state": _state_view(after),
        }

    def start_gameweek_for_all(self, gameweek: int) -> dict:
        """Transition every stored user into *gameweek*."""
        require_gameweek(gameweek)
        started, unchanged, errors = [], [], []
        for user_id in self.user_states.list_user_ids():
            result = self.start_gameweek(user_id, gameweek)
            if "error" in result:
                errors.append({"user_id": user_id, "error": result["error"]})
            elif result["status"] == "started":
                started.append(user_id)
            else:
                unchanged.append(user_id)
        logger.info(
            "GW%d start: %d started, %d unchanged, %d errors",
            gameweek, len(started), len(unchanged), len(errors),
        )
        return {
            "gameweek": gameweek,
            "started": started,
            "unchanged": unchanged,
            "errors": errors,
        }

    # ------------------------------------------------------------------
    # Squads
    # ------------------------------------------------------------------

    def save_squad(self, user_id: str, gameweek: int, squad: Squad | dict) -> dict:
        """Store the squad *user_id* fields in *gameweek*."""
        require_gameweek(gameweek)
        if isinstance(squad, dict):
            try:
                squad = Squad.model_validate(squad)
            except ValidationError as exc:
                return {"error": "Invalid squad", "details": [e["msg"] for e in exc.errors()]}
        rejection = validate_squad_for_scoring(squad)
        if rejection is not None:
            return rejection.to_error()
        if not self.oracle.is_gameweek_open(gameweek):
            return _closed(gameweek).to_error()

        first_time = self._is_first_time(user_id, gameweek)

        def _ensure(state, chips):
            prepared = self._prepare(state, chips, gameweek, first_time)
            if isinstance(prepared, Rejection):
                return None, None, prepared
            state, chips = prepared
            return state, chips, None

        rejected = self.user_states.update(user_id, _ensure)
        if rejected is not None:
            return rejected.to_error()

        self.squads.save_squad(user_id, gameweek, squad)
        self.user_states.mark_squad_saved(user_id)
        logger.info("User %s saved GW%d squad", user_id, gameweek)
        return {"status": "saved", "gameweek": gameweek, "squad": squad.model_dump(by_alias=True)}

    def get_squad(self, user_id: str, gameweek: int) -> dict:
        require_gameweek(gameweek)
        squad = self.squads.squad_for(user_id, gameweek)
        if squad is None:
            return Rejection(
                code=RejectionCode.NO_SQUAD,
                reason="missing",
                message=f"No squad saved for GW{gameweek}",
            ).to_error()
        return {"user_id": user_id, "gameweek": gameweek, "squad": squad.model_dump(by_alias=True)}

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _chips_for_scoring(self, chip_played: str | None, gameweek: int) -> ChipsUsed:
        chips = default_chips_used()
        kind = parse_chip_kind(chip_played) if chip_played else None
        if kind is None:
            return chips
        return chips.replace({kind: ChipUsage(used=True, activated_gameweek=gameweek, is_active=True)})

    def score_gameweek(
        self,
        user_id: str,
        gameweek: int,
        player_points: Mapping[str, int] | None = None,
    ) -> dict:
        """Score *user_id*'s *gameweek* and store the result.

        Uses the gameweek's squad, or the latest earlier one (then without
        a transfer cost). The deduction and chip come from the gameweek
        ledger, so scoring still works after the next transition.
        """
        require_gameweek(gameweek)
        points = player_points if player_points is not None else self.player_points.get_points_map(gameweek)

        squad = self.squads.squad_for(user_id, gameweek)
        from_previous = False
        if squad is None:
            earlier = self.squads.latest_before(user_id, gameweek)
            if earlier is None:
                return Rejection(
                    code=RejectionCode.NO_SQUAD,
                    reason="missing",
                    message=f"No squad saved for GW{gameweek} or earlier",
                ).to_error()
            source_gw, squad = earlier
            from_previous = True
            logger.info("User %s GW%d: scoring GW%d squad", user_id, gameweek, source_gw)

        entry = self.ledger.get_entry(user_id, gameweek) or {}
        deducted = 0 if from_previous else entry.get("points_deducted", 0)
        chips = self._chips_for_scoring(entry.get("chip_played"), gameweek)

        score = aggregate_points(squad, points, chips, deducted, gameweek)
        if isinstance(score, Rejection):
            return score.to_error()

        self.gameweek_points.save_score(
            user_id,
            score,
            transfers_made=0 if from_previous else entry.get("transfers_made", 0),
            from_previous_squad=from_previous,
        )
        return {
            "status": "scored",
            "user_id": user_id,
            "gameweek": gameweek,
            "points": score.final_score,
            "from_previous_squad": from_previous,
            "score": score.model_dump(mode="json", by_alias=True),
        }

    def process_gameweek_results(
        self,
        gameweek: int,
        player_points: Mapping[str, int] | None = None,
    ) -> dict:
        """Record raw player points (if given) and score every user."""
        require_gameweek(gameweek)
        if player_points:
            self.player_points.save_points_bulk(gameweek, player_points)
        points = self.player_points.get_points_map(gameweek)

        scored, errors = [], []
        for user_id in self.user_states.list_user_ids():
            try:
                result = self.score_gameweek(user_id, gameweek, points)
            except ValueError as exc:
                logger.exception("Scoring GW%d failed for user %s", gameweek, user_id)
                errors.append({"user_id": user_id, "error": str(exc)})
                continue
            if "error" in result:
                errors.append({"user_id": user_id, "error": result["error"]})
            else:
                scored.append({"user_id": user_id, "points": result["points"]})

        row = self.gameweeks.get_gameweek(gameweek)
        if row is not None and can_transition(GWPhase(row["phase"]), GWPhase.SCORED):
            self.gameweeks.update_phase(gameweek, GWPhase.SCORED.value)

        logger.info("GW%d results: %d scored, %d errors", gameweek, len(scored), len(errors))
        return {
            "gameweek": gameweek,
            "players_with_points": len(points),
            "scored": scored,
            "errors": errors,
        }

    def get_gameweek_points(self, user_id: str, gameweek: int | None = None) -> dict:
        rows = self.gameweek_points.get_points(user_id, gameweek)
        if gameweek is not None and not rows:
            return {"error": f"No points recorded for GW{gameweek}"}
        return {"user_id": user_id, "gameweeks": rows}

    def get_season_total(self, user_id: str) -> dict:
        return {
            "user_id": user_id,
            "total_points": self.gameweek_points.season_total(user_id),
            "gameweeks": len(self.gameweek_points.get_points(user_id)),
        }

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    def set_gameweek(self, number: int, deadline: str | None = None, phase: str | None = None) -> dict:
        """Create or update a schedule row."""
        require_gameweek(number)
        if phase is not None:
            try:
                new_phase = GWPhase(phase)
            except ValueError:
                return {"error": f"Unknown phase: {phase}"}
            row = self.gameweeks.get_gameweek(number)
            if row is not None and row["phase"] != new_phase.value:
                if can_transition(GWPhase(row["phase"]), new_phase):
                    logger.info("GW%d phase: %s -> %s", number, row["phase"], new_phase.value)
                else:
                    logger.warning("Forced GW%d phase update: %s -> %s", number, row["phase"], new_phase.value)
        self.gameweeks.upsert_gameweek(number, deadline, phase)
        return {"status": "ok", "gameweek": self._schedule_row(self.gameweeks.get_gameweek(number))}

    def _schedule_row(self, row: dict) -> dict:
        return {
            "number": row["number"],
            "deadline": row["deadline"],
            "stored_phase": row["phase"],
            "phase": self.schedule.phase_of(row).value,
        }

    def list_gameweeks(self) -> list[dict]:
        return [self._schedule_row(row) for row in self.gameweeks.list_gameweeks()]

    def current_gameweek(self) -> dict:
        gw = self.oracle.current_open_gameweek()
        if gw is None:
            return {"gameweek": None, "is_open": False}
        return {"gameweek": gw, "is_open": True}
