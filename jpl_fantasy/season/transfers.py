"""Transfer engine — cost model and per-transfer state updates.

``apply_transfer`` models exactly one player swap. N transfers are N
calls (``apply_transfers`` does the loop); passing a count to a single
call is not supported.

Cost rules, strongest first:
    1. Wildcard or Free Hit active -> free, bank untouched.
    2. GW1 or unlimited bank       -> free, bank untouched.
    3. Banked free transfer        -> consume one, free.
    4. Otherwise                   -> HIT_COST points, bank stays 0.
"""

from __future__ import annotations

import logging

from jpl_fantasy.config import transfer_cfg
from jpl_fantasy.schemas.fantasy_rules import HIT_COST, ChipKind, WILDCARD_CHIPS, require_gameweek
from jpl_fantasy.schemas.state import (
    UNLIMITED,
    FreeTransfers,
    GameweekTransferSummary,
    TransferState,
)

logger = logging.getLogger(__name__)


def calculate_transfer_cost(
    transfers_this_week: int,
    saved_free_transfers: FreeTransfers,
    gameweek: int = 1,
    wildcard_active: bool = False,
    free_hit_active: bool = False,
) -> GameweekTransferSummary:
    """Summarise what *transfers_this_week* transfers cost against a bank."""
    require_gameweek(gameweek)
    if transfers_this_week < 0:
        raise ValueError(f"transfers_this_week must be >= 0, got {transfers_this_week}")

    if wildcard_active or free_hit_active:
        return GameweekTransferSummary(
            transfers_made=transfers_this_week,
            free_transfers_used=transfers_this_week,
            wildcard_used=wildcard_active,
            free_hit_used=free_hit_active,
        )

    if gameweek == 1 or saved_free_transfers is UNLIMITED:
        return GameweekTransferSummary(
            transfers_made=transfers_this_week,
            free_transfers_used=transfers_this_week,
        )

    free_used = min(transfers_this_week, saved_free_transfers)
    paid = transfers_this_week - free_used
    return GameweekTransferSummary(
        transfers_made=transfers_this_week,
        free_transfers_used=free_used,
        paid_transfers=paid,
        points_deducted=paid * HIT_COST,
    )


def summarise(state: TransferState) -> GameweekTransferSummary:
    """Week-to-date summary of *state*'s transfers."""
    paid = state.points_deducted_this_week // HIT_COST
    return GameweekTransferSummary(
        transfers_made=state.transfers_made_this_week,
        free_transfers_used=state.transfers_made_this_week - paid,
        paid_transfers=paid,
        points_deducted=state.points_deducted_this_week,
        wildcard_used=state.wildcard_active,
        free_hit_used=state.free_hit_active,
    )


def apply_transfer(
    state: TransferState, gameweek: int,
) -> tuple[TransferState, GameweekTransferSummary]:
    """Apply ONE transfer to *state* and return the new state and summary."""
    require_gameweek(gameweek)
    made = state.transfers_made_this_week + 1

    if state.chip_active:
        # Tracked for audit; never costs points or touches the bank.
        new_state = state.evolve(transfers_made_this_week=made)
    elif gameweek == 1 or state.is_unlimited:
        new_state = state.evolve(transfers_made_this_week=made)
    elif state.saved_free_transfers > 0:
        new_state = state.evolve(
            transfers_made_this_week=made,
            saved_free_transfers=state.saved_free_transfers - 1,
        )
    else:
        new_state = state.evolve(
            transfers_made_this_week=made,
            points_deducted_this_week=state.points_deducted_this_week + HIT_COST,
            saved_free_transfers=0,
        )
        logger.info(
            "GW%d transfer #%d costs %d points (week total -%d)",
            gameweek, made, HIT_COST, new_state.points_deducted_this_week,
        )

    return new_state, summarise(new_state)


def apply_transfers(
    state: TransferState, gameweek: int, count: int,
) -> tuple[TransferState, GameweekTransferSummary]:
    """Apply *count* individual transfers, one ``apply_transfer`` call each."""
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    summary = summarise(state)
    for _ in range(count):
        state, summary = apply_transfer(state, gameweek)
    return state, summary


def activate_wildcard(state: TransferState, kind: ChipKind) -> TransferState:
    """Open an unlimited-transfer wildcard week. Pair with ``chips.activate``."""
    if kind not in WILDCARD_CHIPS:
        raise ValueError(f"{kind} is not a wildcard chip")
    return state.evolve(
        wildcard_active=True,
        saved_free_transfers=UNLIMITED,
        transfers_made_this_week=0,
        points_deducted_this_week=0,
    )


def deactivate_wildcard(state: TransferState, next_gameweek: int) -> TransferState:
    """Expire a wildcard at the start of *next_gameweek*.

    The bank is forced to exactly one free transfer whatever was banked
    before activation.
    """
    require_gameweek(next_gameweek)
    return state.evolve(
        wildcard_active=False,
        saved_free_transfers=transfer_cfg.post_wildcard_free_transfers,
        transfers_made_this_week=0,
        points_deducted_this_week=0,
        last_gameweek_processed=next_gameweek,
    )


def activate_free_hit(state: TransferState) -> TransferState:
    """Open a Free Hit week. The bank is left as it was."""
    return state.evolve(
        free_hit_active=True,
        transfers_made_this_week=0,
        points_deducted_this_week=0,
    )


def deactivate_free_hit(state: TransferState) -> TransferState:
    """Clear the Free Hit flag. The bank is left as it was."""
    return state.evolve(free_hit_active=False)


def transfer_message(summary: GameweekTransferSummary, points_added: int, gameweek: int) -> str:
    """Human-readable outcome of the latest transfer."""
    if summary.wildcard_used:
        return f"Transfer made with Wildcard active (GW{gameweek}), no points deducted"
    if summary.free_hit_used:
        return f"Transfer made with Free Hit active (GW{gameweek}), no points deducted"
    if points_added:
        return (
            f"No free transfers available, this transfer costs {points_added} points "
            f"(GW{gameweek} total: -{summary.points_deducted})"
        )
    return f"Free transfer used (GW{gameweek})"
