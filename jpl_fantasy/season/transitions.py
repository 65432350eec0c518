"""Gameweek transitioner — free-transfer accrual and weekly resets.

``process_gameweek_start`` is the idempotent per-user entry point, run
once at each gameweek boundary (the caller decides *when* using the
window oracle). Bank policy on entering a new gameweek:

    wildcard was active   -> exactly 1 (wildcard expiry)
    bank was unlimited    -> exactly 1 (unlimited never carries over)
    otherwise             -> min(2, bank + gameweeks elapsed)

Free Hit expiry has no policy of its own: the pre-Free-Hit bank was
never touched, so it goes through the normal accrual.
"""

from __future__ import annotations

import logging

from jpl_fantasy.config import transfer_cfg
from jpl_fantasy.schemas.fantasy_rules import MAX_FREE_TRANSFERS, require_gameweek
from jpl_fantasy.schemas.state import (
    UNLIMITED,
    ChipsUsed,
    FreeTransfers,
    Rejection,
    RejectionCode,
    TransferState,
)
from jpl_fantasy.season import chips as chip_registry
from jpl_fantasy.season.transfers import deactivate_wildcard

logger = logging.getLogger(__name__)


def calculate_free_transfers(
    from_gameweek: int,
    to_gameweek: int,
    current_free_transfers: FreeTransfers = 0,
) -> FreeTransfers:
    """Free transfers available in *to_gameweek*.

    GW1 is unlimited, GW2 always starts from exactly one, afterwards one
    transfer accrues per elapsed gameweek, capped at MAX_FREE_TRANSFERS.
    """
    require_gameweek(to_gameweek)
    if to_gameweek == 1:
        return UNLIMITED
    if to_gameweek == 2:
        return transfer_cfg.free_transfers_per_gameweek

    if current_free_transfers is UNLIMITED:
        current_free_transfers = 0
    elapsed = max(0, to_gameweek - from_gameweek)
    accrued = current_free_transfers + elapsed * transfer_cfg.free_transfers_per_gameweek
    return max(0, min(MAX_FREE_TRANSFERS, accrued))


def process_gameweek_start(state: TransferState, gameweek: int) -> TransferState | Rejection:
    """Advance *state* into *gameweek*, resetting weekly counters once.

    Returns *state* unchanged if *gameweek* was already processed, and a
    rejection if *gameweek* is older than the last processed one.
    """
    require_gameweek(gameweek)
    last = state.last_gameweek_processed

    if gameweek < last:
        logger.warning("Rejected transition backwards: GW%d -> GW%d", last, gameweek)
        return Rejection(
            code=RejectionCode.INVALID_TRANSITION,
            reason="backwards",
            message=f"Cannot start GW{gameweek}: GW{last} has already been processed",
        )
    if gameweek == last:
        return state

    if state.wildcard_active:
        new_state = deactivate_wildcard(state, gameweek).evolve(free_hit_active=False)
        policy = "wildcard expiry"
    else:
        if state.is_unlimited:
            new_free = transfer_cfg.free_transfers_per_gameweek
            policy = "unlimited expiry"
        else:
            new_free = calculate_free_transfers(last, gameweek, state.saved_free_transfers)
            policy = "accrual"
        new_state = state.evolve(
            saved_free_transfers=new_free,
            transfers_made_this_week=0,
            points_deducted_this_week=0,
            wildcard_active=False,
            free_hit_active=False,
            last_gameweek_processed=gameweek,
        )

    logger.info(
        "GW%d -> GW%d (%s): free transfers %s -> %s, penalties %d -> 0",
        last, gameweek, policy,
        _fmt_bank(state.saved_free_transfers), _fmt_bank(new_state.saved_free_transfers),
        state.points_deducted_this_week,
    )
    return new_state


def transition_to_new_gameweek(
    state: TransferState, chips: ChipsUsed, gameweek: int,
) -> tuple[TransferState, ChipsUsed] | Rejection:
    """Full per-user transition: transfer state plus chip expiry."""
    new_state = process_gameweek_start(state, gameweek)
    if isinstance(new_state, Rejection):
        return new_state
    return new_state, chip_registry.expire(chips, gameweek)


def _fmt_bank(value: FreeTransfers) -> str:
    return "unlimited" if value is UNLIMITED else str(value)
