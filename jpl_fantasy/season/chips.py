"""Chip registry — eligibility, activation and expiry of the five chips.

Pure transformations over :class:`ChipsUsed`. The matching transfer-state
side effects (unlimited transfers for Wildcard / Free Hit) are applied by
:mod:`jpl_fantasy.season.transfers`; callers pair the two.

Rules:
    - Each chip is single-use per season (``used`` never resets here).
    - Wildcard 1 only in GW2-13, Wildcard 2 only in GW14-27, Free Hit
      from GW2; Bench Boost and Triple Captain have no window.
    - One chip per gameweek: no activation once another chip has been
      played in the same gameweek, even if it was deactivated since.
"""

from __future__ import annotations

from jpl_fantasy.schemas.fantasy_rules import (
    CHIP_LABELS,
    CHIP_WINDOWS,
    ChipKind,
    in_chip_window,
    require_gameweek,
)
from jpl_fantasy.schemas.state import ChipsUsed, ChipUsage, Rejection, RejectionCode


def _played_in(usage: ChipUsage, gameweek: int) -> bool:
    return usage.is_active_in(gameweek) or (usage.used and usage.activated_gameweek == gameweek)


def check_activation(kind: ChipKind, chips: ChipsUsed, gameweek: int) -> Rejection | None:
    """Return the reason *kind* cannot be activated in *gameweek*, or None.

    Checks run strongest-first: already used, outside window, then
    another chip played this gameweek.
    """
    require_gameweek(gameweek)
    label = CHIP_LABELS[kind]
    usage = chips.get(kind)

    if usage.used:
        return Rejection(
            code=RejectionCode.CHIP_USED,
            reason="used",
            message=f"{label} already used this season (GW{usage.activated_gameweek})",
        )

    if not in_chip_window(kind, gameweek):
        lo, hi = CHIP_WINDOWS[kind]
        return Rejection(
            code=RejectionCode.CHIP_WINDOW,
            reason="window",
            message=f"{label} only available GW{lo}-{hi}",
        )

    for other, other_usage in chips.items():
        if other is not kind and _played_in(other_usage, gameweek):
            return Rejection(
                code=RejectionCode.CHIP_EXCLUSIVITY,
                reason="exclusivity",
                message=(
                    f"Only one chip can be active per gameweek. "
                    f"{CHIP_LABELS[other]} has already been played in GW{gameweek}"
                ),
            )

    return None


def can_activate(kind: ChipKind, chips: ChipsUsed, gameweek: int) -> bool:
    """Return True if *kind* may be activated in *gameweek*."""
    return check_activation(kind, chips, gameweek) is None


def activate(kind: ChipKind, chips: ChipsUsed, gameweek: int) -> ChipsUsed | Rejection:
    """Activate *kind* for *gameweek*, clearing every other active flag."""
    rejection = check_activation(kind, chips, gameweek)
    if rejection is not None:
        return rejection

    updates = {
        other: usage.model_copy(update={"is_active": False})
        for other, usage in chips.items()
        if usage.is_active
    }
    updates[kind] = ChipUsage(used=True, activated_gameweek=gameweek, is_active=True)
    return chips.replace(updates)


def deactivate(kind: ChipKind, chips: ChipsUsed) -> ChipsUsed:
    """Clear *kind*'s active flag. ``used`` stays true."""
    usage = chips.get(kind)
    if not usage.is_active:
        return chips
    return chips.replace({kind: usage.model_copy(update={"is_active": False})})


def deactivate_through(
    chips: ChipsUsed, gameweek: int, open_gameweek: int | None = None,
) -> tuple[ChipsUsed, list[ChipKind]]:
    """Clear active flags of chips played in *gameweek* or earlier.

    A chip played in *open_gameweek* is left alone. Returns the new chips
    and the kinds that were cleared; usage history is kept.
    """
    require_gameweek(gameweek)
    cleared = [
        kind for kind, usage in chips.items()
        if usage.is_active
        and (usage.activated_gameweek or 0) <= gameweek
        and usage.activated_gameweek != open_gameweek
    ]
    updates = {kind: chips.get(kind).model_copy(update={"is_active": False}) for kind in cleared}
    return (chips.replace(updates) if updates else chips), cleared


def expire(chips: ChipsUsed, gameweek: int) -> ChipsUsed:
    """Clear active flags of chips activated before *gameweek*."""
    require_gameweek(gameweek)
    updates = {
        kind: usage.model_copy(update={"is_active": False})
        for kind, usage in chips.items()
        if usage.is_active and (usage.activated_gameweek or 0) < gameweek
    }
    return chips.replace(updates) if updates else chips


def active_chip(chips: ChipsUsed, gameweek: int) -> ChipKind | None:
    """Return the chip active in *gameweek*, if any."""
    for kind, usage in chips.items():
        if usage.is_active_in(gameweek):
            return kind
    return None


def chip_status(chips: ChipsUsed, gameweek: int) -> list[dict]:
    """Per-chip display rows: usage, active flag and eligibility reason."""
    rows = []
    for kind, usage in chips.items():
        rejection = check_activation(kind, chips, gameweek)
        rows.append({
            "chip": kind.value,
            "label": CHIP_LABELS[kind],
            "used": usage.used,
            "activated_gameweek": usage.activated_gameweek,
            "is_active": usage.is_active_in(gameweek),
            "can_activate": rejection is None,
            "reason": rejection.message if rejection else None,
        })
    return rows
