"""Gameweek window lifecycle and the schedule-backed window oracle.

Phases:
    UPCOMING → OPEN → CLOSED → SCORED

A gameweek accepts transfers and chip activations only while OPEN. The
oracle answers "is GW open" and "which GW is open now" from the stored
schedule and the wall clock; it never mutates user state itself.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Callable


class GWPhase(str, Enum):
    UPCOMING = "upcoming"
    OPEN = "open"
    CLOSED = "closed"
    SCORED = "scored"


# Valid (from -> {to, ...}) transitions.
_TRANSITIONS: dict[GWPhase, set[GWPhase]] = {
    GWPhase.UPCOMING: {GWPhase.OPEN},
    GWPhase.OPEN: {GWPhase.CLOSED},
    GWPhase.CLOSED: {GWPhase.SCORED},
    GWPhase.SCORED: set(),
}


def can_transition(from_phase: GWPhase, to_phase: GWPhase) -> bool:
    """Return True if *from_phase* → *to_phase* is a valid transition."""
    return to_phase in _TRANSITIONS.get(from_phase, set())


def next_phase(phase: GWPhase) -> GWPhase | None:
    """Return the next phase (None once SCORED)."""
    if phase is GWPhase.UPCOMING:
        return GWPhase.OPEN
    if phase is GWPhase.OPEN:
        return GWPhase.CLOSED
    if phase is GWPhase.CLOSED:
        return GWPhase.SCORED
    return None


def detect_phase(*, opened: bool, deadline_passed: bool, scored: bool) -> GWPhase:
    """Detect a gameweek's phase from real-world state.

    Priority (strongest signal first):
        1. scored          → SCORED
        2. deadline_passed → CLOSED
        3. opened          → OPEN
        4. else            → UPCOMING
    """
    if scored:
        return GWPhase.SCORED
    if deadline_passed:
        return GWPhase.CLOSED
    if opened:
        return GWPhase.OPEN
    return GWPhase.UPCOMING


def parse_deadline(value: str | None) -> datetime | None:
    """Parse an ISO-8601 deadline; naive values are taken as UTC."""
    if not value:
        return None
    try:
        dl = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dl.tzinfo is None:
        dl = dl.replace(tzinfo=timezone.utc)
    return dl


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScheduleOracle:
    """Gameweek window oracle backed by the ``gameweek`` schedule table."""

    def __init__(self, gameweeks, now: Callable[[], datetime] = _utc_now):
        self.gameweeks = gameweeks
        self._now = now

    def phase_of(self, row: dict | None) -> GWPhase:
        if row is None:
            return GWPhase.UPCOMING
        stored = GWPhase(row.get("phase") or GWPhase.UPCOMING.value)
        deadline = parse_deadline(row.get("deadline"))
        return detect_phase(
            opened=stored is not GWPhase.UPCOMING,
            deadline_passed=(
                stored in (GWPhase.CLOSED, GWPhase.SCORED)
                or (deadline is not None and self._now() >= deadline)
            ),
            scored=stored is GWPhase.SCORED,
        )

    def is_gameweek_open(self, gameweek: int) -> bool:
        return self.phase_of(self.gameweeks.get_gameweek(gameweek)) is GWPhase.OPEN

    def current_open_gameweek(self) -> int | None:
        for row in self.gameweeks.list_gameweeks():
            if self.phase_of(row) is GWPhase.OPEN:
                return row["number"]
        return None
