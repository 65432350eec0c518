"""Season core — chips, transfers, gameweek transitions and scoring."""

from jpl_fantasy.season.manager import FantasyManager
from jpl_fantasy.season.window import GWPhase, ScheduleOracle, can_transition, detect_phase, next_phase

__all__ = [
    "FantasyManager",
    "GWPhase",
    "ScheduleOracle",
    "can_transition",
    "detect_phase",
    "next_phase",
]
