"""Value types and rule constants shared by the season core."""

from jpl_fantasy.schemas.fantasy_rules import ChipKind
from jpl_fantasy.schemas.squad import GameweekScore, Squad, SquadPlayer
from jpl_fantasy.schemas.state import (
    UNLIMITED,
    ChipsUsed,
    ChipUsage,
    GameweekTransferSummary,
    Rejection,
    RejectionCode,
    TransferState,
    default_chips_used,
    default_transfer_state,
)

__all__ = [
    "UNLIMITED",
    "ChipKind",
    "ChipUsage",
    "ChipsUsed",
    "TransferState",
    "GameweekTransferSummary",
    "Rejection",
    "RejectionCode",
    "Squad",
    "SquadPlayer",
    "GameweekScore",
    "default_chips_used",
    "default_transfer_state",
]
