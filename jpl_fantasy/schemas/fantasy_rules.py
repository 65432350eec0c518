"""League rule constants and Pydantic validators.

Encodes the game rules that the transfer engine, chip registry and
points aggregator share: squad shape, hit cost, chip kinds and their
activation windows.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from jpl_fantasy.config import chip_cfg, scoring_cfg, season_cfg, transfer_cfg


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Squad composition
SQUAD_SIZE = scoring_cfg.squad_size
STARTING_XI = scoring_cfg.starting_xi

# Transfers
HIT_COST = transfer_cfg.hit_cost  # Points deducted per extra transfer
MAX_FREE_TRANSFERS = transfer_cfg.max_banked_transfers

# Season structure
TOTAL_GAMEWEEKS = season_cfg.total_gameweeks
FIRST_GAMEWEEK = season_cfg.first_gameweek


# ---------------------------------------------------------------------------
# Chip definitions
# ---------------------------------------------------------------------------

class ChipKind(str, Enum):
    WILDCARD_1 = "wildcard1"
    WILDCARD_2 = "wildcard2"
    BENCH_BOOST = "benchBoost"
    TRIPLE_CAPTAIN = "tripleCaptain"
    FREE_HIT = "freeHit"


WILDCARD_CHIPS = {ChipKind.WILDCARD_1, ChipKind.WILDCARD_2}

# Activation windows (inclusive). Chips missing here have no window.
CHIP_WINDOWS: dict[ChipKind, tuple[int, int]] = {
    ChipKind.WILDCARD_1: chip_cfg.wildcard1_window,
    ChipKind.WILDCARD_2: chip_cfg.wildcard2_window,
    ChipKind.FREE_HIT: (chip_cfg.free_hit_first_gameweek, TOTAL_GAMEWEEKS),
}

CHIP_LABELS: dict[ChipKind, str] = {
    ChipKind.WILDCARD_1: "Wildcard 1",
    ChipKind.WILDCARD_2: "Wildcard 2",
    ChipKind.BENCH_BOOST: "Bench Boost",
    ChipKind.TRIPLE_CAPTAIN: "Triple Captain",
    ChipKind.FREE_HIT: "Free Hit",
}


def parse_chip_kind(value: str) -> ChipKind | None:
    """Return the ChipKind for *value*, or None if it names no chip."""
    try:
        return ChipKind(value)
    except ValueError:
        return None


def in_chip_window(kind: ChipKind, gameweek: int) -> bool:
    """Return True if *gameweek* falls inside *kind*'s activation window."""
    window = CHIP_WINDOWS.get(kind)
    if window is None:
        return True
    lo, hi = window
    return lo <= gameweek <= hi


def wildcard_for_gameweek(gameweek: int) -> ChipKind | None:
    """Return which wildcard slot covers *gameweek* (None outside both)."""
    for kind in (ChipKind.WILDCARD_1, ChipKind.WILDCARD_2):
        if in_chip_window(kind, gameweek):
            return kind
    return None


def require_gameweek(gameweek: int) -> int:
    """Reject gameweek numbers that are not positive integers.

    A bad gameweek is a caller defect, not a business-rule outcome, so
    this raises instead of returning a rejection.
    """
    if isinstance(gameweek, bool) or not isinstance(gameweek, int):
        raise ValueError(f"Gameweek must be an integer, got {gameweek!r}")
    if gameweek < FIRST_GAMEWEEK:
        raise ValueError(f"Gameweek must be >= {FIRST_GAMEWEEK}, got {gameweek}")
    return gameweek


# ---------------------------------------------------------------------------
# Validation models
# ---------------------------------------------------------------------------

class SquadStructureValidation(BaseModel):
    """Validates the starter/bench/captain structure the scorer relies on.

    Budget, position counts and club limits belong to squad legality,
    which is checked elsewhere.
    """

    player_ids: list[str] = Field(..., max_length=SQUAD_SIZE)
    starter_ids: list[str]
    captain_id: str | None = None
    captain_flags: int = 0  # Number of players flagged as captain

    @model_validator(mode="after")
    def validate_structure(self) -> "SquadStructureValidation":
        errors: list[str] = []

        if len(set(self.player_ids)) != len(self.player_ids):
            errors.append("Duplicate player IDs in squad")

        if len(self.starter_ids) != STARTING_XI:
            errors.append(f"Need {STARTING_XI} starters, got {len(self.starter_ids)}")

        if self.captain_flags > 1:
            errors.append(f"Only one captain allowed, got {self.captain_flags}")

        if not self.captain_id:
            errors.append("No captain selected")
        elif self.captain_id not in self.starter_ids:
            errors.append(f"Captain {self.captain_id} is not in the starting XI")

        if errors:
            raise ValueError("; ".join(errors))
        return self


# ---------------------------------------------------------------------------
# Convenience functions
# ---------------------------------------------------------------------------

def _extract_errors(exc: Exception) -> list[str]:
    """Extract human-readable error messages from a Pydantic ValidationError."""
    from pydantic import ValidationError

    if isinstance(exc, ValidationError):
        errors = []
        for err in exc.errors():
            msg = err.get("msg", "")
            # Pydantic prefixes with "Value error, "
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            errors.extend(msg.split("; "))
        return errors
    return [str(exc)]


def validate_squad_structure(
    player_ids: list[str],
    starter_ids: list[str],
    captain_id: str | None,
    captain_flags: int = 0,
) -> list[str]:
    """Validate squad structure and return list of error strings (empty if valid)."""
    try:
        SquadStructureValidation(
            player_ids=player_ids,
            starter_ids=starter_ids,
            captain_id=captain_id,
            captain_flags=captain_flags,
        )
        return []
    except ValueError as e:
        return _extract_errors(e)
