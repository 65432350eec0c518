"""Pydantic value types for per-user transfer and chip state.

All models are frozen. Transitions build new instances through
:meth:`TransferState.evolve` / :meth:`ChipsUsed.replace`, which re-run
validation so an invariant violation surfaces as a ``ValidationError``
at the point it is introduced.

Serialised field names are camelCase (``savedFreeTransfers``,
``isActive`` ...) to match the stored user documents.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from jpl_fantasy.config import transfer_cfg
from jpl_fantasy.schemas.fantasy_rules import HIT_COST, MAX_FREE_TRANSFERS, ChipKind

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class Allowance(str, Enum):
    UNLIMITED = "unlimited"


UNLIMITED = Allowance.UNLIMITED

# Either a banked count in [0, MAX_FREE_TRANSFERS] or UNLIMITED.
FreeTransfers = Union[int, Allowance]


def is_unlimited(value: FreeTransfers) -> bool:
    return value is UNLIMITED


# ---------------------------------------------------------------------------
# Chips
# ---------------------------------------------------------------------------

class ChipUsage(BaseModel):
    """Usage record for one chip slot."""

    model_config = _MODEL_CONFIG

    used: bool = False
    activated_gameweek: int | None = None
    is_active: bool = False

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_gameweek_key(cls, data: Any) -> Any:
        # Older documents stored the activation gameweek under "gameweek".
        if isinstance(data, dict) and "gameweek" in data:
            data = dict(data)
            legacy = data.pop("gameweek")
            data.setdefault("activatedGameweek", legacy)
        return data

    def is_active_in(self, gameweek: int) -> bool:
        return self.is_active and self.activated_gameweek == gameweek


_FIELD_BY_KIND: dict[ChipKind, str] = {
    ChipKind.WILDCARD_1: "wildcard1",
    ChipKind.WILDCARD_2: "wildcard2",
    ChipKind.BENCH_BOOST: "bench_boost",
    ChipKind.TRIPLE_CAPTAIN: "triple_captain",
    ChipKind.FREE_HIT: "free_hit",
}


class ChipsUsed(BaseModel):
    """The five chip slots of one manager."""

    model_config = _MODEL_CONFIG

    wildcard1: ChipUsage = Field(default_factory=ChipUsage)
    wildcard2: ChipUsage = Field(default_factory=ChipUsage)
    bench_boost: ChipUsage = Field(default_factory=ChipUsage)
    triple_captain: ChipUsage = Field(default_factory=ChipUsage)
    free_hit: ChipUsage = Field(default_factory=ChipUsage)

    def get(self, kind: ChipKind) -> ChipUsage:
        return getattr(self, _FIELD_BY_KIND[kind])

    def items(self) -> list[tuple[ChipKind, ChipUsage]]:
        return [(kind, self.get(kind)) for kind in ChipKind]

    def replace(self, updates: dict[ChipKind, ChipUsage]) -> "ChipsUsed":
        """Return a copy with the given slots swapped in."""
        data = {name: getattr(self, name) for name in _FIELD_BY_KIND.values()}
        for kind, usage in updates.items():
            data[_FIELD_BY_KIND[kind]] = usage
        return ChipsUsed(**data)

    @model_validator(mode="after")
    def _single_active_per_gameweek(self) -> "ChipsUsed":
        active_gws = [
            usage.activated_gameweek
            for usage in (getattr(self, name) for name in _FIELD_BY_KIND.values())
            if usage.is_active
        ]
        if len(active_gws) != len(set(active_gws)):
            raise ValueError("More than one chip active in the same gameweek")
        return self


def default_chips_used() -> ChipsUsed:
    """Five unused, inactive chips."""
    return ChipsUsed()


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

class TransferState(BaseModel):
    """Long-lived per-user transfer budget record."""

    model_config = _MODEL_CONFIG

    saved_free_transfers: FreeTransfers = UNLIMITED
    transfers_made_this_week: int = Field(default=0, ge=0)
    points_deducted_this_week: int = Field(default=0, ge=0)
    wildcard_active: bool = False
    free_hit_active: bool = False
    last_gameweek_processed: int = Field(default=1, ge=0)

    @field_validator("saved_free_transfers", mode="before")
    @classmethod
    def _coerce_unlimited(cls, value: Any) -> Any:
        if isinstance(value, str) and value == UNLIMITED.value:
            return UNLIMITED
        if (
            isinstance(value, int)
            and not isinstance(value, bool)
            and value >= transfer_cfg.legacy_unlimited_threshold
        ):
            return UNLIMITED
        return value

    @field_validator("saved_free_transfers")
    @classmethod
    def _bank_in_range(cls, value: FreeTransfers) -> FreeTransfers:
        if value is not UNLIMITED and not 0 <= value <= MAX_FREE_TRANSFERS:
            raise ValueError(
                f"savedFreeTransfers must be in [0, {MAX_FREE_TRANSFERS}] or unlimited, got {value}"
            )
        return value

    @model_validator(mode="after")
    def _deduction_invariants(self) -> "TransferState":
        if self.points_deducted_this_week % HIT_COST != 0:
            raise ValueError(
                f"pointsDeductedThisWeek must be a multiple of {HIT_COST}, "
                f"got {self.points_deducted_this_week}"
            )
        if self.points_deducted_this_week and self.is_cost_free:
            raise ValueError("pointsDeductedThisWeek must be 0 while transfers are free")
        return self

    @property
    def is_unlimited(self) -> bool:
        return self.saved_free_transfers is UNLIMITED

    @property
    def chip_active(self) -> bool:
        return self.wildcard_active or self.free_hit_active

    @property
    def is_cost_free(self) -> bool:
        """True while no transfer this gameweek can cost points."""
        return self.chip_active or self.is_unlimited

    def evolve(self, **changes: Any) -> "TransferState":
        """Return a validated copy with *changes* applied."""
        data = self.model_dump()
        data.update(changes)
        return TransferState.model_validate(data)


def default_transfer_state(gameweek: int = 1, first_time_user: bool = True) -> TransferState:
    """Initial state for a user seen for the first time at *gameweek*.

    First-time users and gameweek 1 get unlimited transfers so the
    initial squad can be built without cost.
    """
    unlimited = first_time_user or gameweek == 1
    return TransferState(
        saved_free_transfers=UNLIMITED if unlimited else transfer_cfg.free_transfers_per_gameweek,
        last_gameweek_processed=gameweek,
    )


class GameweekTransferSummary(BaseModel):
    """Audit view of a gameweek's transfers, derived from the state."""

    model_config = _MODEL_CONFIG

    transfers_made: int = 0
    free_transfers_used: int = 0
    paid_transfers: int = 0
    points_deducted: int = 0
    wildcard_used: bool = False
    free_hit_used: bool = False


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------

class RejectionCode(str, Enum):
    INVALID_TRANSITION = "invalid_transition"
    CHIP_USED = "chip_used"
    CHIP_WINDOW = "chip_window"
    CHIP_EXCLUSIVITY = "chip_exclusivity"
    INCONSISTENT_SQUAD = "inconsistent_squad"
    GAMEWEEK_CLOSED = "gameweek_closed"
    GAMEWEEK_OPEN = "gameweek_open"
    UNKNOWN_CHIP = "unknown_chip"
    NO_SQUAD = "no_squad"


class Rejection(BaseModel):
    """An expected business-rule refusal. Returned, never raised."""

    model_config = ConfigDict(frozen=True)

    code: RejectionCode
    reason: str
    message: str
    details: list[str] = Field(default_factory=list)

    def to_error(self) -> dict:
        err = {"error": self.message, "code": self.code.value, "reason": self.reason}
        if self.details:
            err["details"] = list(self.details)
        return err
