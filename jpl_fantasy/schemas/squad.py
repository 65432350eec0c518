"""Pydantic schemas for a saved gameweek squad and its computed score."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from jpl_fantasy.schemas.fantasy_rules import ChipKind

_MODEL_CONFIG = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class SquadPlayer(BaseModel):
    """One of the 15 players in a saved squad."""

    model_config = _MODEL_CONFIG

    player_id: str
    is_starting: bool = False
    is_captain: bool = False
    name: str | None = None
    position: str | None = None  # GKP, DEF, MID, FWD
    bench_position: int | None = None

    @field_validator("player_id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value) if isinstance(value, int) else value


class Squad(BaseModel):
    """A squad snapshot for one gameweek: starters, bench and captain."""

    model_config = _MODEL_CONFIG

    players: list[SquadPlayer] = Field(default_factory=list)
    captain_id: str | None = None
    vice_captain_id: str | None = None  # Display only; never changes the score

    @field_validator("captain_id", "vice_captain_id", mode="before")
    @classmethod
    def _stringify_captain(cls, value):
        return str(value) if isinstance(value, int) else value

    @property
    def starters(self) -> list[SquadPlayer]:
        return [p for p in self.players if p.is_starting]

    @property
    def bench(self) -> list[SquadPlayer]:
        """Bench players in bench order (unordered players last)."""
        bench = [p for p in self.players if not p.is_starting]
        return sorted(
            bench,
            key=lambda p: p.bench_position if p.bench_position is not None else len(bench) + 1,
        )

    @property
    def player_ids(self) -> list[str]:
        return [p.player_id for p in self.players]

    @property
    def effective_captain_id(self) -> str | None:
        """Explicit captain id, falling back to the player flagged captain."""
        if self.captain_id:
            return self.captain_id
        flagged = [p.player_id for p in self.players if p.is_captain]
        return flagged[0] if len(flagged) == 1 else None


class GameweekScore(BaseModel):
    """Final score breakdown for one user in one gameweek."""

    model_config = _MODEL_CONFIG

    gameweek: int
    starting_total: int = 0
    bench_total: int = 0
    bench_counted: bool = False
    captain_id: str | None = None
    captain_points: int = 0  # Captain's raw points before the multiplier
    vice_captain_id: str | None = None
    captain_multiplier: int = 2
    chip_played: ChipKind | None = None
    points_deducted: int = 0
    final_score: int = 0
    missing_player_ids: list[str] = Field(default_factory=list)

    @property
    def gross_points(self) -> int:
        return self.starting_total + (self.bench_total if self.bench_counted else 0)
