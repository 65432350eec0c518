"""Boundary contracts the season core is used through.

The core itself never calls these; :class:`~jpl_fantasy.season.manager.FantasyManager`
wires concrete implementations (see :mod:`jpl_fantasy.db.repositories` and
:mod:`jpl_fantasy.season.window`) around the pure functions.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from jpl_fantasy.schemas.squad import Squad
from jpl_fantasy.schemas.state import ChipsUsed, TransferState


@runtime_checkable
class GameweekWindowOracle(Protocol):
    def is_gameweek_open(self, gameweek: int) -> bool: ...

    def current_open_gameweek(self) -> int | None: ...


@runtime_checkable
class PlayerPointsSource(Protocol):
    def points_for(self, player_id: str, gameweek: int) -> int:
        """Raw points for *player_id* in *gameweek*, 0 if unknown."""
        ...


@runtime_checkable
class StateStore(Protocol):
    def load(self, user_id: str) -> tuple[TransferState, ChipsUsed] | None: ...

    def save(self, user_id: str, state: TransferState, chips: ChipsUsed) -> None: ...


@runtime_checkable
class SquadSource(Protocol):
    def squad_for(self, user_id: str, gameweek: int) -> Squad | None: ...
