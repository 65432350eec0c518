"""Shared test fixtures for jpl-fantasy."""

import pytest

from jpl_fantasy.schemas.squad import Squad, SquadPlayer
from jpl_fantasy.schemas.state import TransferState


@pytest.fixture
def tmp_db(tmp_path):
    """Temporary database path for DB tests."""
    return tmp_path / "test_fantasy.db"


def make_squad(captain="1", starters=None, bench_order=None, size=15, **squad_kwargs) -> Squad:
    """Squad of players "1".."15": first 11 start, captain flagged on *captain*."""
    ids = [str(i) for i in range(1, size + 1)]
    starters = set(starters or ids[:11])
    bench = bench_order or [pid for pid in ids if pid not in starters]
    players = []
    for pid in ids:
        players.append(SquadPlayer(
            player_id=pid,
            is_starting=pid in starters,
            is_captain=pid == captain,
            bench_position=bench.index(pid) + 1 if pid in bench else None,
        ))
    return Squad(players=players, **squad_kwargs)


def make_state(**fields) -> TransferState:
    """TransferState with a normal bank of one unless overridden."""
    fields.setdefault("saved_free_transfers", 1)
    return TransferState(**fields)


@pytest.fixture
def squad():
    return make_squad()


class FixedOracle:
    """Window oracle with a settable set of open gameweeks."""

    def __init__(self, open_gameweeks=(1,)):
        self.open = set(open_gameweeks)

    def is_gameweek_open(self, gameweek: int) -> bool:
        return gameweek in self.open

    def current_open_gameweek(self):
        return min(self.open) if self.open else None

    def move_to(self, gameweek: int) -> None:
        self.open = {gameweek}


@pytest.fixture
def oracle():
    return FixedOracle()


@pytest.fixture
def manager(tmp_db, oracle):
    from jpl_fantasy.season.manager import FantasyManager

    return FantasyManager(db_path=tmp_db, oracle=oracle)
