"""Tests for the points aggregator."""

import logging

import pytest

from conftest import make_squad
from jpl_fantasy.schemas.fantasy_rules import ChipKind
from jpl_fantasy.schemas.squad import GameweekScore, Squad, SquadPlayer
from jpl_fantasy.schemas.state import Rejection, RejectionCode, default_chips_used
from jpl_fantasy.season import chips as chip_registry
from jpl_fantasy.season.scoring import aggregate_points, captain_multiplier, validate_squad_for_scoring


def _points(default=2, **overrides):
    points = {str(i): default for i in range(1, 16)}
    points.update({k.lstrip("p"): v for k, v in overrides.items()})
    return points


def _chips(kind, gameweek):
    return chip_registry.activate(kind, default_chips_used(), gameweek)


class TestAggregatePoints:
    def test_plain_gameweek(self, squad):
        score = aggregate_points(squad, _points(p1=8), default_chips_used(), 0, 5)
        assert isinstance(score, GameweekScore)
        # 10 starters x 2 + captain 8 x 2
        assert score.starting_total == 36
        assert score.bench_total == 8
        assert not score.bench_counted
        assert score.final_score == 36

    def test_triple_captain(self, squad):
        score = aggregate_points(
            squad, _points(default=0, p1=8), _chips(ChipKind.TRIPLE_CAPTAIN, 5), 0, 5,
        )
        assert score.starting_total == 24
        assert score.captain_points == 8
        assert score.captain_multiplier == 3
        assert score.chip_played is ChipKind.TRIPLE_CAPTAIN

    def test_triple_captain_inactive_in_other_gameweek(self, squad):
        score = aggregate_points(
            squad, _points(default=0, p1=8), _chips(ChipKind.TRIPLE_CAPTAIN, 4), 0, 5,
        )
        assert score.starting_total == 16
        assert score.chip_played is None

    def test_bench_boost_counts_bench(self, squad):
        score = aggregate_points(squad, _points(), _chips(ChipKind.BENCH_BOOST, 7), 0, 7)
        assert score.bench_counted
        assert score.final_score == score.starting_total + 8

    def test_deduction_subtracted(self, squad):
        score = aggregate_points(squad, _points(), default_chips_used(), 8, 5)
        assert score.final_score == score.starting_total - 8
        assert score.gross_points == score.starting_total

    def test_negative_score_not_clamped(self, squad):
        score = aggregate_points(squad, _points(default=0), default_chips_used(), 12, 5)
        assert score.final_score == -12

    def test_missing_points_score_zero(self, squad, caplog):
        points = _points(p1=6)
        del points["2"], points["14"]
        with caplog.at_level(logging.DEBUG, logger="jpl_fantasy.season.scoring"):
            score = aggregate_points(squad, points, default_chips_used(), 0, 5)
        assert score.missing_player_ids == ["2", "14"]
        assert score.starting_total == 12 + 9 * 2
        assert any("no points for player 2" in r.message for r in caplog.records)

    def test_bench_order_does_not_change_total(self):
        squad = make_squad(bench_order=["15", "14", "13", "12"])
        score = aggregate_points(squad, _points(), _chips(ChipKind.BENCH_BOOST, 3), 0, 3)
        assert score.bench_total == 8

    def test_explicit_captain_id(self):
        squad = make_squad(captain="3", captain_id="3")
        score = aggregate_points(squad, _points(default=1, p3=5), default_chips_used(), 0, 2)
        assert score.captain_id == "3"
        assert score.starting_total == 10 + 10

    def test_vice_captain_recorded_not_multiplied(self):
        squad = make_squad(captain="1", vice_captain_id=2)
        score = aggregate_points(squad, _points(default=1, p2=6), default_chips_used(), 0, 4)
        assert score.vice_captain_id == "2"
        # Captain 1 x 2, vice 6 at face value, nine others x 1.
        assert score.starting_total == 2 + 6 + 9

    def test_gameweek_zero_raises(self, squad):
        with pytest.raises(ValueError):
            aggregate_points(squad, _points(), default_chips_used(), 0, 0)


class TestSquadConsistency:
    def test_valid_squad(self, squad):
        assert validate_squad_for_scoring(squad) is None

    def test_two_captains_rejected(self, squad):
        players = [p.model_copy(update={"is_captain": p.player_id in ("1", "2")}) for p in squad.players]
        result = aggregate_points(Squad(players=players), _points(), default_chips_used(), 0, 5)
        assert isinstance(result, Rejection)
        assert result.code is RejectionCode.INCONSISTENT_SQUAD
        assert any("Only one captain" in d for d in result.details)

    def test_no_captain_rejected(self):
        result = validate_squad_for_scoring(make_squad(captain=None))
        assert result.code is RejectionCode.INCONSISTENT_SQUAD
        assert "No captain selected" in result.details

    def test_captain_on_bench_rejected(self):
        result = validate_squad_for_scoring(make_squad(captain="13"))
        assert any("not in the starting XI" in d for d in result.details)

    def test_wrong_starter_count_rejected(self):
        squad = make_squad(starters=[str(i) for i in range(1, 11)])
        result = validate_squad_for_scoring(squad)
        assert any("Need 11 starters" in d for d in result.details)

    def test_captain_id_mismatch_rejected(self):
        result = validate_squad_for_scoring(make_squad(captain="1", captain_id="2"))
        assert any("does not match" in d for d in result.details)

    def test_vice_captain_outside_squad_rejected(self):
        result = validate_squad_for_scoring(make_squad(vice_captain_id="99"))
        assert result.code is RejectionCode.INCONSISTENT_SQUAD
        assert any("Vice captain 99" in d for d in result.details)

    def test_vice_captain_same_as_captain_rejected(self):
        result = validate_squad_for_scoring(make_squad(captain="1", vice_captain_id="1"))
        assert "Vice captain must differ from the captain" in result.details

    def test_duplicate_players_rejected(self, squad):
        players = list(squad.players[:14]) + [SquadPlayer(player_id="1")]
        result = validate_squad_for_scoring(Squad(players=players))
        assert any("Duplicate" in d for d in result.details)


class TestCaptainMultiplier:
    def test_default_double(self):
        assert captain_multiplier(default_chips_used(), 5) == 2

    def test_triple_captain(self):
        assert captain_multiplier(_chips(ChipKind.TRIPLE_CAPTAIN, 5), 5) == 3
