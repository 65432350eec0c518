"""Tests for gameweek transitions and free-transfer accrual."""

import pytest

from conftest import make_state
from jpl_fantasy.schemas.fantasy_rules import ChipKind
from jpl_fantasy.schemas.state import UNLIMITED, Rejection, RejectionCode, default_chips_used
from jpl_fantasy.season import chips as chip_registry
from jpl_fantasy.season.transfers import activate_free_hit, activate_wildcard, apply_transfers
from jpl_fantasy.season.transitions import (
    calculate_free_transfers,
    process_gameweek_start,
    transition_to_new_gameweek,
)


class TestCalculateFreeTransfers:
    def test_gw1_is_unlimited(self):
        assert calculate_free_transfers(1, 1) is UNLIMITED

    def test_gw2_is_exactly_one(self):
        assert calculate_free_transfers(1, 2, UNLIMITED) == 1
        assert calculate_free_transfers(1, 2, 2) == 1

    @pytest.mark.parametrize("current,gap,expected", [
        (0, 1, 1), (1, 1, 2), (2, 1, 2), (0, 3, 2), (1, 5, 2),
    ])
    def test_accrual_capped_at_two(self, current, gap, expected):
        assert calculate_free_transfers(5, 5 + gap, current) == expected

    def test_unlimited_counts_as_zero(self):
        assert calculate_free_transfers(4, 5, UNLIMITED) == 1


class TestProcessGameweekStart:
    def test_gap_accrual(self):
        state = make_state(last_gameweek_processed=3, saved_free_transfers=1)
        new_state = process_gameweek_start(state, 6)
        assert new_state.saved_free_transfers == 2
        assert new_state.last_gameweek_processed == 6

    def test_resets_weekly_counters(self):
        state, _ = apply_transfers(make_state(last_gameweek_processed=4, saved_free_transfers=0), 4, 2)
        assert state.points_deducted_this_week == 8
        new_state = process_gameweek_start(state, 5)
        assert new_state.points_deducted_this_week == 0
        assert new_state.transfers_made_this_week == 0
        assert new_state.saved_free_transfers == 1

    def test_same_gameweek_is_noop(self):
        state, _ = apply_transfers(make_state(last_gameweek_processed=7, saved_free_transfers=0), 7, 1)
        assert process_gameweek_start(state, 7) is state

    def test_idempotent(self):
        state = make_state(last_gameweek_processed=3, saved_free_transfers=0)
        once = process_gameweek_start(state, 4)
        assert process_gameweek_start(once, 4) == once

    def test_backwards_rejected(self):
        state = make_state(last_gameweek_processed=8)
        result = process_gameweek_start(state, 5)
        assert isinstance(result, Rejection)
        assert result.code is RejectionCode.INVALID_TRANSITION
        assert result.reason == "backwards"

    def test_unlimited_bank_becomes_one(self):
        state = make_state(last_gameweek_processed=1, saved_free_transfers=UNLIMITED)
        assert process_gameweek_start(state, 4).saved_free_transfers == 1

    @pytest.mark.parametrize("prior", [0, 1, 2, UNLIMITED])
    def test_wildcard_expiry_is_one_regardless_of_prior_bank(self, prior):
        state = make_state(last_gameweek_processed=5, saved_free_transfers=prior)
        state = activate_wildcard(state, ChipKind.WILDCARD_1)
        state, _ = apply_transfers(state, 5, 6)
        new_state = process_gameweek_start(state, 6)
        assert new_state.saved_free_transfers == 1
        assert not new_state.wildcard_active

    def test_free_hit_expiry_keeps_bank_then_accrues(self):
        state = activate_free_hit(make_state(last_gameweek_processed=9, saved_free_transfers=1))
        state, _ = apply_transfers(state, 9, 5)
        new_state = process_gameweek_start(state, 10)
        assert not new_state.free_hit_active
        assert new_state.saved_free_transfers == 2

    def test_gameweek_zero_raises(self):
        with pytest.raises(ValueError):
            process_gameweek_start(make_state(), 0)


class TestTransitionToNewGameweek:
    def test_expires_previous_chips(self):
        chips = chip_registry.activate(ChipKind.BENCH_BOOST, default_chips_used(), 4)
        state = make_state(last_gameweek_processed=4)
        new_state, new_chips = transition_to_new_gameweek(state, chips, 5)
        assert new_state.last_gameweek_processed == 5
        assert chip_registry.active_chip(new_chips, 4) is None
        assert new_chips.get(ChipKind.BENCH_BOOST).used

    def test_backwards_rejected(self):
        result = transition_to_new_gameweek(make_state(last_gameweek_processed=5), default_chips_used(), 3)
        assert isinstance(result, Rejection)
