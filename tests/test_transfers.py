"""Tests for the transfer cost model and per-transfer state updates."""

import pytest

from conftest import make_state
from jpl_fantasy.schemas.fantasy_rules import ChipKind
from jpl_fantasy.schemas.state import UNLIMITED, default_chips_used
from jpl_fantasy.season import chips as chip_registry
from jpl_fantasy.season.transfers import (
    activate_free_hit,
    activate_wildcard,
    apply_transfer,
    apply_transfers,
    calculate_transfer_cost,
    deactivate_free_hit,
    deactivate_wildcard,
    summarise,
    transfer_message,
)


# ---------------------------------------------------------------------------
# Worked examples
# ---------------------------------------------------------------------------

class TestScenarios:
    def test_banked_transfer_is_free(self):
        state, _ = apply_transfer(make_state(saved_free_transfers=1), 4)
        assert state.points_deducted_this_week == 0
        assert state.saved_free_transfers == 0

    def test_second_transfer_costs_four(self):
        state, _ = apply_transfer(make_state(saved_free_transfers=1), 4)
        state, summary = apply_transfer(state, 4)
        assert state.points_deducted_this_week == 4
        assert state.saved_free_transfers == 0
        assert summary.paid_transfers == 1
        assert summary.free_transfers_used == 1

    def test_gw1_is_free_even_with_empty_bank(self):
        state = make_state(saved_free_transfers=0)
        for _ in range(5):
            state, _ = apply_transfer(state, 1)
            assert state.points_deducted_this_week == 0
        assert state.transfers_made_this_week == 5

    def test_wildcard_week_then_expiry(self):
        state = make_state(saved_free_transfers=2, last_gameweek_processed=5)
        chips = chip_registry.activate(ChipKind.WILDCARD_1, default_chips_used(), 5)
        assert chips.get(ChipKind.WILDCARD_1).is_active
        state = activate_wildcard(state, ChipKind.WILDCARD_1)

        state, summary = apply_transfers(state, 5, 4)
        assert state.points_deducted_this_week == 0
        assert state.transfers_made_this_week == 4
        assert summary.wildcard_used

        state = deactivate_wildcard(state, 6)
        assert state.saved_free_transfers == 1
        assert not state.wildcard_active
        assert state.last_gameweek_processed == 6


# ---------------------------------------------------------------------------
# apply_transfer
# ---------------------------------------------------------------------------

class TestApplyTransfer:
    def test_unlimited_bank_never_costs(self):
        state = make_state(saved_free_transfers=UNLIMITED)
        state, summary = apply_transfers(state, 9, 6)
        assert state.points_deducted_this_week == 0
        assert state.is_unlimited
        assert summary.transfers_made == 6

    def test_free_hit_leaves_bank_untouched(self):
        state = activate_free_hit(make_state(saved_free_transfers=2))
        state, _ = apply_transfers(state, 8, 3)
        assert state.saved_free_transfers == 2
        assert state.points_deducted_this_week == 0
        assert deactivate_free_hit(state).saved_free_transfers == 2

    def test_input_state_not_mutated(self):
        before = make_state(saved_free_transfers=1)
        apply_transfer(before, 4)
        assert before.saved_free_transfers == 1
        assert before.transfers_made_this_week == 0

    def test_hits_accumulate_in_multiples_of_four(self):
        state, _ = apply_transfers(make_state(saved_free_transfers=0), 10, 3)
        assert state.points_deducted_this_week == 12

    def test_deduction_never_decreases_within_week(self):
        state = make_state(saved_free_transfers=2)
        previous = 0
        for _ in range(6):
            state, _ = apply_transfer(state, 12)
            assert state.points_deducted_this_week >= previous
            previous = state.points_deducted_this_week

    def test_gameweek_zero_raises(self):
        with pytest.raises(ValueError):
            apply_transfer(make_state(), 0)

    def test_negative_count_raises(self):
        with pytest.raises(ValueError):
            apply_transfers(make_state(), 3, -1)


# ---------------------------------------------------------------------------
# calculate_transfer_cost
# ---------------------------------------------------------------------------

class TestCalculateTransferCost:
    @pytest.mark.parametrize("bank,transfers,expected", [
        (0, 1, 4), (0, 3, 12), (1, 1, 0), (1, 2, 4), (2, 2, 0), (2, 5, 12),
    ])
    def test_cost_against_bank(self, bank, transfers, expected):
        summary = calculate_transfer_cost(transfers, bank, gameweek=10)
        assert summary.points_deducted == expected
        assert summary.paid_transfers == expected // 4

    def test_cost_is_monotone_in_transfers(self):
        costs = [calculate_transfer_cost(n, 1, gameweek=10).points_deducted for n in range(8)]
        assert costs == sorted(costs)

    def test_chips_make_everything_free(self):
        assert calculate_transfer_cost(10, 0, gameweek=10, wildcard_active=True).points_deducted == 0
        assert calculate_transfer_cost(10, 0, gameweek=10, free_hit_active=True).points_deducted == 0

    def test_gw1_and_unlimited_are_free(self):
        assert calculate_transfer_cost(7, 0, gameweek=1).points_deducted == 0
        assert calculate_transfer_cost(7, UNLIMITED, gameweek=20).points_deducted == 0

    def test_negative_transfers_raise(self):
        with pytest.raises(ValueError):
            calculate_transfer_cost(-1, 1, gameweek=3)


# ---------------------------------------------------------------------------
# Chip side effects, summaries and messages
# ---------------------------------------------------------------------------

class TestChipTransferEffects:
    def test_activate_wildcard_rejects_non_wildcard(self):
        with pytest.raises(ValueError):
            activate_wildcard(make_state(), ChipKind.BENCH_BOOST)

    def test_activate_wildcard_makes_bank_unlimited(self):
        state = activate_wildcard(make_state(saved_free_transfers=0), ChipKind.WILDCARD_2)
        assert state.wildcard_active
        assert state.is_unlimited
        assert state.is_cost_free

    @pytest.mark.parametrize("prior", [0, 1, 2, UNLIMITED])
    def test_wildcard_expiry_always_one(self, prior):
        state = activate_wildcard(make_state(saved_free_transfers=prior), ChipKind.WILDCARD_1)
        state, _ = apply_transfers(state, 5, 3)
        assert deactivate_wildcard(state, 6).saved_free_transfers == 1

    def test_summarise_matches_state(self):
        state, _ = apply_transfers(make_state(saved_free_transfers=1), 7, 3)
        summary = summarise(state)
        assert summary.transfers_made == 3
        assert summary.free_transfers_used == 1
        assert summary.paid_transfers == 2
        assert summary.points_deducted == 8


class TestTransferMessage:
    def test_free_transfer_message(self):
        _, summary = apply_transfer(make_state(saved_free_transfers=1), 4)
        assert transfer_message(summary, 0, 4) == "Free transfer used (GW4)"

    def test_paid_transfer_message(self):
        _, summary = apply_transfer(make_state(saved_free_transfers=0), 4)
        message = transfer_message(summary, 4, 4)
        assert "costs 4 points" in message
        assert "-4" in message

    def test_wildcard_message(self):
        state = activate_wildcard(make_state(), ChipKind.WILDCARD_1)
        _, summary = apply_transfer(state, 4)
        assert "Wildcard" in transfer_message(summary, 0, 4)

