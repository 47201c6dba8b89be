"""Tests for yieldchef/core/chef/invariants.py."""

from dataclasses import replace

import pytest

from yieldchef.core.chef import Action, ActionParams, initial_state, step
from yieldchef.core.chef.invariants import (
    INVARIANT_REGISTRY,
    TRANSITION_INVARIANT_REGISTRY,
    check_all,
    check_transition,
)
from yieldchef.core.chef.types import Position


def _live_state():
    s = initial_state(reward_token="RWD", owner="owner", reward_per_second=100, emission_start=1000)
    for params, now in (
        (ActionParams(action=Action.ADD_POOL, caller="owner", stake_token="A", weight=1), 0),
        (ActionParams(action=Action.ADD_POOL, caller="owner", stake_token="B", weight=2), 0),
        (ActionParams(action=Action.FUND_VAULT, caller="funder", amount=50_000), 0),
        (ActionParams(action=Action.DEPOSIT, caller="alice", pool_id=0, amount=10), 1000),
        (ActionParams(action=Action.DEPOSIT, caller="bob", pool_id=1, amount=30), 1050),
        (ActionParams(action=Action.WITHDRAW, caller="alice", pool_id=0, amount=3), 1200),
    ):
        r = step(s, params, now)
        assert r.accepted, r.rejection
        s = r.state
    return s


class TestStateInvariants:
    def test_live_state_passes(self):
        assert check_all(_live_state()) == []

    def test_initial_state_passes(self):
        s = initial_state(reward_token="RWD", owner="o", reward_per_second=1, emission_start=0)
        assert check_all(s) == []

    def test_registry_is_complete(self):
        assert len(INVARIANT_REGISTRY) == 11
        assert len(TRANSITION_INVARIANT_REGISTRY) == 5

    @pytest.mark.parametrize(
        "mutate, expected",
        [
            (lambda s: replace(s, total_alloc_weight=99), "inv_total_weight_matches"),
            (lambda s: replace(s, vault_balance=s.vault_balance + 1), "inv_vault_conservation"),
            (lambda s: replace(s, emission_end=1), "inv_emission_window_ordered"),
            (
                lambda s: replace(s, pools=(replace(s.pools[0], last_reward_time=10**9),) + s.pools[1:]),
                "inv_checkpoint_not_from_future",
            ),
            (
                lambda s: replace(s, pools=(replace(s.pools[0], stake_token="B"),) + s.pools[1:]),
                "inv_unique_stake_tokens",
            ),
            (
                lambda s: replace(s, pools=(replace(s.pools[0], total_staked=1),) + s.pools[1:]),
                "inv_total_staked_matches",
            ),
        ],
    )
    def test_detects_violation(self, mutate, expected):
        assert expected in check_all(mutate(_live_state()))

    def test_dangling_position(self):
        s = _live_state()
        positions = dict(s.positions)
        positions[(7, "ghost")] = Position(amount=0)
        violations = check_all(replace(s, positions=positions))
        assert "inv_positions_reference_pools" in violations

    def test_debt_ahead_of_accumulator(self):
        s = _live_state()
        positions = dict(s.positions)
        pos = positions[(0, "alice")]
        positions[(0, "alice")] = replace(pos, reward_debt=pos.reward_debt + 10**9)
        assert "inv_reward_debt_not_ahead" in check_all(replace(s, positions=positions))

    def test_negative_position(self):
        s = _live_state()
        positions = dict(s.positions)
        positions[(0, "alice")] = Position(amount=-1)
        violations = check_all(replace(s, positions=positions))
        assert "inv_positions_nonneg" in violations


class TestTransitionInvariants:
    def test_identity_passes(self):
        s = _live_state()
        assert check_transition(s, s) == []

    def test_clock_going_back(self):
        s = _live_state()
        assert "tinv_clock_monotone" in check_transition(s, replace(s, now=s.now - 1))

    def test_pool_removed(self):
        s = _live_state()
        assert "tinv_registry_append_only" in check_transition(s, replace(s, pools=s.pools[:1]))

    def test_accumulator_going_back(self):
        s = _live_state()
        lowered = replace(s.pools[0], acc_reward_per_share=s.pools[0].acc_reward_per_share - 1)
        post = replace(s, pools=(lowered,) + s.pools[1:])
        assert "tinv_acc_monotone" in check_transition(s, post)

    def test_checkpoint_going_back(self):
        s = _live_state()
        lowered = replace(s.pools[0], last_reward_time=s.pools[0].last_reward_time - 1)
        post = replace(s, pools=(lowered,) + s.pools[1:])
        assert "tinv_checkpoint_monotone" in check_transition(s, post)

    def test_counter_going_back(self):
        s = _live_state()
        assert "tinv_counters_monotone" in check_transition(s, replace(s, total_funded=0))
