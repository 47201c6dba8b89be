"""Property tests: random action sequences through the chef engine.

Every accepted step must keep all invariants, and rewards handed out can never
exceed what the emission schedule released.
"""

from __future__ import annotations

import importlib.util

import pytest

if importlib.util.find_spec("hypothesis") is None:  # pragma: no cover
    pytest.skip("hypothesis not installed", allow_module_level=True)

import hypothesis.strategies as st
from hypothesis import given, settings

from yieldchef.core.chef import (
    Action,
    ActionParams,
    get_position,
    initial_state,
    pending_reward,
    pool_length,
    state_from_dict,
    state_to_dict,
    step,
    total_pending,
)
from yieldchef.core.chef.invariants import check_all
from yieldchef.core.chef.math import emission_elapsed

OWNER = "owner"
ACCOUNTS = ("alice", "bob", "carol")
RATE = 1_000
START = 100
END = 5_000


def _fresh():
    return initial_state(
        reward_token="RWD",
        owner=OWNER,
        reward_per_second=RATE,
        emission_start=START,
        emission_end=END,
    )


_account = st.sampled_from(ACCOUNTS)
_pool_id = st.integers(min_value=0, max_value=3)
_amount = st.integers(min_value=0, max_value=10**6)

_params = st.one_of(
    st.builds(
        ActionParams,
        action=st.just(Action.ADD_POOL),
        caller=st.sampled_from((OWNER, "alice")),
        stake_token=st.sampled_from(("LP0", "LP1", "LP2")),
        weight=st.integers(min_value=0, max_value=100),
    ),
    st.builds(
        ActionParams,
        action=st.just(Action.SET_WEIGHT),
        caller=st.just(OWNER),
        pool_id=_pool_id,
        weight=st.integers(min_value=0, max_value=100),
        settle_all=st.booleans(),
    ),
    st.builds(ActionParams, action=st.just(Action.DEPOSIT), caller=_account, pool_id=_pool_id, amount=_amount),
    st.builds(ActionParams, action=st.just(Action.WITHDRAW), caller=_account, pool_id=_pool_id, amount=_amount),
    st.builds(ActionParams, action=st.just(Action.EMERGENCY_WITHDRAW), caller=_account, pool_id=_pool_id),
    st.builds(ActionParams, action=st.just(Action.UPDATE_POOL), pool_id=_pool_id),
    st.builds(ActionParams, action=st.just(Action.MASS_UPDATE_POOLS)),
    st.builds(ActionParams, action=st.just(Action.FUND_VAULT), caller=_account, amount=_amount),
    st.builds(ActionParams, action=st.just(Action.DRAIN_VAULT), caller=st.just(OWNER), amount=_amount),
)

_sequence = st.lists(
    st.tuples(_params, st.integers(min_value=0, max_value=400)),
    min_size=1,
    max_size=40,
)


def _run(seq):
    s = _fresh()
    now = 0
    accepted = []
    for params, dt in seq:
        now += dt
        r = step(s, params, now)
        if r.accepted:
            accepted.append((params, r))
            s = r.state
        else:
            assert not r.rejection.startswith("invariant:"), r.rejection
    return s, now, accepted


@settings(deadline=None, max_examples=60)
@given(_sequence)
def test_invariants_hold_after_every_step(seq):
    s, _now, _accepted = _run(seq)
    assert check_all(s) == []


@settings(deadline=None, max_examples=60)
@given(_sequence)
def test_rewards_never_exceed_emission(seq):
    s, now, accepted = _run(seq)
    emitted = RATE * emission_elapsed(0, now, START, END)
    # Each settlement can round a position's claim up by at most one unit.
    slack = len(accepted) + len(s.positions)
    assert s.total_paid + s.total_shortfall + total_pending(s, now) <= emitted + slack


@settings(deadline=None, max_examples=60)
@given(_sequence)
def test_pool_length_counts_accepted_adds(seq):
    s, _now, accepted = _run(seq)
    adds = sum(1 for params, _r in accepted if params.action is Action.ADD_POOL)
    assert pool_length(s) == adds


@settings(deadline=None, max_examples=40)
@given(_sequence)
def test_pending_is_read_only_and_round_trip_stable(seq):
    s, now, _accepted = _run(seq)
    before = state_to_dict(s)
    for (pool_id, account) in list(s.positions):
        pending_reward(s, pool_id, account, now + 1_000)
    assert state_to_dict(s) == before
    assert state_from_dict(before) == s


@settings(deadline=None, max_examples=40)
@given(_sequence, st.integers(min_value=1, max_value=10_000))
def test_pending_monotone_in_time(seq, dt):
    s, now, _accepted = _run(seq)
    for (pool_id, account) in s.positions:
        assert pending_reward(s, pool_id, account, now + dt) >= pending_reward(s, pool_id, account, now)


def _existing_pool(s, pick, now):
    if pool_length(s) == 0:
        r = step(s, ActionParams(action=Action.ADD_POOL, caller=OWNER, stake_token="LPX", weight=1), now)
        assert r.accepted, r.rejection
        s = r.state
    return s, pick % pool_length(s)


@settings(deadline=None, max_examples=60)
@given(
    _sequence,
    _account,
    st.integers(min_value=0, max_value=50),
    st.integers(min_value=1, max_value=10**6),
    st.integers(min_value=0, max_value=400),
)
def test_deposit_then_withdraw_same_instant_returns_stake(seq, account, pick, n, dt):
    s, now, _accepted = _run(seq)
    now += dt
    s, pool_id = _existing_pool(s, pick, now)
    before = get_position(s, pool_id, account).amount

    d = step(s, ActionParams(action=Action.DEPOSIT, caller=account, pool_id=pool_id, amount=n), now)
    assert d.accepted, d.rejection
    w = step(d.state, ActionParams(action=Action.WITHDRAW, caller=account, pool_id=pool_id, amount=n), now)
    assert w.accepted, w.rejection

    assert w.effect.reward_paid == 0
    assert w.effect.reward_shortfall == 0
    assert w.effect.amount == n
    assert pending_reward(w.state, pool_id, account, now) == 0
    assert get_position(w.state, pool_id, account).amount == before
    assert w.state.pools[pool_id].total_staked == d.state.pools[pool_id].total_staked - n
    assert w.state.vault_balance == d.state.vault_balance


@settings(deadline=None, max_examples=60)
@given(
    _sequence,
    st.integers(min_value=0, max_value=50),
    st.integers(min_value=1, max_value=10**6),
    st.integers(min_value=0, max_value=400),
    st.integers(min_value=1, max_value=2_000),
)
def test_equal_same_time_deposits_accrue_equally_in_any_order(seq, pick, n, dt, later):
    s, now, _accepted = _run(seq)
    now += dt
    s, pool_id = _existing_pool(s, pick, now)

    def deposit_in_order(first, second):
        state = s
        for account in (first, second):
            r = step(state, ActionParams(action=Action.DEPOSIT, caller=account, pool_id=pool_id, amount=n), now)
            assert r.accepted, r.rejection
            state = r.state
        return state

    ab = deposit_in_order("dave", "erin")
    ba = deposit_in_order("erin", "dave")
    assert ab == ba

    pending = [pending_reward(state, pool_id, acct, now + later) for state in (ab, ba) for acct in ("dave", "erin")]
    assert len(set(pending)) == 1
