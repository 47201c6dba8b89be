"""Tests for yieldchef/core/chef/state.py: construction and dict round-trip."""

import json
from dataclasses import replace

import pytest

from yieldchef.core.chef import Action, ActionParams, initial_state, state_from_dict, state_to_dict, step
from yieldchef.core.chef.types import ChefState


def _state(**kwargs) -> ChefState:
    base = dict(reward_token="RWD", owner="owner", reward_per_second=100, emission_start=1000)
    base.update(kwargs)
    return initial_state(**base)


class TestInitialState:
    def test_defaults(self):
        s = _state()
        assert s.pools == ()
        assert s.positions == {}
        assert s.vault_balance == 0
        assert s.emission_end is None
        assert s.enforce_settle_all is True
        assert s.migrator is None

    def test_bounded_window(self):
        assert _state(emission_end=2000).emission_end == 2000

    def test_end_before_start(self):
        with pytest.raises(ValueError):
            _state(emission_end=999)

    def test_empty_reward_token(self):
        with pytest.raises(ValueError):
            _state(reward_token="")

    def test_empty_owner(self):
        with pytest.raises(ValueError):
            _state(owner="")

    def test_negative_rate(self):
        with pytest.raises(ValueError):
            _state(reward_per_second=-1)

    def test_non_int_rate(self):
        with pytest.raises(TypeError):
            _state(reward_per_second="100")


def _busy_state() -> ChefState:
    s = _state(emission_end=50_000)
    for params, now in (
        (ActionParams(action=Action.ADD_POOL, caller="owner", stake_token="A", weight=1), 0),
        (ActionParams(action=Action.ADD_POOL, caller="owner", stake_token="B", weight=3), 0),
        (ActionParams(action=Action.FUND_VAULT, caller="funder", amount=10_000), 0),
        (ActionParams(action=Action.DEPOSIT, caller="bob", pool_id=1, amount=7), 1000),
        (ActionParams(action=Action.DEPOSIT, caller="alice", pool_id=0, amount=10), 1000),
        (ActionParams(action=Action.WITHDRAW, caller="bob", pool_id=1, amount=2), 1400),
        (ActionParams(action=Action.SET_MIGRATOR, caller="owner", target="next"), 1400),
    ):
        r = step(s, params, now)
        assert r.accepted, r.rejection
        s = r.state
    return s


class TestRoundTrip:
    def test_round_trip(self):
        s = _busy_state()
        assert state_from_dict(state_to_dict(s)) == s

    def test_round_trip_through_json(self):
        s = _busy_state()
        text = json.dumps(state_to_dict(s))
        assert state_from_dict(json.loads(text)) == s

    def test_positions_sorted(self):
        d = state_to_dict(_busy_state())
        keys = [(e[0], e[1]) for e in d["positions"]]
        assert keys == sorted(keys)

    def test_initial_round_trip(self):
        s = _state()
        assert state_from_dict(state_to_dict(s)) == s

    def test_unknown_schema_version(self):
        d = state_to_dict(_state())
        d["schema_version"] = 99
        with pytest.raises(ValueError):
            state_from_dict(d)

    def test_duplicate_position(self):
        d = state_to_dict(_busy_state())
        d["positions"].append(list(d["positions"][0]))
        with pytest.raises(ValueError):
            state_from_dict(d)

    def test_malformed_position(self):
        d = state_to_dict(_busy_state())
        d["positions"][0] = [0, "alice", 10]
        with pytest.raises(ValueError):
            state_from_dict(d)

    def test_bool_rejected_as_int(self):
        d = state_to_dict(_state())
        d["vault_balance"] = True
        with pytest.raises(TypeError):
            state_from_dict(d)

    def test_missing_field(self):
        d = state_to_dict(_state())
        del d["pools"]
        with pytest.raises(KeyError):
            state_from_dict(d)

    def test_differs_after_change(self):
        s = _busy_state()
        assert state_to_dict(replace(s, now=s.now + 1)) != state_to_dict(s)
