"""Tests for yieldchef/state/balances.py."""

import pytest

from yieldchef.state.balances import BalanceTable


class TestBalanceTable:
    def test_empty(self):
        assert BalanceTable().get("alice", "LP") == 0

    def test_add_and_subtract(self):
        t = BalanceTable()
        t.add("alice", "LP", 10)
        t.subtract("alice", "LP", 4)
        assert t.get("alice", "LP") == 6

    def test_overdraw_rejected(self):
        t = BalanceTable()
        t.add("alice", "LP", 1)
        with pytest.raises(ValueError):
            t.subtract("alice", "LP", 2)
        assert t.get("alice", "LP") == 1

    def test_zero_balances_pruned(self):
        t = BalanceTable()
        t.add("alice", "LP", 3)
        t.subtract("alice", "LP", 3)
        assert t.get_all_balances() == {}

    def test_negative_set_rejected(self):
        with pytest.raises(ValueError):
            BalanceTable().set("alice", "LP", -1)

    def test_copy_is_independent(self):
        t = BalanceTable()
        t.add("alice", "LP", 5)
        c = t.copy()
        c.add("alice", "LP", 5)
        assert t.get("alice", "LP") == 5
        assert c.get("alice", "LP") == 10

    def test_apply_deltas_in_order(self):
        t = BalanceTable()
        t.apply_deltas([("alice", "RWD", 7), ("alice", "LP", 0), ("alice", "RWD", -2)])
        assert t.get("alice", "RWD") == 5

    def test_apply_deltas_stops_at_first_failure(self):
        t = BalanceTable()
        with pytest.raises(ValueError):
            t.apply_deltas([("alice", "RWD", 7), ("bob", "LP", -1)])
        assert t.get("alice", "RWD") == 7

    def test_per_token_views(self):
        t = BalanceTable()
        t.add("alice", "LP", 2)
        t.add("bob", "LP", 3)
        t.add("bob", "RWD", 1)
        assert t.get_balances_for_token("LP") == {"alice": 2, "bob": 3}
        assert t.total_supply("LP") == 5

    def test_equality(self):
        a, b = BalanceTable(), BalanceTable()
        a.add("x", "T", 1)
        b.add("x", "T", 1)
        assert a == b
