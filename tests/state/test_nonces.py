"""Tests for yieldchef/state/nonces.py."""

import pytest

from yieldchef.state.nonces import NonceTable


class TestNonceTable:
    def test_starts_at_zero(self):
        t = NonceTable()
        assert t.get_last("0xabc") == 0
        assert t.next_expected("0xabc") == 1

    def test_set_and_get(self):
        t = NonceTable()
        t.set_last("0xabc", 3)
        assert t.get_last("0xabc") == 3
        assert t.get_all() == {"0xabc": 3}

    def test_copy_is_independent(self):
        t = NonceTable()
        t.set_last("0xabc", 1)
        c = t.copy()
        c.set_last("0xabc", 2)
        assert t.get_last("0xabc") == 1
        assert c.get_last("0xabc") == 2

    def test_backwards_rejected(self):
        t = NonceTable()
        t.set_last("0xabc", 3)
        with pytest.raises(ValueError):
            t.set_last("0xabc", 2)

    @pytest.mark.parametrize("bad", [-1, True, 2**64, "1"])
    def test_bad_values(self, bad):
        with pytest.raises(TypeError):
            NonceTable().set_last("0xabc", bad)

    def test_get_all_is_a_copy(self):
        t = NonceTable()
        t.set_last("a", 1)
        t.get_all()["a"] = 9
        assert t.get_last("a") == 1
