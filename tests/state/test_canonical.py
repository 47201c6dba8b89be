"""Tests for yieldchef/state/canonical.py."""

import pytest

from yieldchef.state.canonical import (
    canonical_json_bytes,
    domain_sep_bytes,
    encode_bytes,
    encode_optional_str,
    encode_str,
    encode_uvarint,
    hex_to_bytes,
    sha256_hex,
)


class TestCanonicalJson:
    def test_sorted_compact(self):
        assert canonical_json_bytes({"b": 1, "a": [2, "x"]}) == b'{"a":[2,"x"],"b":1}'

    def test_key_order_irrelevant(self):
        assert canonical_json_bytes({"a": 1, "b": 2}) == canonical_json_bytes({"b": 2, "a": 1})

    def test_floats_rejected(self):
        with pytest.raises(TypeError):
            canonical_json_bytes({"amount": 1.5})

    def test_non_str_keys_rejected(self):
        with pytest.raises(TypeError):
            canonical_json_bytes({1: "x"})

    def test_surrogates_rejected(self):
        with pytest.raises(TypeError):
            canonical_json_bytes("\ud800")

    def test_utf8(self):
        assert canonical_json_bytes("é") == '"é"'.encode("utf-8")


class TestDomainSep:
    def test_format(self):
        assert domain_sep_bytes("chef_call_sig:local") == b"yieldchef:chef_call_sig:local:v1\x00"

    def test_empty_label(self):
        with pytest.raises(TypeError):
            domain_sep_bytes("")

    def test_nul_rejected(self):
        with pytest.raises(ValueError):
            domain_sep_bytes("a\x00b")

    def test_non_ascii_rejected(self):
        with pytest.raises(ValueError):
            domain_sep_bytes("é")


class TestEncoders:
    @pytest.mark.parametrize(
        "value, expected",
        [(0, b"\x00"), (1, b"\x01"), (127, b"\x7f"), (128, b"\x80\x01"), (300, b"\xac\x02")],
    )
    def test_uvarint(self, value, expected):
        assert encode_uvarint(value) == expected

    def test_uvarint_negative(self):
        with pytest.raises(ValueError):
            encode_uvarint(-1)

    def test_bytes_length_prefixed(self):
        assert encode_bytes(b"abc") == b"\x03abc"

    def test_str(self):
        assert encode_str("LP") == b"\x02LP"

    def test_optional_str(self):
        assert encode_optional_str(None) == b"\x00"
        assert encode_optional_str("m") == b"\x01\x01m"

    def test_sha256_hex(self):
        assert sha256_hex(b"") == "0xe3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class TestHexToBytes:
    def test_with_prefix(self):
        assert hex_to_bytes("0xA0ff", name="x") == b"\xa0\xff"

    def test_without_prefix(self):
        assert hex_to_bytes("00", name="x") == b"\x00"

    @pytest.mark.parametrize("bad", ["", "0x", "abc", "zz"])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            hex_to_bytes(bad, name="x")
