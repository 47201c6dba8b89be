"""
Deterministic state root hashing (v1).

Intended for:
- debugging / audit (stable hashes for the same logical state),
- snapshot verification (a restored state must hash to the same root),
- replay checks between hosts fed the same call log.
"""

from __future__ import annotations

from typing import Optional

from ..core.chef.types import ChefState
from .balances import BalanceTable
from .canonical import (
    domain_sep_bytes,
    encode_bytes,
    encode_optional_str,
    encode_str,
    encode_uvarint,
    sha256_hex,
)


STATE_ROOT_VERSION = 1


def _uint(name: str, v: object) -> int:
    if not isinstance(v, int) or isinstance(v, bool) or v < 0:
        raise ValueError(f"invalid {name}: {v!r}")
    return v


def _encode_params_section(state: ChefState) -> bytes:
    out = bytearray()
    out += encode_str(state.reward_token)
    out += encode_uvarint(_uint("reward_per_second", state.reward_per_second))
    out += encode_uvarint(_uint("emission_start", state.emission_start))
    if state.emission_end is None:
        out += b"\x00"
    else:
        out += b"\x01" + encode_uvarint(_uint("emission_end", state.emission_end))
    out += encode_str(state.owner)
    out += encode_optional_str(state.migrator)
    out += encode_uvarint(_uint("now", state.now))
    out += b"\x01" if state.enforce_settle_all else b"\x00"
    return bytes(out)


def _encode_pools_section(state: ChefState) -> bytes:
    out = bytearray()
    out += encode_uvarint(len(state.pools))
    for pool in state.pools:
        out += encode_str(pool.stake_token)
        out += encode_uvarint(_uint("alloc_weight", pool.alloc_weight))
        out += encode_uvarint(_uint("last_reward_time", pool.last_reward_time))
        out += encode_uvarint(_uint("acc_reward_per_share", pool.acc_reward_per_share))
        out += encode_uvarint(_uint("total_staked", pool.total_staked))
    out += encode_uvarint(_uint("total_alloc_weight", state.total_alloc_weight))
    return bytes(out)


def _encode_positions_section(state: ChefState) -> bytes:
    out = bytearray()
    entries = sorted(state.positions.items())
    out += encode_uvarint(len(entries))
    for (pool_id, account), position in entries:
        out += encode_uvarint(_uint("pool_id", pool_id))
        out += encode_str(account)
        out += encode_uvarint(_uint("amount", position.amount))
        out += encode_uvarint(_uint("reward_debt", position.reward_debt))
    return bytes(out)


def _encode_vault_section(state: ChefState) -> bytes:
    out = bytearray()
    for name in ("vault_balance", "total_funded", "total_paid", "total_drained", "total_shortfall"):
        out += encode_uvarint(_uint(name, getattr(state, name)))
    return bytes(out)


def _encode_balances_section(balances: BalanceTable) -> bytes:
    out = bytearray()
    entries = sorted(balances.get_all_balances().items())
    out += encode_uvarint(len(entries))
    for (account, token), amount in entries:
        out += encode_str(account)
        out += encode_str(token)
        out += encode_uvarint(_uint("balance", amount))
    return bytes(out)


def compute_chef_state_root(state: ChefState, balances: Optional[BalanceTable] = None) -> str:
    """
    Compute a deterministic state root hash for the engine state.

    When `balances` is given the host wallets are committed too.
    Returns a 0x-prefixed sha256 digest.
    """
    if not isinstance(state, ChefState):
        raise TypeError("state must be a ChefState")
    if balances is not None and not isinstance(balances, BalanceTable):
        raise TypeError("balances must be a BalanceTable")

    payload = (
        domain_sep_bytes("chef_state_root", version=STATE_ROOT_VERSION)
        + b"PRM"
        + encode_bytes(_encode_params_section(state))
        + b"POL"
        + encode_bytes(_encode_pools_section(state))
        + b"POS"
        + encode_bytes(_encode_positions_section(state))
        + b"VLT"
        + encode_bytes(_encode_vault_section(state))
    )
    if balances is not None:
        payload += b"BAL" + encode_bytes(_encode_balances_section(balances))
    return sha256_hex(payload)
