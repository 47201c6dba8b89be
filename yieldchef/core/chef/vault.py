"""Reward vault: funding, payout and break-glass draining.

The vault balance only moves through these functions, each of which keeps the
conservation identity

    vault_balance == total_funded - total_paid - total_drained

Payouts saturate at the balance. The unpaid remainder is not queued; it is
added to ``total_shortfall`` and reported back to the caller so the host can
surface it.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from .accrual import settle_pool
from .math import pending, saturating_payout
from .types import ChefState


def fund_vault(state: ChefState, amount: int) -> ChefState:
    return replace(
        state,
        vault_balance=state.vault_balance + amount,
        total_funded=state.total_funded + amount,
    )


def drain_vault(state: ChefState, amount: int) -> ChefState:
    return replace(
        state,
        vault_balance=state.vault_balance - amount,
        total_drained=state.total_drained + amount,
    )


def pay_reward(state: ChefState, owed: int) -> Tuple[ChefState, int, int]:
    """Pay ``owed`` out of the vault. Returns ``(state, paid, shortfall)``."""
    if owed == 0:
        return state, 0, 0
    paid, shortfall = saturating_payout(owed, state.vault_balance)
    new_state = replace(
        state,
        vault_balance=state.vault_balance - paid,
        total_paid=state.total_paid + paid,
        total_shortfall=state.total_shortfall + shortfall,
    )
    return new_state, paid, shortfall


def total_pending(state: ChefState, now: int) -> int:
    """Sum of pending reward over every position, settled to ``now``."""
    settled = [settle_pool(state, pool, now) for pool in state.pools]
    total = 0
    for (pool_id, _account), position in state.positions.items():
        pool = settled[pool_id]
        total += pending(position.amount, pool.acc_reward_per_share, position.reward_debt)
    return total


def vault_deficit(state: ChefState, now: int) -> int:
    """How far accrued-but-unpaid reward exceeds the vault balance (>= 0)."""
    deficit = total_pending(state, now) - state.vault_balance
    return deficit if deficit > 0 else 0
