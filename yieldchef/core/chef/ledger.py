"""Position ledger: per (pool, account) stake and reward debt.

Positions are created lazily on first deposit and stored in a plain mapping
keyed by ``(pool_id, account)``. Writes copy the mapping so earlier states stay
valid.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from .accrual import settle_pool
from .math import accrued, pending
from .registry import require_pool
from .types import Account, ChefState, Position
from .vault import pay_reward

_EMPTY = Position()


def get_position(state: ChefState, pool_id: int, account: Account) -> Position:
    """Return the position, or an all-zero position if none exists."""
    return state.positions.get((pool_id, account), _EMPTY)


def pending_reward(state: ChefState, pool_id: int, account: Account, now: int) -> int:
    """Reward ``account`` could harvest from ``pool_id`` at ``now``.

    Read-only: the accumulator is settled on a copy of the pool.

    Raises:
        InvalidPoolId: ``pool_id`` is out of range.
    """
    pool = settle_pool(state, require_pool(state, pool_id), now)
    position = get_position(state, pool_id, account)
    return pending(position.amount, pool.acc_reward_per_share, position.reward_debt)


def harvest(state: ChefState, pool_id: int, account: Account) -> Tuple[ChefState, int, int]:
    """Pay the position's pending reward from the vault.

    The pool must already be settled. The reward debt is left untouched; callers
    reset it via ``rebase_position`` once the stake amount is final.
    Returns ``(state, paid, shortfall)``.
    """
    pool = state.pools[pool_id]
    position = get_position(state, pool_id, account)
    owed = pending(position.amount, pool.acc_reward_per_share, position.reward_debt)
    return pay_reward(state, owed)


def rebase_position(state: ChefState, pool_id: int, account: Account, new_amount: int) -> ChefState:
    """Set the stake to ``new_amount`` and snapshot the reward debt.

    ``pool.total_staked`` moves by the same delta. A position that never held
    stake is not materialised by a zero-amount call.
    """
    key = (pool_id, account)
    pool = state.pools[pool_id]
    old = get_position(state, pool_id, account)
    delta = new_amount - old.amount

    pools = list(state.pools)
    pools[pool_id] = replace(pool, total_staked=pool.total_staked + delta)

    positions = dict(state.positions)
    if key in positions or new_amount > 0:
        positions[key] = Position(
            amount=new_amount,
            reward_debt=accrued(new_amount, pool.acc_reward_per_share),
        )
    return replace(state, pools=tuple(pools), positions=positions)


def remove_position(state: ChefState, pool_id: int, account: Account) -> Tuple[ChefState, int]:
    """Drop the position without settlement. Returns ``(state, stake_returned)``."""
    key = (pool_id, account)
    position = state.positions.get(key, _EMPTY)
    pool = state.pools[pool_id]

    pools = list(state.pools)
    pools[pool_id] = replace(pool, total_staked=pool.total_staked - position.amount)

    positions = dict(state.positions)
    positions.pop(key, None)
    return replace(state, pools=tuple(pools), positions=positions), position.amount
