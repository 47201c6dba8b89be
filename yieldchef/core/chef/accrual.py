"""Accrual engine: advance pool accumulators to a point in time.

Pure functions of (pool, emission parameters, now). Every mutating operation
settles the pools it touches through here before applying its own update, and
`pending_reward` uses the same code path on a throwaway copy.
"""

from __future__ import annotations

from dataclasses import replace

from .math import acc_increment, emission_elapsed, pool_reward
from .types import ChefState, Pool


def settle_pool(state: ChefState, pool: Pool, now: int) -> Pool:
    """Return ``pool`` with its accumulator advanced to ``now``.

    - ``now <= last_reward_time``: unchanged (also covers pools checkpointed at a
      future emission start).
    - empty or paused pool: checkpoint moves, accumulator does not.
    - otherwise: the pool's weighted share of the emission since the checkpoint
      is spread over its total stake.
    """
    if now <= pool.last_reward_time:
        return pool
    if pool.total_staked == 0 or pool.alloc_weight == 0:
        return replace(pool, last_reward_time=now)

    elapsed = emission_elapsed(
        pool.last_reward_time, now,
        state.emission_start, state.emission_end,
    )
    reward = pool_reward(
        elapsed, state.reward_per_second,
        pool.alloc_weight, state.total_alloc_weight,
    )
    return replace(
        pool,
        acc_reward_per_share=pool.acc_reward_per_share + acc_increment(reward, pool.total_staked),
        last_reward_time=now,
    )


def settle_pool_at(state: ChefState, pool_id: int, now: int) -> ChefState:
    """Settle a single pool inside ``state``."""
    pool = state.pools[pool_id]
    settled = settle_pool(state, pool, now)
    if settled is pool:
        return state
    pools = list(state.pools)
    pools[pool_id] = settled
    return replace(state, pools=tuple(pools))


def settle_all_pools(state: ChefState, now: int) -> ChefState:
    """Settle every pool against the current total weight."""
    if not state.pools:
        return state
    return replace(state, pools=tuple(settle_pool(state, p, now) for p in state.pools))
