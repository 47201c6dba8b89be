"""Pool registry: append-only list of pools addressed by index."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from .errors import InvalidPoolId
from .types import ChefState, Pool, TokenId


def pool_length(state: ChefState) -> int:
    """Number of pools ever added (never decreases)."""
    return len(state.pools)


def is_valid_pool_id(state: ChefState, pool_id: int) -> bool:
    return 0 <= pool_id < len(state.pools)


def require_pool(state: ChefState, pool_id: int) -> Pool:
    """Return the pool at ``pool_id`` or raise ``InvalidPoolId``."""
    if not isinstance(pool_id, int) or isinstance(pool_id, bool) or not is_valid_pool_id(state, pool_id):
        raise InvalidPoolId(f"no pool with id {pool_id!r}")
    return state.pools[pool_id]


def find_pool_by_token(state: ChefState, stake_token: TokenId) -> Optional[int]:
    for pool_id, pool in enumerate(state.pools):
        if pool.stake_token == stake_token:
            return pool_id
    return None


def append_pool(state: ChefState, stake_token: TokenId, weight: int, now: int) -> ChefState:
    """Append a new pool; rewards start at ``max(now, emission_start)``."""
    pool = Pool(
        stake_token=stake_token,
        alloc_weight=weight,
        last_reward_time=max(now, state.emission_start),
    )
    return replace(
        state,
        pools=state.pools + (pool,),
        total_alloc_weight=state.total_alloc_weight + weight,
    )


def replace_weight(state: ChefState, pool_id: int, weight: int) -> ChefState:
    """Swap a pool's weight and keep ``total_alloc_weight`` in step."""
    pool = state.pools[pool_id]
    pools = list(state.pools)
    pools[pool_id] = replace(pool, alloc_weight=weight)
    return replace(
        state,
        pools=tuple(pools),
        total_alloc_weight=state.total_alloc_weight - pool.alloc_weight + weight,
    )
