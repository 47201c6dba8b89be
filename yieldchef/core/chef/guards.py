"""Guard functions for the chef engine.

One pure function per action. Each inspects the PRE-state and parameters and
returns ``None`` when the action is allowed, or the rejection code otherwise.
Guards never look at the clock beyond what the engine already validated.
"""

from __future__ import annotations

from typing import Optional

from .errors import (
    DUPLICATE_STAKE_TOKEN,
    INSUFFICIENT_STAKE,
    INVALID_AMOUNT,
    INVALID_POOL_ID,
    INVALID_WEIGHT,
    UNAUTHORIZED,
)
from .ledger import get_position
from .math import MAX_AMOUNT
from .registry import find_pool_by_token, is_valid_pool_id
from .types import ActionParams, ChefState


def _is_owner(state: ChefState, params: ActionParams) -> bool:
    return bool(state.owner) and params.caller == state.owner


def guard_add_pool(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    if not _is_owner(state, params):
        return UNAUTHORIZED
    if params.weight == 0:
        return INVALID_WEIGHT
    if find_pool_by_token(state, params.stake_token) is not None:
        return DUPLICATE_STAKE_TOKEN
    if state.total_alloc_weight + params.weight > MAX_AMOUNT:
        return INVALID_WEIGHT
    return None


def guard_set_weight(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    if not _is_owner(state, params):
        return UNAUTHORIZED
    if not is_valid_pool_id(state, params.pool_id):
        return INVALID_POOL_ID
    current = state.pools[params.pool_id].alloc_weight
    if state.total_alloc_weight - current + params.weight > MAX_AMOUNT:
        return INVALID_WEIGHT
    return None


def guard_update_pool(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    if not is_valid_pool_id(state, params.pool_id):
        return INVALID_POOL_ID
    return None


def guard_mass_update_pools(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    return None


def guard_deposit(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    if not is_valid_pool_id(state, params.pool_id):
        return INVALID_POOL_ID
    if state.pools[params.pool_id].total_staked + params.amount > MAX_AMOUNT:
        return INVALID_AMOUNT
    return None


def guard_withdraw(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    if not is_valid_pool_id(state, params.pool_id):
        return INVALID_POOL_ID
    if params.amount > get_position(state, params.pool_id, params.caller).amount:
        return INSUFFICIENT_STAKE
    return None


def guard_emergency_withdraw(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    if not is_valid_pool_id(state, params.pool_id):
        return INVALID_POOL_ID
    return None


def guard_fund_vault(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    if params.amount == 0:
        return INVALID_AMOUNT
    if state.vault_balance + params.amount > MAX_AMOUNT:
        return INVALID_AMOUNT
    return None


def guard_drain_vault(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    if not _is_owner(state, params):
        return UNAUTHORIZED
    if params.amount == 0 or params.amount > state.vault_balance:
        return INVALID_AMOUNT
    return None


def guard_set_migrator(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    if not _is_owner(state, params):
        return UNAUTHORIZED
    return None


def guard_transfer_ownership(state: ChefState, params: ActionParams, now: int) -> Optional[str]:
    if not _is_owner(state, params):
        return UNAUTHORIZED
    return None
