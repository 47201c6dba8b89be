"""State transition functions for the chef engine.

One pure function per action. Each receives the PRE-state (already accepted by
its guard) and returns ``(next_state, effect)``.

Ordering inside every stake-moving update is fixed:
1. settle the pool accumulator(s),
2. settle the caller's position (harvest),
3. apply the requested mutation and snapshot the reward debt.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Tuple

from .accrual import settle_all_pools, settle_pool_at
from .ledger import get_position, harvest, rebase_position, remove_position
from .registry import append_pool, replace_weight
from .types import ActionParams, ChefState, Effect, Event, Transfer
from .vault import drain_vault, fund_vault

Transition = Tuple[ChefState, Effect]


def _settle_before_weight_change(state: ChefState, params: ActionParams, now: int) -> ChefState:
    """Settle every pool unless both the engine and the caller opted out."""
    if state.enforce_settle_all or params.settle_all:
        return settle_all_pools(state, now)
    return state


def _reward_transfer(state: ChefState, account: str, paid: int) -> List[Transfer]:
    if paid == 0:
        return []
    return [Transfer(account=account, token=state.reward_token, delta=paid)]


def apply_add_pool(state: ChefState, params: ActionParams, now: int) -> Transition:
    s = _settle_before_weight_change(state, params, now)
    pool_id = len(s.pools)
    s = append_pool(s, params.stake_token, params.weight, now)
    s = replace(s, now=now)
    return s, Effect(
        event=Event.POOL_ADDED,
        pool_id=pool_id,
        account=params.caller,
        amount=params.weight,
        vault_after=s.vault_balance,
    )


def apply_set_weight(state: ChefState, params: ActionParams, now: int) -> Transition:
    s = _settle_before_weight_change(state, params, now)
    # The re-weighted pool itself is always settled under its old weight.
    s = settle_pool_at(s, params.pool_id, now)
    s = replace_weight(s, params.pool_id, params.weight)
    s = replace(s, now=now)
    return s, Effect(
        event=Event.WEIGHT_SET,
        pool_id=params.pool_id,
        account=params.caller,
        amount=params.weight,
        vault_after=s.vault_balance,
    )


def apply_update_pool(state: ChefState, params: ActionParams, now: int) -> Transition:
    s = replace(settle_pool_at(state, params.pool_id, now), now=now)
    return s, Effect(event=Event.POOL_UPDATED, pool_id=params.pool_id, vault_after=s.vault_balance)


def apply_mass_update_pools(state: ChefState, params: ActionParams, now: int) -> Transition:
    s = replace(settle_all_pools(state, now), now=now)
    return s, Effect(event=Event.POOLS_UPDATED, vault_after=s.vault_balance)


def apply_deposit(state: ChefState, params: ActionParams, now: int) -> Transition:
    account = params.caller
    pool_id = params.pool_id
    stake_token = state.pools[pool_id].stake_token

    s = settle_pool_at(state, pool_id, now)
    s, paid, shortfall = harvest(s, pool_id, account)
    held = get_position(s, pool_id, account).amount
    s = rebase_position(s, pool_id, account, held + params.amount)
    s = replace(s, now=now)

    transfers = _reward_transfer(state, account, paid)
    if params.amount:
        transfers.append(Transfer(account=account, token=stake_token, delta=-params.amount))
    return s, Effect(
        event=Event.DEPOSITED,
        pool_id=pool_id,
        account=account,
        amount=params.amount,
        reward_paid=paid,
        reward_shortfall=shortfall,
        transfers=tuple(transfers),
        vault_after=s.vault_balance,
    )


def apply_withdraw(state: ChefState, params: ActionParams, now: int) -> Transition:
    account = params.caller
    pool_id = params.pool_id
    stake_token = state.pools[pool_id].stake_token

    s = settle_pool_at(state, pool_id, now)
    s, paid, shortfall = harvest(s, pool_id, account)
    held = get_position(s, pool_id, account).amount
    s = rebase_position(s, pool_id, account, held - params.amount)
    s = replace(s, now=now)

    transfers = _reward_transfer(state, account, paid)
    if params.amount:
        transfers.append(Transfer(account=account, token=stake_token, delta=params.amount))
    return s, Effect(
        event=Event.WITHDRAWN,
        pool_id=pool_id,
        account=account,
        amount=params.amount,
        reward_paid=paid,
        reward_shortfall=shortfall,
        transfers=tuple(transfers),
        vault_after=s.vault_balance,
    )


def apply_emergency_withdraw(state: ChefState, params: ActionParams, now: int) -> Transition:
    account = params.caller
    pool_id = params.pool_id
    stake_token = state.pools[pool_id].stake_token

    # Settle while the leaver still counts towards total_staked. No reward is paid.
    s = settle_pool_at(state, pool_id, now)
    s, returned = remove_position(s, pool_id, account)
    s = replace(s, now=now)

    transfers: Tuple[Transfer, ...] = ()
    if returned:
        transfers = (Transfer(account=account, token=stake_token, delta=returned),)
    return s, Effect(
        event=Event.EMERGENCY_WITHDRAWN,
        pool_id=pool_id,
        account=account,
        amount=returned,
        transfers=transfers,
        vault_after=s.vault_balance,
    )


def apply_fund_vault(state: ChefState, params: ActionParams, now: int) -> Transition:
    s = replace(fund_vault(state, params.amount), now=now)
    return s, Effect(
        event=Event.VAULT_FUNDED,
        account=params.caller,
        amount=params.amount,
        transfers=(Transfer(account=params.caller, token=state.reward_token, delta=-params.amount),),
        vault_after=s.vault_balance,
    )


def apply_drain_vault(state: ChefState, params: ActionParams, now: int) -> Transition:
    s = replace(drain_vault(state, params.amount), now=now)
    return s, Effect(
        event=Event.VAULT_DRAINED,
        account=params.caller,
        amount=params.amount,
        transfers=(Transfer(account=params.caller, token=state.reward_token, delta=params.amount),),
        vault_after=s.vault_balance,
    )


def apply_set_migrator(state: ChefState, params: ActionParams, now: int) -> Transition:
    s = replace(state, migrator=params.target or None, now=now)
    return s, Effect(event=Event.MIGRATOR_SET, account=params.target, vault_after=s.vault_balance)


def apply_transfer_ownership(state: ChefState, params: ActionParams, now: int) -> Transition:
    s = replace(state, owner=params.target, now=now)
    return s, Effect(event=Event.OWNERSHIP_TRANSFERRED, account=params.target, vault_after=s.vault_balance)
