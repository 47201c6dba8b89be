"""Invariant checkers for the chef engine.

State invariants take one state; transition invariants compare the PRE- and
POST-state of a step. ``check_all()`` / ``check_transition()`` return the list
of violated invariant IDs (empty = all pass).
"""

from __future__ import annotations

from typing import Callable

from .math import accrued
from .types import ChefState


def inv_counters_nonneg(s: ChefState) -> bool:
    return all(
        v >= 0
        for v in (
            s.reward_per_second, s.total_alloc_weight, s.vault_balance,
            s.total_funded, s.total_paid, s.total_drained, s.total_shortfall,
        )
    )


def inv_emission_window_ordered(s: ChefState) -> bool:
    return s.emission_end is None or s.emission_end >= s.emission_start


def inv_total_weight_matches(s: ChefState) -> bool:
    return s.total_alloc_weight == sum(p.alloc_weight for p in s.pools)


def inv_pools_nonneg(s: ChefState) -> bool:
    return all(
        p.alloc_weight >= 0 and p.acc_reward_per_share >= 0 and p.total_staked >= 0
        for p in s.pools
    )


def inv_checkpoint_not_from_future(s: ChefState) -> bool:
    bound = max(s.now, s.emission_start)
    return all(p.last_reward_time <= bound for p in s.pools)


def inv_unique_stake_tokens(s: ChefState) -> bool:
    tokens = [p.stake_token for p in s.pools]
    return len(tokens) == len(set(tokens))


def inv_positions_reference_pools(s: ChefState) -> bool:
    return all(0 <= pool_id < len(s.pools) for pool_id, _account in s.positions)


def inv_total_staked_matches(s: ChefState) -> bool:
    totals = [0] * len(s.pools)
    for (pool_id, _account), position in s.positions.items():
        if not 0 <= pool_id < len(totals):
            return False
        totals[pool_id] += position.amount
    return all(p.total_staked == t for p, t in zip(s.pools, totals))


def inv_positions_nonneg(s: ChefState) -> bool:
    return all(p.amount >= 0 and p.reward_debt >= 0 for p in s.positions.values())


def inv_reward_debt_not_ahead(s: ChefState) -> bool:
    """A debt snapshot is never above what the current accumulator implies."""
    for (pool_id, _account), position in s.positions.items():
        if not 0 <= pool_id < len(s.pools):
            return False
        if position.reward_debt > accrued(position.amount, s.pools[pool_id].acc_reward_per_share):
            return False
    return True


def inv_vault_conservation(s: ChefState) -> bool:
    return s.vault_balance == s.total_funded - s.total_paid - s.total_drained


# ---------------------------------------------------------------------------
# Transition invariants
# ---------------------------------------------------------------------------

def tinv_clock_monotone(pre: ChefState, post: ChefState) -> bool:
    return post.now >= pre.now


def tinv_registry_append_only(pre: ChefState, post: ChefState) -> bool:
    if len(post.pools) < len(pre.pools):
        return False
    return all(a.stake_token == b.stake_token for a, b in zip(pre.pools, post.pools))


def tinv_acc_monotone(pre: ChefState, post: ChefState) -> bool:
    return all(
        b.acc_reward_per_share >= a.acc_reward_per_share
        for a, b in zip(pre.pools, post.pools)
    )


def tinv_checkpoint_monotone(pre: ChefState, post: ChefState) -> bool:
    return all(b.last_reward_time >= a.last_reward_time for a, b in zip(pre.pools, post.pools))


def tinv_counters_monotone(pre: ChefState, post: ChefState) -> bool:
    return (
        post.total_funded >= pre.total_funded
        and post.total_paid >= pre.total_paid
        and post.total_drained >= pre.total_drained
        and post.total_shortfall >= pre.total_shortfall
    )


# ---------------------------------------------------------------------------
# Registries + check functions
# ---------------------------------------------------------------------------

INVARIANT_REGISTRY: dict[str, Callable[[ChefState], bool]] = {
    "inv_counters_nonneg": inv_counters_nonneg,
    "inv_emission_window_ordered": inv_emission_window_ordered,
    "inv_total_weight_matches": inv_total_weight_matches,
    "inv_pools_nonneg": inv_pools_nonneg,
    "inv_checkpoint_not_from_future": inv_checkpoint_not_from_future,
    "inv_unique_stake_tokens": inv_unique_stake_tokens,
    "inv_positions_reference_pools": inv_positions_reference_pools,
    "inv_total_staked_matches": inv_total_staked_matches,
    "inv_positions_nonneg": inv_positions_nonneg,
    "inv_reward_debt_not_ahead": inv_reward_debt_not_ahead,
    "inv_vault_conservation": inv_vault_conservation,
}

TRANSITION_INVARIANT_REGISTRY: dict[str, Callable[[ChefState, ChefState], bool]] = {
    "tinv_clock_monotone": tinv_clock_monotone,
    "tinv_registry_append_only": tinv_registry_append_only,
    "tinv_acc_monotone": tinv_acc_monotone,
    "tinv_checkpoint_monotone": tinv_checkpoint_monotone,
    "tinv_counters_monotone": tinv_counters_monotone,
}


def check_all(state: ChefState) -> list[str]:
    """Return list of violated state invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(state)
    ]


def check_transition(pre: ChefState, post: ChefState) -> list[str]:
    """Return list of violated transition invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in TRANSITION_INVARIANT_REGISTRY.items()
        if not check_fn(pre, post)
    ]
