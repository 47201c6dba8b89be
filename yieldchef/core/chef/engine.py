"""Dispatch-table engine for the chef reward ledger.

``step(state, params, now)`` is the single entry point for mutations. It:

1. Validates ``now`` and parameter domains.
2. Rejects clock regressions (``now`` earlier than ``state.now``).
3. Dispatches to the action's guard and update functions.
4. Checks all state and transition invariants on the post-state.
5. Returns a ``StepResult`` (accepted, or rejected with a reason code).

A rejected step never produces a state, so callers keep the PRE-state unchanged.
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple

from .errors import (
    CLOCK_REGRESSION,
    INVARIANT_PREFIX,
    PARAM_DOMAIN_PREFIX,
    error_for_rejection,
)
from .guards import (
    guard_add_pool,
    guard_deposit,
    guard_drain_vault,
    guard_emergency_withdraw,
    guard_fund_vault,
    guard_mass_update_pools,
    guard_set_migrator,
    guard_set_weight,
    guard_transfer_ownership,
    guard_update_pool,
    guard_withdraw,
)
from .invariants import check_all, check_transition
from .math import MAX_AMOUNT, MAX_TIME
from .types import Action, ActionParams, ChefState, Effect, StepResult
from .updates import (
    apply_add_pool,
    apply_deposit,
    apply_drain_vault,
    apply_emergency_withdraw,
    apply_fund_vault,
    apply_mass_update_pools,
    apply_set_migrator,
    apply_set_weight,
    apply_transfer_ownership,
    apply_update_pool,
    apply_withdraw,
)

GuardFn = Callable[[ChefState, ActionParams, int], Optional[str]]
UpdateFn = Callable[[ChefState, ActionParams, int], Tuple[ChefState, Effect]]

_DISPATCH: dict[Action, tuple[GuardFn, UpdateFn]] = {
    Action.ADD_POOL: (guard_add_pool, apply_add_pool),
    Action.SET_WEIGHT: (guard_set_weight, apply_set_weight),
    Action.UPDATE_POOL: (guard_update_pool, apply_update_pool),
    Action.MASS_UPDATE_POOLS: (guard_mass_update_pools, apply_mass_update_pools),
    Action.DEPOSIT: (guard_deposit, apply_deposit),
    Action.WITHDRAW: (guard_withdraw, apply_withdraw),
    Action.EMERGENCY_WITHDRAW: (guard_emergency_withdraw, apply_emergency_withdraw),
    Action.FUND_VAULT: (guard_fund_vault, apply_fund_vault),
    Action.DRAIN_VAULT: (guard_drain_vault, apply_drain_vault),
    Action.SET_MIGRATOR: (guard_set_migrator, apply_set_migrator),
    Action.TRANSFER_OWNERSHIP: (guard_transfer_ownership, apply_transfer_ownership),
}

# -- Parameter domain bounds ---------------------------------------------------

# Per-action integer bounds: list of (field_name, min_val, max_val).
_INT_BOUNDS: dict[Action, list[tuple[str, int, int]]] = {
    Action.ADD_POOL: [("weight", 0, MAX_AMOUNT)],
    Action.SET_WEIGHT: [("weight", 0, MAX_AMOUNT)],
    Action.UPDATE_POOL: [],
    Action.MASS_UPDATE_POOLS: [],
    Action.DEPOSIT: [("amount", 0, MAX_AMOUNT)],
    Action.WITHDRAW: [("amount", 0, MAX_AMOUNT)],
    Action.EMERGENCY_WITHDRAW: [],
    Action.FUND_VAULT: [("amount", 0, MAX_AMOUNT)],
    Action.DRAIN_VAULT: [("amount", 0, MAX_AMOUNT)],
    Action.SET_MIGRATOR: [],
    Action.TRANSFER_OWNERSHIP: [],
}

# Per-action string fields that must be non-empty.
_REQUIRED_STR: dict[Action, tuple[str, ...]] = {
    Action.ADD_POOL: ("caller", "stake_token"),
    Action.SET_WEIGHT: ("caller",),
    Action.DEPOSIT: ("caller",),
    Action.WITHDRAW: ("caller",),
    Action.EMERGENCY_WITHDRAW: ("caller",),
    Action.FUND_VAULT: ("caller",),
    Action.DRAIN_VAULT: ("caller",),
    Action.SET_MIGRATOR: ("caller",),
    Action.TRANSFER_OWNERSHIP: ("caller", "target"),
}

# Actions addressing one pool. Only the type is checked here; the guards
# range-check the id so an unknown pool surfaces as `invalid_pool_id`.
_POOL_ACTIONS = frozenset(
    {
        Action.SET_WEIGHT,
        Action.UPDATE_POOL,
        Action.DEPOSIT,
        Action.WITHDRAW,
        Action.EMERGENCY_WITHDRAW,
    }
)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_params(params: ActionParams) -> Optional[str]:
    """Check parameter domain bounds. Returns rejection reason or None."""
    if params.action in _POOL_ACTIONS and not _is_int(params.pool_id):
        return f"{PARAM_DOMAIN_PREFIX}pool_id"
    for field, lo, hi in _INT_BOUNDS.get(params.action, []):
        val = getattr(params, field)
        if not _is_int(val) or val < lo or val > hi:
            return f"{PARAM_DOMAIN_PREFIX}{field}"
    for field in _REQUIRED_STR.get(params.action, ()):
        val = getattr(params, field)
        if not isinstance(val, str) or not val:
            return f"{PARAM_DOMAIN_PREFIX}{field}"
    if not isinstance(params.target, str):
        return f"{PARAM_DOMAIN_PREFIX}target"
    return None


def step(state: ChefState, params: ActionParams, now: int) -> StepResult:
    """Execute one action against the given state at time ``now``.

    Returns ``StepResult`` with ``accepted=True`` on success,
    or ``accepted=False`` with a ``rejection`` reason string.
    """
    entry = _DISPATCH.get(params.action)
    if entry is None:
        return StepResult(accepted=False, rejection=f"unknown_action:{params.action}")

    if not _is_int(now) or now < 0 or now > MAX_TIME:
        return StepResult(accepted=False, rejection=f"{PARAM_DOMAIN_PREFIX}now")
    if now < state.now:
        return StepResult(accepted=False, rejection=CLOCK_REGRESSION)

    domain_err = _validate_params(params)
    if domain_err is not None:
        return StepResult(accepted=False, rejection=domain_err)

    guard_fn, update_fn = entry

    rejection = guard_fn(state, params, now)
    if rejection is not None:
        return StepResult(accepted=False, rejection=rejection)

    new_state, effect = update_fn(state, params, now)

    violations = check_all(new_state) + check_transition(state, new_state)
    if violations:
        return StepResult(
            accepted=False,
            rejection=f"{INVARIANT_PREFIX}{','.join(violations)}",
        )

    return StepResult(accepted=True, state=new_state, effect=effect)


def step_or_raise(state: ChefState, params: ActionParams, now: int) -> StepResult:
    """Like ``step()`` but raises on rejection instead of returning a result.

    Raises:
        ChefParamDomainError: Parameter outside its domain.
        ChefInvariantError: Post-state violates one or more invariants.
        ChefError: The matching subclass for any guard rejection
            (``InvalidWeight``, ``InvalidPoolId``, ``InsufficientStake``,
            ``InvalidAmount``, ``Unauthorized``, ...).
    """
    result = step(state, params, now)
    if result.accepted:
        return result
    raise error_for_rejection(result.rejection or "")
