"""`chef`: pure-Python yield-farming reward engine.

A registry of stake pools shares one reward emission by weight. Each pool keeps
a fixed-point reward-per-share accumulator; positions snapshot it as their
reward debt, so any depositor's pending reward is O(1) to compute.

- deterministic, integer-only transitions,
- immutable state (frozen dataclasses),
- fail-closed guards and invariant checks.

Public API:
- `initial_state(...) -> ChefState`
- `step(state, params, now) -> StepResult`
- `step_or_raise(state, params, now) -> StepResult` (raises on rejection)
- `pending_reward(state, pool_id, account, now) -> int`
"""

from .engine import step, step_or_raise
from .errors import (
    ChefError,
    ChefInvariantError,
    ChefParamDomainError,
    ClockRegression,
    DuplicateStakeToken,
    InsufficientBalance,
    InsufficientStake,
    InvalidAmount,
    InvalidPoolId,
    InvalidWeight,
    Unauthorized,
)
from .ledger import get_position, pending_reward
from .math import ACC_SCALE, reward_rate_for_budget
from .registry import pool_length
from .state import initial_state, state_from_dict, state_to_dict
from .types import (
    Action,
    ActionParams,
    ChefState,
    Effect,
    Event,
    Pool,
    Position,
    StepResult,
    Transfer,
)
from .vault import total_pending, vault_deficit

__all__ = [
    "step",
    "step_or_raise",
    "initial_state",
    "state_from_dict",
    "state_to_dict",
    "pending_reward",
    "get_position",
    "pool_length",
    "total_pending",
    "vault_deficit",
    "reward_rate_for_budget",
    "ACC_SCALE",
    "Action",
    "ActionParams",
    "ChefState",
    "Effect",
    "Event",
    "Pool",
    "Position",
    "StepResult",
    "Transfer",
    "ChefError",
    "ChefInvariantError",
    "ChefParamDomainError",
    "ClockRegression",
    "DuplicateStakeToken",
    "InsufficientBalance",
    "InsufficientStake",
    "InvalidAmount",
    "InvalidPoolId",
    "InvalidWeight",
    "Unauthorized",
]
