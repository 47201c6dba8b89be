"""Exception types and rejection codes for the chef engine.

``step()`` reports failures as rejection code strings; ``step_or_raise()`` and the
host turn them into the exceptions below. Every exception carries its ``code``.
"""

from __future__ import annotations

INVALID_WEIGHT = "invalid_weight"
INVALID_POOL_ID = "invalid_pool_id"
INSUFFICIENT_STAKE = "insufficient_stake"
INVALID_AMOUNT = "invalid_amount"
UNAUTHORIZED = "unauthorized"
DUPLICATE_STAKE_TOKEN = "duplicate_stake_token"
CLOCK_REGRESSION = "clock_regression"

PARAM_DOMAIN_PREFIX = "param_domain:"
INVARIANT_PREFIX = "invariant:"


class ChefError(Exception):
    """Base class for every engine rejection."""

    code: str = "chef_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)


class InvalidWeight(ChefError):
    """A pool was added with zero allocation weight."""

    code = INVALID_WEIGHT


class InvalidPoolId(ChefError):
    """Pool index out of range."""

    code = INVALID_POOL_ID


class InsufficientStake(ChefError):
    """Withdraw amount exceeds the caller's position."""

    code = INSUFFICIENT_STAKE


class InvalidAmount(ChefError):
    """Zero or over-balance amount for a vault operation, or amount overflow."""

    code = INVALID_AMOUNT


class Unauthorized(ChefError):
    """Owner-gated operation invoked by a non-owner."""

    code = UNAUTHORIZED


class DuplicateStakeToken(ChefError):
    """The stake token is already registered in another pool."""

    code = DUPLICATE_STAKE_TOKEN


class ClockRegression(ChefError):
    """The supplied time is earlier than the engine's last observed time."""

    code = CLOCK_REGRESSION


class InsufficientBalance(ChefError):
    """A wallet cannot cover the transfer an operation requires (host-side)."""

    code = "insufficient_balance"


class ChefParamDomainError(ChefError):
    """Raised when a parameter is outside its allowed domain."""

    code = "param_domain"


class ChefInvariantError(ChefError):
    """Raised when a post-state violates one or more invariants."""

    code = "invariant"

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")


ERROR_BY_CODE: dict[str, type[ChefError]] = {
    cls.code: cls
    for cls in (
        InvalidWeight,
        InvalidPoolId,
        InsufficientStake,
        InvalidAmount,
        Unauthorized,
        DuplicateStakeToken,
        ClockRegression,
    )
}


def error_for_rejection(rejection: str) -> ChefError:
    """Build the exception matching a ``StepResult.rejection`` string."""
    if rejection.startswith(PARAM_DOMAIN_PREFIX):
        return ChefParamDomainError(rejection)
    if rejection.startswith(INVARIANT_PREFIX):
        return ChefInvariantError(rejection.removeprefix(INVARIANT_PREFIX).split(","))
    cls = ERROR_BY_CODE.get(rejection)
    if cls is None:
        return ChefError(rejection)
    return cls()
