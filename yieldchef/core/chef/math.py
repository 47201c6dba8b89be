"""Pure arithmetic for the chef reward engine.

Every function is stateless and operates on plain Python ints.

Rounding is floor division (`//`) throughout. All operands are non-negative, so
this is truncation toward zero, and every truncation leaves dust in the vault
rather than paying it out.
"""

from __future__ import annotations

from typing import Optional, Tuple

# Fixed-point scale of `acc_reward_per_share`.
ACC_SCALE: int = 1_000_000_000_000  # 1e12

# Domain constants (uint256 / uint64 token and time domains)
MAX_AMOUNT: int = 2**256 - 1
MAX_TIME: int = 2**64 - 1


# -- Emission window -----------------------------------------------------------

def emission_elapsed(
    from_time: int,
    to_time: int,
    emission_start: int,
    emission_end: Optional[int],
) -> int:
    """Seconds of emission inside ``[from_time, to_time]``.

    The interval is clipped to ``[emission_start, emission_end]``; an open
    ``emission_end`` (None) never clips. Returns 0 for empty intersections.
    """
    lo = max(from_time, emission_start)
    hi = to_time if emission_end is None else min(to_time, emission_end)
    return hi - lo if hi > lo else 0


def pool_reward(
    elapsed: int,
    reward_per_second: int,
    alloc_weight: int,
    total_alloc_weight: int,
) -> int:
    """Reward a pool earns over ``elapsed``: ``elapsed * rate * w / W``."""
    if total_alloc_weight == 0:
        return 0
    return (elapsed * reward_per_second * alloc_weight) // total_alloc_weight


def acc_increment(reward: int, total_staked: int) -> int:
    """Accumulator increase for spreading ``reward`` over ``total_staked``."""
    if total_staked == 0:
        return 0
    return (reward * ACC_SCALE) // total_staked


# -- Position helpers ----------------------------------------------------------

def accrued(amount: int, acc_reward_per_share: int) -> int:
    """Reward earned by ``amount`` since genesis: ``amount * acc / SCALE``."""
    return (amount * acc_reward_per_share) // ACC_SCALE


def pending(amount: int, acc_reward_per_share: int, reward_debt: int) -> int:
    """Unsettled reward of a position, clamped at 0."""
    owed = accrued(amount, acc_reward_per_share) - reward_debt
    return owed if owed > 0 else 0


# -- Vault helpers -------------------------------------------------------------

def saturating_payout(owed: int, vault_balance: int) -> Tuple[int, int]:
    """Split ``owed`` into ``(paid, shortfall)`` with ``paid <= vault_balance``."""
    paid = owed if owed <= vault_balance else vault_balance
    return paid, owed - paid


def reward_rate_for_budget(total_reward: int, duration_seconds: int) -> int:
    """Per-second rate that emits at most ``total_reward`` over the window."""
    if duration_seconds <= 0:
        raise ValueError("duration_seconds must be positive")
    if total_reward < 0:
        raise ValueError("total_reward must be non-negative")
    return total_reward // duration_seconds
