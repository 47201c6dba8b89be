"""Data types for the `chef` reward engine.

All types are frozen dataclasses (immutable). The engine never mutates a state in
place; every accepted step returns a fresh `ChefState`.

Units/conventions:
- times are integer seconds (unix timestamps in production, arbitrary in tests),
- `acc_reward_per_share` is scaled by `ACC_SCALE` (see `math.py`),
- token amounts are integer base units (no decimals),
- accounts and token ids are opaque strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Mapping, Optional, Tuple

Account = str
TokenId = str
PositionKey = Tuple[int, Account]


@unique
class Action(Enum):
    """One member per state-changing engine operation."""
    ADD_POOL = "add_pool"
    SET_WEIGHT = "set_weight"
    UPDATE_POOL = "update_pool"
    MASS_UPDATE_POOLS = "mass_update_pools"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    EMERGENCY_WITHDRAW = "emergency_withdraw"
    FUND_VAULT = "fund_vault"
    DRAIN_VAULT = "drain_vault"
    SET_MIGRATOR = "set_migrator"
    TRANSFER_OWNERSHIP = "transfer_ownership"


@unique
class Event(Enum):
    """One member per effect event type."""
    POOL_ADDED = "PoolAdded"
    WEIGHT_SET = "WeightSet"
    POOL_UPDATED = "PoolUpdated"
    POOLS_UPDATED = "PoolsUpdated"
    DEPOSITED = "Deposit"
    WITHDRAWN = "Withdraw"
    EMERGENCY_WITHDRAWN = "EmergencyWithdraw"
    VAULT_FUNDED = "VaultFunded"
    VAULT_DRAINED = "VaultDrained"
    MIGRATOR_SET = "MigratorSet"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


@dataclass(frozen=True)
class Pool:
    """One reward-bearing pool, keyed by its index in `ChefState.pools`."""

    stake_token: TokenId
    alloc_weight: int
    last_reward_time: int
    acc_reward_per_share: int = 0
    total_staked: int = 0


@dataclass(frozen=True)
class Position:
    """A depositor's stake in one pool."""

    amount: int = 0
    reward_debt: int = 0


@dataclass(frozen=True)
class ChefState:
    """Complete state of the engine: emission parameters, registry, ledger, vault."""

    # Emission parameters
    reward_token: TokenId
    reward_per_second: int
    emission_start: int
    emission_end: Optional[int] = None

    # Capabilities
    owner: Account = ""
    migrator: Optional[Account] = None

    # Clock high-water mark
    now: int = 0

    # Pool registry (append-only; pool id == index)
    pools: Tuple[Pool, ...] = ()
    total_alloc_weight: int = 0

    # Position ledger
    positions: Mapping[PositionKey, Position] = field(default_factory=dict)

    # Reward vault
    vault_balance: int = 0
    total_funded: int = 0
    total_paid: int = 0
    total_drained: int = 0
    total_shortfall: int = 0

    # Control parameters
    enforce_settle_all: bool = True


@dataclass(frozen=True)
class ActionParams:
    """Parameters for an action. Unused fields default to 0/empty."""

    action: Action
    caller: Account = ""          # shared: identity invoking the operation
    pool_id: int = 0              # set_weight / update_pool / deposit / withdraw / emergency_withdraw
    amount: int = 0               # deposit / withdraw / fund_vault / drain_vault
    weight: int = 0               # add_pool / set_weight
    stake_token: TokenId = ""     # add_pool
    settle_all: bool = True       # add_pool / set_weight
    target: Account = ""          # set_migrator / transfer_ownership


@dataclass(frozen=True)
class Transfer:
    """A wallet movement the host must apply alongside the new state.

    Positive `delta` credits the account's wallet, negative debits it.
    """

    account: Account
    token: TokenId
    delta: int


@dataclass(frozen=True)
class Effect:
    """Observables emitted after a successful step."""

    event: Event
    pool_id: Optional[int] = None
    account: Account = ""
    amount: int = 0
    reward_paid: int = 0
    reward_shortfall: int = 0
    transfers: Tuple[Transfer, ...] = ()
    vault_after: int = 0


@dataclass(frozen=True)
class StepResult:
    """Result of a single engine step."""

    accepted: bool
    state: Optional[ChefState] = None
    effect: Optional[Effect] = None
    rejection: Optional[str] = None
