"""
Chef host: imperative shell around the pure reward engine.

- Reads `now` from an injectable clock and serializes callers with a lock.
- Runs one engine `step`, then applies the effect's wallet transfers on a staged
  copy of the balances. State and wallets are committed together, or not at all.
- Raises the `ChefError` subclass matching any rejection.
- Accepts external calls (`submit`) with optional BLS call signatures.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..core.chef.engine import step
from ..core.chef.errors import (
    UNAUTHORIZED,
    ChefInvariantError,
    InsufficientBalance,
    Unauthorized,
    error_for_rejection,
)
from ..core.chef.invariants import check_all
from ..core.chef.ledger import get_position
from ..core.chef.ledger import pending_reward as _pending_reward
from ..core.chef.registry import pool_length as _pool_length
from ..core.chef.state import initial_state, state_from_dict, state_to_dict
from ..core.chef.types import Action, ActionParams, ChefState, Effect, Event, Position
from ..core.chef.vault import vault_deficit as _vault_deficit
from ..core.clock import Clock, SystemClock
from ..state.balances import BalanceTable
from ..state.nonces import NonceTable
from ..state.state_root import compute_chef_state_root
from .config import ChefConfig, load_config
from .operations import parse_call, verify_call_signature

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

_OWNER_ACTIONS = frozenset(
    {
        Action.ADD_POOL,
        Action.SET_WEIGHT,
        Action.DRAIN_VAULT,
        Action.SET_MIGRATOR,
        Action.TRANSFER_OWNERSHIP,
    }
)

_INFO_EVENTS = frozenset(
    {
        Event.POOL_ADDED,
        Event.WEIGHT_SET,
        Event.VAULT_FUNDED,
        Event.VAULT_DRAINED,
        Event.MIGRATOR_SET,
        Event.OWNERSHIP_TRANSFERRED,
    }
)


class Chef:
    """Stateful reward farm: engine state + depositor wallets + clock."""

    def __init__(
        self,
        config: ChefConfig,
        *,
        clock: Optional[Clock] = None,
        wallets: Optional[BalanceTable] = None,
    ) -> None:
        self._config = config
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._state: ChefState = initial_state(
            reward_token=config.reward_token,
            owner=config.owner,
            reward_per_second=config.reward_per_second,
            emission_start=config.emission_start,
            emission_end=config.emission_end,
            enforce_settle_all=config.enforce_settle_all,
        )
        self._wallets = wallets.copy() if wallets is not None else BalanceTable()
        self._nonces = NonceTable()
        self._lock = threading.RLock()

    @classmethod
    def from_config_file(cls, path: Union[str, Path], *, clock: Optional[Clock] = None) -> "Chef":
        return cls(load_config(path), clock=clock)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> ChefConfig:
        return self._config

    @property
    def state(self) -> ChefState:
        return self._state

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def owner(self) -> str:
        return self._state.owner

    def migrator(self) -> Optional[str]:
        return self._state.migrator

    def balance_of(self, account: str, token: str) -> int:
        return self._wallets.get(account, token)

    def wallets(self) -> BalanceTable:
        """A copy of the wallet table."""
        with self._lock:
            return self._wallets.copy()

    def credit(self, account: str, token: str, amount: int) -> None:
        """Mint `amount` of `token` into a wallet (test and bootstrap helper)."""
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ValueError(f"amount must be a positive int, got {amount!r}")
        with self._lock:
            self._wallets.add(account, token, amount)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, params: ActionParams, *, staged_nonces: Optional[NonceTable] = None) -> Effect:
        with self._lock:
            now = self._clock.now()
            result = step(self._state, params, now)
            if not result.accepted:
                rejection = result.rejection or ""
                if rejection == UNAUTHORIZED and params.action in _OWNER_ACTIONS:
                    logger.warning("rejected %s from non-owner %s", params.action.value, params.caller)
                else:
                    logger.debug("rejected %s from %s: %s", params.action.value, params.caller, rejection)
                raise error_for_rejection(rejection)

            assert result.state is not None and result.effect is not None
            effect = result.effect
            staged = self._wallets.copy()
            try:
                staged.apply_deltas((t.account, t.token, t.delta) for t in effect.transfers)
            except ValueError as exc:
                logger.debug("%s by %s not fundable: %s", params.action.value, params.caller, exc)
                raise InsufficientBalance(str(exc)) from exc

            self._state = result.state
            self._wallets = staged
            if staged_nonces is not None:
                self._nonces = staged_nonces
            self._log_effect(effect, now)
            return effect

    def _log_effect(self, effect: Effect, now: int) -> None:
        if effect.reward_shortfall:
            logger.warning(
                "vault underfunded: paid %d of %d owed to %s (pool %s, vault now %d)",
                effect.reward_paid,
                effect.reward_paid + effect.reward_shortfall,
                effect.account,
                effect.pool_id,
                effect.vault_after,
            )
        if effect.event is Event.EMERGENCY_WITHDRAWN:
            logger.warning(
                "emergency withdraw: %s took %d from pool %s, rewards forfeited",
                effect.account,
                effect.amount,
                effect.pool_id,
            )
        elif effect.event in _INFO_EVENTS:
            logger.info(
                "%s at t=%d: pool=%s account=%s amount=%d vault=%d",
                effect.event.value,
                now,
                effect.pool_id,
                effect.account,
                effect.amount,
                effect.vault_after,
            )
        else:
            logger.debug(
                "%s at t=%d: pool=%s account=%s amount=%d reward=%d",
                effect.event.value,
                now,
                effect.pool_id,
                effect.account,
                effect.amount,
                effect.reward_paid,
            )

    # ------------------------------------------------------------------
    # Pool registry
    # ------------------------------------------------------------------

    def add_pool(self, caller: str, stake_token: str, weight: int, *, settle_all: bool = True) -> int:
        """Register a pool; returns its id."""
        effect = self._execute(
            ActionParams(
                action=Action.ADD_POOL,
                caller=caller,
                stake_token=stake_token,
                weight=weight,
                settle_all=settle_all,
            )
        )
        assert effect.pool_id is not None
        return effect.pool_id

    def set_weight(self, caller: str, pool_id: int, weight: int, *, settle_all: bool = True) -> Effect:
        return self._execute(
            ActionParams(
                action=Action.SET_WEIGHT,
                caller=caller,
                pool_id=pool_id,
                weight=weight,
                settle_all=settle_all,
            )
        )

    def update_pool(self, pool_id: int, *, caller: str = "") -> Effect:
        return self._execute(ActionParams(action=Action.UPDATE_POOL, caller=caller, pool_id=pool_id))

    def mass_update_pools(self, *, caller: str = "") -> Effect:
        return self._execute(ActionParams(action=Action.MASS_UPDATE_POOLS, caller=caller))

    def pool_length(self) -> int:
        return _pool_length(self._state)

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def deposit(self, caller: str, pool_id: int, amount: int) -> Effect:
        """Stake `amount` (may be 0 to just harvest)."""
        return self._execute(ActionParams(action=Action.DEPOSIT, caller=caller, pool_id=pool_id, amount=amount))

    def withdraw(self, caller: str, pool_id: int, amount: int) -> Effect:
        return self._execute(ActionParams(action=Action.WITHDRAW, caller=caller, pool_id=pool_id, amount=amount))

    def harvest(self, caller: str, pool_id: int) -> Effect:
        return self.deposit(caller, pool_id, 0)

    def emergency_withdraw(self, caller: str, pool_id: int) -> Effect:
        return self._execute(ActionParams(action=Action.EMERGENCY_WITHDRAW, caller=caller, pool_id=pool_id))

    def pending_reward(self, pool_id: int, account: str) -> int:
        with self._lock:
            now = max(self._clock.now(), self._state.now)
            return _pending_reward(self._state, pool_id, account, now)

    def position(self, pool_id: int, account: str) -> Position:
        return get_position(self._state, pool_id, account)

    # ------------------------------------------------------------------
    # Vault and ownership
    # ------------------------------------------------------------------

    def fund_vault(self, caller: str, amount: int) -> Effect:
        return self._execute(ActionParams(action=Action.FUND_VAULT, caller=caller, amount=amount))

    def drain_vault(self, caller: str, amount: int) -> Effect:
        return self._execute(ActionParams(action=Action.DRAIN_VAULT, caller=caller, amount=amount))

    emergency_fast_withdraw = drain_vault

    def vault_balance(self) -> int:
        return self._state.vault_balance

    def vault_deficit(self) -> int:
        with self._lock:
            now = max(self._clock.now(), self._state.now)
            return _vault_deficit(self._state, now)

    def set_migrator(self, caller: str, migrator: Optional[str]) -> Effect:
        return self._execute(ActionParams(action=Action.SET_MIGRATOR, caller=caller, target=migrator or ""))

    def transfer_ownership(self, caller: str, new_owner: str) -> Effect:
        return self._execute(ActionParams(action=Action.TRANSFER_OWNERSHIP, caller=caller, target=new_owner))

    # ------------------------------------------------------------------
    # External calls
    # ------------------------------------------------------------------

    def submit(self, call: Mapping[str, Any], *, sender: str, signature: Optional[str] = None) -> Effect:
        """
        Execute an external `{"op", "args"[, "nonce"]}` call on behalf of `sender`.

        A signed call's nonce is checked against a staged copy of the nonce
        table and committed together with the state, so a call the engine
        rejects leaves the signer's nonce unused.

        Raises:
            ValueError: malformed call
            Unauthorized: signature required but missing or invalid
            ChefError: any engine rejection
        """
        params = parse_call(call, caller=sender)
        with self._lock:
            if not self._config.require_call_signatures:
                return self._execute(params)
            nonces = self._nonces.copy()
            err = verify_call_signature(
                call,
                chain_id=self._config.chain_id,
                signer=sender,
                signature=signature,
                nonces=nonces,
            )
            if err is not None:
                logger.warning("rejected %s call from %s: %s", params.action.value, sender, err)
                raise Unauthorized(err)
            return self._execute(params, staged_nonces=nonces)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def state_root(self, *, include_wallets: bool = True) -> str:
        with self._lock:
            return compute_chef_state_root(self._state, self._wallets if include_wallets else None)

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data snapshot of state, wallets and signer nonces."""
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "state": state_to_dict(self._state),
                "wallets": [
                    [account, token, amount]
                    for (account, token), amount in sorted(self._wallets.get_all_balances().items())
                ],
                "nonces": dict(sorted(self._nonces.get_all().items())),
            }

    def restore(self, snapshot: Mapping[str, Any]) -> None:
        """
        Replace state, wallets and nonces with a `snapshot()` payload.

        Raises:
            ValueError / TypeError / KeyError: malformed snapshot
            ChefInvariantError: restored state violates invariants
        """
        if snapshot.get("version") != SNAPSHOT_VERSION:
            raise ValueError(f"unsupported snapshot version: {snapshot.get('version')!r}")
        state = state_from_dict(snapshot["state"])
        violations = check_all(state)
        if violations:
            raise ChefInvariantError(violations)
        if state.reward_token != self._config.reward_token:
            raise ValueError("snapshot reward token does not match config")

        wallets = BalanceTable()
        for entry in snapshot["wallets"]:
            account, token, amount = entry
            if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
                raise ValueError(f"invalid wallet amount: {amount!r}")
            wallets.set(account, token, amount)

        nonces = NonceTable()
        for signer, last in snapshot.get("nonces", {}).items():
            nonces.set_last(signer, last)

        with self._lock:
            if state.now > self._clock.now():
                logger.warning("restored state is ahead of the clock (state.now=%d)", state.now)
            self._state = state
            self._wallets = wallets
            self._nonces = nonces
        logger.info("restored chef snapshot: %d pools, %d positions", len(state.pools), len(state.positions))
