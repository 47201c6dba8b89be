"""State construction and serialization for the chef engine.

`initial_state()` builds an empty registry for a reward token and emission window.

Round-trip property (tested): `state_from_dict(state_to_dict(s)) == s` for all valid states.
The dict form is plain JSON data (ints, strings, lists, None) with positions
sorted by ``(pool_id, account)``, so it can be fed to `canonical_json_bytes`.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .math import MAX_AMOUNT, MAX_TIME
from .types import Account, ChefState, Pool, Position, TokenId

STATE_SCHEMA_VERSION = 1

_POOL_FIELDS: tuple[str, ...] = tuple(Pool.__dataclass_fields__)

_SCALAR_INT_FIELDS: tuple[str, ...] = (
    "reward_per_second",
    "emission_start",
    "now",
    "total_alloc_weight",
    "vault_balance",
    "total_funded",
    "total_paid",
    "total_drained",
    "total_shortfall",
)


def _require_uint(value: Any, *, name: str, hi: int = MAX_AMOUNT) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0 or value > hi:
        raise ValueError(f"{name} out of range: {value}")
    return int(value)  # normalize int subclasses


def _require_str(value: Any, *, name: str, allow_empty: bool = False) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if not allow_empty and not value:
        raise ValueError(f"{name} must be non-empty")
    return value


def initial_state(
    *,
    reward_token: TokenId,
    owner: Account,
    reward_per_second: int,
    emission_start: int,
    emission_end: Optional[int] = None,
    enforce_settle_all: bool = True,
    now: int = 0,
) -> ChefState:
    """Return an empty engine state.

    Raises:
        TypeError / ValueError: on malformed emission parameters.
    """
    _require_str(reward_token, name="reward_token")
    _require_str(owner, name="owner")
    _require_uint(reward_per_second, name="reward_per_second")
    _require_uint(emission_start, name="emission_start", hi=MAX_TIME)
    _require_uint(now, name="now", hi=MAX_TIME)
    if emission_end is not None:
        _require_uint(emission_end, name="emission_end", hi=MAX_TIME)
        if emission_end < emission_start:
            raise ValueError("emission_end must be >= emission_start")
    return ChefState(
        reward_token=reward_token,
        owner=owner,
        reward_per_second=reward_per_second,
        emission_start=emission_start,
        emission_end=emission_end,
        enforce_settle_all=bool(enforce_settle_all),
        now=now,
    )


def state_to_dict(state: ChefState) -> dict[str, Any]:
    """Serialize a ChefState to a plain, JSON-compatible dict."""
    out: dict[str, Any] = {
        "schema_version": STATE_SCHEMA_VERSION,
        "reward_token": state.reward_token,
        "owner": state.owner,
        "migrator": state.migrator,
        "emission_end": state.emission_end,
        "enforce_settle_all": state.enforce_settle_all,
    }
    for name in _SCALAR_INT_FIELDS:
        out[name] = getattr(state, name)
    out["pools"] = [{name: getattr(p, name) for name in _POOL_FIELDS} for p in state.pools]
    out["positions"] = [
        [pool_id, account, pos.amount, pos.reward_debt]
        for (pool_id, account), pos in sorted(state.positions.items())
    ]
    return out


def state_from_dict(d: Mapping[str, Any]) -> ChefState:
    """Deserialize a dict produced by `state_to_dict`.

    Raises KeyError on missing fields, TypeError/ValueError on malformed values.
    Invariants are not checked here; see `invariants.check_all`.
    """
    version = d.get("schema_version", STATE_SCHEMA_VERSION)
    if version != STATE_SCHEMA_VERSION:
        raise ValueError(f"unsupported state schema_version: {version!r}")

    pools = []
    for i, raw in enumerate(d["pools"]):
        pools.append(
            Pool(
                stake_token=_require_str(raw["stake_token"], name=f"pools[{i}].stake_token"),
                alloc_weight=_require_uint(raw["alloc_weight"], name=f"pools[{i}].alloc_weight"),
                last_reward_time=_require_uint(
                    raw["last_reward_time"], name=f"pools[{i}].last_reward_time", hi=MAX_TIME,
                ),
                acc_reward_per_share=_require_uint(
                    raw["acc_reward_per_share"], name=f"pools[{i}].acc_reward_per_share", hi=2**512,
                ),
                total_staked=_require_uint(raw["total_staked"], name=f"pools[{i}].total_staked"),
            )
        )

    positions: dict[tuple[int, Account], Position] = {}
    for i, entry in enumerate(d["positions"]):
        if not isinstance(entry, (list, tuple)) or len(entry) != 4:
            raise ValueError(f"positions[{i}] must be [pool_id, account, amount, reward_debt]")
        pool_id = _require_uint(entry[0], name=f"positions[{i}].pool_id")
        account = _require_str(entry[1], name=f"positions[{i}].account")
        key = (pool_id, account)
        if key in positions:
            raise ValueError(f"duplicate position {key!r}")
        positions[key] = Position(
            amount=_require_uint(entry[2], name=f"positions[{i}].amount"),
            reward_debt=_require_uint(entry[3], name=f"positions[{i}].reward_debt", hi=2**512),
        )

    emission_end = d["emission_end"]
    migrator = d["migrator"]
    enforce = d["enforce_settle_all"]
    if not isinstance(enforce, bool):
        raise TypeError("enforce_settle_all must be a bool")

    ints = {
        name: _require_uint(d[name], name=name, hi=MAX_TIME if name in ("emission_start", "now") else 2**512)
        for name in _SCALAR_INT_FIELDS
    }
    return ChefState(
        reward_token=_require_str(d["reward_token"], name="reward_token"),
        owner=_require_str(d["owner"], name="owner", allow_empty=True),
        migrator=None if migrator is None else _require_str(migrator, name="migrator"),
        emission_end=None if emission_end is None else _require_uint(emission_end, name="emission_end", hi=MAX_TIME),
        enforce_settle_all=enforce,
        pools=tuple(pools),
        positions=positions,
        **ints,
    )
