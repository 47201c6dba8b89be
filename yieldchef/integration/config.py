"""
Host configuration for the chef engine.

`ChefConfig` is loaded from a YAML mapping (PyYAML `safe_load`) and may be
overridden per-field from the environment:

    YIELDCHEF_REWARD_TOKEN, YIELDCHEF_OWNER, YIELDCHEF_CHAIN_ID,
    YIELDCHEF_REWARD_PER_SECOND, YIELDCHEF_EMISSION_START, YIELDCHEF_EMISSION_END,
    YIELDCHEF_ENFORCE_SETTLE_ALL, YIELDCHEF_REQUIRE_CALL_SIGNATURES

The emission rate is given either directly (`reward_per_second`) or as a total
budget spread over the window (`total_reward` + `emission_duration`).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from ..core.chef.math import MAX_AMOUNT, MAX_TIME, reward_rate_for_budget

logger = logging.getLogger(__name__)

ENV_PREFIX = "YIELDCHEF_"

_KNOWN_KEYS = frozenset(
    {
        "reward_token",
        "owner",
        "reward_per_second",
        "total_reward",
        "emission_start",
        "emission_end",
        "emission_duration",
        "enforce_settle_all",
        "chain_id",
        "require_call_signatures",
    }
)


@dataclass(frozen=True)
class ChefConfig:
    reward_token: str
    owner: str
    reward_per_second: int
    emission_start: int
    emission_end: Optional[int] = None
    # Always settle every pool on a weight change, ignoring the caller's flag.
    enforce_settle_all: bool = True
    # Signature domain separation for external calls (bind to a deployment).
    chain_id: str = "yieldchef-local"
    require_call_signatures: bool = False
    # Set when the rate was derived from a budget; the rate then follows the window.
    total_reward: Optional[int] = None


def _require_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")
    return value.strip()


def _require_int(value: Any, *, name: str, lo: int = 0, hi: int = MAX_AMOUNT) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    if value < lo or value > hi:
        raise ValueError(f"{name} out of range [{lo}, {hi}]: {value}")
    return int(value)


def _require_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be a bool")
    return value


def config_from_mapping(raw: Mapping[str, Any]) -> ChefConfig:
    """
    Build a `ChefConfig` from a plain mapping (e.g. parsed YAML).

    Raises:
        ValueError: unknown keys, missing fields or out-of-range values.
    """
    if not isinstance(raw, Mapping):
        raise ValueError("config must be a mapping")
    unknown = sorted(set(raw) - _KNOWN_KEYS)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")

    start = _require_int(raw.get("emission_start"), name="emission_start", hi=MAX_TIME)

    end_raw = raw.get("emission_end")
    duration_raw = raw.get("emission_duration")
    if end_raw is not None and duration_raw is not None:
        raise ValueError("give at most one of emission_end / emission_duration")
    end: Optional[int] = None
    if end_raw is not None:
        end = _require_int(end_raw, name="emission_end", lo=start, hi=MAX_TIME)
    elif duration_raw is not None:
        end = start + _require_int(duration_raw, name="emission_duration", lo=1, hi=MAX_TIME - start)

    rate_raw = raw.get("reward_per_second")
    total_raw = raw.get("total_reward")
    if (rate_raw is None) == (total_raw is None):
        raise ValueError("give exactly one of reward_per_second / total_reward")
    total: Optional[int] = None
    if rate_raw is not None:
        rate = _require_int(rate_raw, name="reward_per_second")
    else:
        if end is None:
            raise ValueError("total_reward requires a bounded emission window")
        total = _require_int(total_raw, name="total_reward")
        rate = reward_rate_for_budget(total, end - start)

    return ChefConfig(
        reward_token=_require_str(raw.get("reward_token"), name="reward_token"),
        owner=_require_str(raw.get("owner"), name="owner"),
        reward_per_second=rate,
        emission_start=start,
        emission_end=end,
        enforce_settle_all=_require_bool(raw.get("enforce_settle_all", True), name="enforce_settle_all"),
        chain_id=_require_str(raw.get("chain_id", ChefConfig.chain_id), name="chain_id"),
        require_call_signatures=_require_bool(
            raw.get("require_call_signatures", False), name="require_call_signatures"
        ),
        total_reward=total,
    )


def _env_int(name: str, default: Optional[int], *, lo: int, hi: int) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        v = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if v < lo or v > hi:
        raise ValueError(f"{name} out of range [{lo}, {hi}]: {v}")
    return v


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_str(name, "")
    if not raw:
        return default
    lowered = raw.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_set(name: str) -> bool:
    return bool(_env_str(name, ""))


def apply_env_overrides(config: ChefConfig) -> ChefConfig:
    """
    Return `config` with any `YIELDCHEF_*` environment variables applied.

    For a budget-derived config (`total_reward` set), moving the start shifts
    the end by the same amount unless `YIELDCHEF_EMISSION_END` is also given,
    and the rate is re-derived from the budget over the new window. A rate
    override is rejected for such configs.

    Raises:
        ValueError: malformed values, an inverted window, or a rate override
            on a budget-derived config.
    """
    p = ENV_PREFIX
    start = _env_int(p + "EMISSION_START", config.emission_start, lo=0, hi=MAX_TIME)
    end = _env_int(p + "EMISSION_END", config.emission_end, lo=0, hi=MAX_TIME)
    rate = _env_int(p + "REWARD_PER_SECOND", config.reward_per_second, lo=0, hi=MAX_AMOUNT)
    assert start is not None and rate is not None

    if config.total_reward is not None:
        if _env_set(p + "REWARD_PER_SECOND"):
            raise ValueError(f"{p}REWARD_PER_SECOND conflicts with the configured total_reward budget")
        assert config.emission_end is not None
        if not _env_set(p + "EMISSION_END"):
            end = start + (config.emission_end - config.emission_start)
            if end > MAX_TIME:
                raise ValueError(f"shifted emission_end out of range: {end}")
        assert end is not None
        if end <= start:
            raise ValueError("total_reward requires emission_end > emission_start")
        rate = reward_rate_for_budget(config.total_reward, end - start)

    if end is not None and end < start:
        raise ValueError("emission_end must be >= emission_start")
    updated = replace(
        config,
        reward_token=_env_str(p + "REWARD_TOKEN", config.reward_token),
        owner=_env_str(p + "OWNER", config.owner),
        chain_id=_env_str(p + "CHAIN_ID", config.chain_id),
        reward_per_second=rate,
        emission_start=start,
        emission_end=end,
        enforce_settle_all=_env_bool(p + "ENFORCE_SETTLE_ALL", config.enforce_settle_all),
        require_call_signatures=_env_bool(p + "REQUIRE_CALL_SIGNATURES", config.require_call_signatures),
    )
    if updated != config:
        logger.info("applied %s* environment overrides to chef config", ENV_PREFIX)
    return updated


def load_config(path: Union[str, Path], *, use_env: bool = True) -> ChefConfig:
    """Load a `ChefConfig` from a YAML file, then apply environment overrides."""
    path = Path(path)
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"{path}: config YAML must be a mapping")
    config = config_from_mapping(raw)
    if use_env:
        config = apply_env_overrides(config)
    logger.info(
        "loaded chef config from %s (reward_token=%s rate=%d/s window=[%d, %s])",
        path,
        config.reward_token,
        config.reward_per_second,
        config.emission_start,
        config.emission_end,
    )
    return config
