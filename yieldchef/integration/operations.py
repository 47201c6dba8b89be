"""
External call parsing and signature checks.

A call is a JSON-like object:

    {"op": "deposit", "args": {"pool_id": 0, "amount": 100}, "nonce": 1}

`parse_call` turns it into engine `ActionParams` (unknown ops or fields are
rejected). When the host requires signatures, the caller's BLS public key signs

    sha256(domain_sep("chef_call_sig:<chain_id>") || canonical_json(signing_dict))

where the signing dict binds op, args, signer and nonce.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import Any, Dict, Optional

from ..core.chef.types import Action, ActionParams
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, hex_to_bytes
from ..state.nonces import NonceTable

try:
    from py_ecc.bls import G2Basic  # type: ignore

    _BLS_AVAILABLE = True
except Exception:  # pragma: no cover - optional dependency
    G2Basic = None  # type: ignore[assignment]
    _BLS_AVAILABLE = False


# op name -> (action, allowed arg fields)
_OPS: Dict[str, tuple[Action, frozenset[str]]] = {
    "add_pool": (Action.ADD_POOL, frozenset({"stake_token", "weight", "settle_all"})),
    "set_weight": (Action.SET_WEIGHT, frozenset({"pool_id", "weight", "settle_all"})),
    "update_pool": (Action.UPDATE_POOL, frozenset({"pool_id"})),
    "mass_update_pools": (Action.MASS_UPDATE_POOLS, frozenset()),
    "deposit": (Action.DEPOSIT, frozenset({"pool_id", "amount"})),
    "withdraw": (Action.WITHDRAW, frozenset({"pool_id", "amount"})),
    "emergency_withdraw": (Action.EMERGENCY_WITHDRAW, frozenset({"pool_id"})),
    "fund_vault": (Action.FUND_VAULT, frozenset({"amount"})),
    "drain_vault": (Action.DRAIN_VAULT, frozenset({"amount"})),
    "emergency_fast_withdraw": (Action.DRAIN_VAULT, frozenset({"amount"})),
    "set_migrator": (Action.SET_MIGRATOR, frozenset({"target"})),
    "transfer_ownership": (Action.TRANSFER_OWNERSHIP, frozenset({"target"})),
}

_CALL_KEYS = frozenset({"op", "args", "nonce"})
_MAX_STR = 256


def _require_str(value: Any, *, name: str, non_empty: bool = True, max_len: int = _MAX_STR) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    if non_empty and not value:
        raise ValueError(f"{name} must be non-empty")
    if max_len > 0 and len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str, non_negative: bool = True) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_dict_str_keys(value: Any, *, name: str) -> Dict[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{name} must be an object")
    for k in value.keys():
        if not isinstance(k, str):
            raise ValueError(f"{name} keys must be strings")
    return dict(value)


def supported_ops() -> list[str]:
    return sorted(_OPS)


def parse_call(call: Mapping[str, Any], *, caller: str) -> ActionParams:
    """
    Parse an external call into engine parameters for `caller`.

    Raises:
        ValueError: If the call structure, op name or any field is invalid
    """
    call = _require_dict_str_keys(call, name="call")
    extra = set(call) - _CALL_KEYS
    if extra:
        raise ValueError(f"unknown call fields: {', '.join(sorted(extra))}")
    op = _require_str(call.get("op"), name="op")
    entry = _OPS.get(op)
    if entry is None:
        raise ValueError(f"unknown op: {op!r}")
    action, allowed = entry

    args = _require_dict_str_keys(call.get("args", {}), name="args")
    unknown = set(args) - allowed
    if unknown:
        raise ValueError(f"unknown args for {op}: {', '.join(sorted(unknown))}")

    fields: Dict[str, Any] = {"action": action, "caller": _require_str(caller, name="caller")}
    if "pool_id" in allowed:
        fields["pool_id"] = _require_int(args.get("pool_id"), name="pool_id")
    if "amount" in allowed:
        fields["amount"] = _require_int(args.get("amount"), name="amount")
    if "weight" in allowed:
        fields["weight"] = _require_int(args.get("weight"), name="weight")
    if "stake_token" in allowed:
        fields["stake_token"] = _require_str(args.get("stake_token"), name="stake_token")
    if "settle_all" in args:
        settle_all = args["settle_all"]
        if not isinstance(settle_all, bool):
            raise ValueError("settle_all must be a bool")
        fields["settle_all"] = settle_all
    if "target" in allowed:
        target = args.get("target")
        if action is Action.SET_MIGRATOR and target is None:
            target = ""
        fields["target"] = _require_str(target, name="target", non_empty=action is Action.TRANSFER_OWNERSHIP)
    return ActionParams(**fields)


def call_signing_dict(call: Mapping[str, Any], *, signer: str, nonce: int) -> Dict[str, Any]:
    return {
        "op": _require_str(call.get("op"), name="op"),
        "args": _require_dict_str_keys(call.get("args", {}), name="args"),
        "signer": _require_str(signer, name="signer"),
        "nonce": _require_int(nonce, name="nonce"),
    }


def call_signing_bytes(call: Mapping[str, Any], *, chain_id: str, signer: str, nonce: int) -> bytes:
    """The 32-byte message hash a call signature covers."""
    payload = canonical_json_bytes(call_signing_dict(call, signer=signer, nonce=nonce))
    msg = domain_sep_bytes(f"chef_call_sig:{chain_id}", version=1) + payload
    return hashlib.sha256(msg).digest()


def verify_call_signature(
    call: Mapping[str, Any],
    *,
    chain_id: str,
    signer: str,
    signature: Optional[str],
    nonces: NonceTable,
) -> Optional[str]:
    """
    Verify and consume a call signature (fail-closed).

    `signer` is the caller's 48-byte BLS public key as hex. The nonce is
    recorded in `nonces` only after the signature verifies; callers that may
    still reject the call pass a staged copy. Returns an error string, or
    None when the call is authorized.
    """
    if not _BLS_AVAILABLE:
        return "py_ecc (BLS) not available"
    if not signature:
        return "missing signature"

    nonce = call.get("nonce")
    if not isinstance(nonce, int) or isinstance(nonce, bool):
        return "nonce must be an int"
    if nonce != nonces.next_expected(signer):
        return "nonce invalid"

    try:
        pubkey_bytes = hex_to_bytes(signer, name="signer")
        sig_bytes = hex_to_bytes(signature, name="signature")
    except (TypeError, ValueError) as exc:
        return str(exc)
    if len(pubkey_bytes) != 48:
        return "signer must be a 48-byte BLS public key"
    if len(sig_bytes) != 96:
        return "signature must be 96 bytes"

    try:
        msg_hash = call_signing_bytes(call, chain_id=chain_id, signer=signer, nonce=nonce)
        ok = bool(G2Basic.Verify(pubkey_bytes, msg_hash, sig_bytes))  # type: ignore[attr-defined]
    except Exception as exc:
        return f"signature verification error: {exc}"
    if not ok:
        return "invalid signature"

    nonces.set_last(signer, nonce)
    return None
