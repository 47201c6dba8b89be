"""
Nonce table for signed-call replay protection (v1).

We track, per signer, the last accepted call nonce. Policy is defined by the
integration layer (currently: strict sequential nonces starting at 1).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

from .balances import Account

_U64_MAX = 2**64 - 1


@dataclass
class NonceTable:
    """Mutable mapping: signer -> last_used_nonce."""

    _last: Dict[Account, int] = field(default_factory=dict)

    def get_last(self, signer: Account) -> int:
        return int(self._last.get(signer, 0))

    def next_expected(self, signer: Account) -> int:
        return self.get_last(signer) + 1

    def set_last(self, signer: Account, last_nonce: int) -> None:
        if not isinstance(last_nonce, int) or isinstance(last_nonce, bool) or last_nonce < 0:
            raise TypeError("last_nonce must be a non-negative int")
        if last_nonce > _U64_MAX:
            raise TypeError("last_nonce must fit in u64")
        if last_nonce < self.get_last(signer):
            raise ValueError(f"nonce for {signer!r} cannot move backwards")
        self._last[signer] = int(last_nonce)

    def get_all(self) -> Mapping[Account, int]:
        return dict(self._last)

    def copy(self) -> "NonceTable":
        return NonceTable(dict(self._last))
