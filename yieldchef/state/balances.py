"""
Multi-token wallet balances with deterministic ordering.

Implements BalanceTable[Account, TokenId] -> Amount. The host keeps depositors'
stake tokens and harvested rewards here; the engine itself only reports the
transfers to apply.
"""

from typing import Dict, Iterable, Tuple


# Type aliases
Account = str  # opaque account identifier
TokenId = str  # opaque token identifier
Amount = int  # Non-negative integer (arbitrary precision)


class BalanceTable:
    """
    Deterministic balance table mapping (account, token) -> amount.

    Balances live in a plain dict. Callers sort keys explicitly at
    serialization / hashing boundaries (see `yieldchef/state/state_root.py`).
    """

    def __init__(self):
        self._balances: Dict[Tuple[Account, TokenId], Amount] = {}

    def get(self, account: Account, token: TokenId) -> Amount:
        """Get balance for (account, token). Returns 0 if not found."""
        return self._balances.get((account, token), 0)

    def set(self, account: Account, token: TokenId, amount: Amount) -> None:
        """
        Set balance for (account, token).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Keep the table sparse
            self._balances.pop((account, token), None)
        else:
            self._balances[(account, token)] = amount

    def add(self, account: Account, token: TokenId, delta: Amount) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(account, token)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(account, token, new_balance)

    def subtract(self, account: Account, token: TokenId, delta: Amount) -> None:
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, token, -delta)

    def apply_deltas(self, deltas: Iterable[Tuple[Account, TokenId, int]]) -> None:
        """
        Apply a batch of (account, token, delta) movements in order.

        Not atomic: on ValueError the table may be partially updated, so callers
        stage the batch on a `copy()` first.
        """
        for account, token, delta in deltas:
            self.add(account, token, delta)

    def copy(self) -> "BalanceTable":
        clone = BalanceTable()
        clone._balances = dict(self._balances)
        return clone

    def get_all_balances(self) -> Dict[Tuple[Account, TokenId], Amount]:
        return dict(self._balances)

    def get_balances_for_token(self, token: TokenId) -> Dict[Account, Amount]:
        """All non-zero balances of one token, keyed by account."""
        return {acct: amount for (acct, t), amount in self._balances.items() if t == token}

    def total_supply(self, token: TokenId) -> Amount:
        return sum(amount for (_acct, t), amount in self._balances.items() if t == token)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BalanceTable):
            return NotImplemented
        return self._balances == other._balances

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
