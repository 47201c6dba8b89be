"""
Wallet balances, canonical encoding and state commitments
"""

from .balances import BalanceTable
from .state_root import compute_chef_state_root

__all__ = [
    "BalanceTable",
    "compute_chef_state_root",
]
