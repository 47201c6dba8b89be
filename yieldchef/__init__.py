"""
yieldchef: weighted, time-based reward emission over staking pools.
"""

__version__ = "0.1.0"
