"""
Core reward-accrual algorithms
"""

from .clock import DAY, Clock, ManualClock, SystemClock

__all__ = [
    "DAY",
    "Clock",
    "ManualClock",
    "SystemClock",
]
