"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger, goal, challenge and rewards models used by
``finquest``.
"""

from .finance import Achievement, Base, Challenge, Goal, Transaction, UserProfile

__all__ = [
    "Base",
    "Achievement",
    "Challenge",
    "Goal",
    "Transaction",
    "UserProfile",
]
