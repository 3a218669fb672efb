"""
Database enums.

Centralized enums used across database models.
"""

from enum import StrEnum


class LockUpTier(StrEnum):
    """Lock-up tier selectable at deposit time."""

    SHORT = "short"  # 45 days
    LONG = "long"  # 180 days


class DepositStatus(StrEnum):
    """Deposit record lifecycle values."""

    ACTIVE = "active"
    WITHDRAWN = "withdrawn"  # Terminal, principal zeroed in place


class TransferType(StrEnum):
    """Token movement type values."""

    MINT = "mint"
    DEPOSIT = "deposit"  # Depositor -> custody
    PAYOUT = "payout"  # Custody -> depositor
    FUNDING = "funding"  # Operator -> custody
    TRANSFER = "transfer"
