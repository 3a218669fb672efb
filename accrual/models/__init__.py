"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from accrual.models.base import Base
from accrual.models.deposit_record import (
    FORTY_FIVE_DAYS,
    ONE_HUNDRED_EIGHTY_DAYS,
    DepositRecord,
)
from accrual.models.enums import DepositStatus, LockUpTier, TransferType
from accrual.models.token_balance import TokenAllowance, TokenBalance
from accrual.models.transfer import Transfer

__all__ = [
    "Base",
    # Ledger
    "DepositRecord",
    "FORTY_FIVE_DAYS",
    "ONE_HUNDRED_EIGHTY_DAYS",
    # Token ledger
    "TokenAllowance",
    "TokenBalance",
    "Transfer",
    # Enums
    "DepositStatus",
    "LockUpTier",
    "TransferType",
]
