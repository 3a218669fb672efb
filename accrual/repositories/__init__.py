"""
Repositories.

Data access layer for all models.
"""

from accrual.repositories.base import BaseRepository
from accrual.repositories.deposit_ledger import DepositLedger
from accrual.repositories.token_balance_repository import (
    TokenAllowanceRepository,
    TokenBalanceRepository,
)
from accrual.repositories.transfer_repository import TransferRepository

__all__ = [
    "BaseRepository",
    "DepositLedger",
    "TokenAllowanceRepository",
    "TokenBalanceRepository",
    "TransferRepository",
]
