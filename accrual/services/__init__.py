"""
Services.

Business logic layer.
"""

from accrual.exceptions import (
    AccrualError,
    InvalidAccountError,
    InvalidAmountError,
    InvalidLockUpSelectionError,
    LockUpNotElapsedError,
    NoBalanceError,
    RateNotConfiguredError,
    RecordIdCollisionError,
    TransferFailedError,
)
from accrual.services.accrual_service import AccrualService
from accrual.services.custody_service import CustodyReport, CustodyService
from accrual.services.rate_policy import RatePolicy, RateTable
from accrual.services.token_service import (
    MembershipAsset,
    SqlToken,
    ValueAsset,
)

__all__ = [
    # Core
    "AccrualService",
    "CustodyReport",
    "CustodyService",
    "RatePolicy",
    "RateTable",
    # Collaborators
    "MembershipAsset",
    "SqlToken",
    "ValueAsset",
    # Errors
    "AccrualError",
    "InvalidAccountError",
    "InvalidAmountError",
    "InvalidLockUpSelectionError",
    "LockUpNotElapsedError",
    "NoBalanceError",
    "RateNotConfiguredError",
    "RecordIdCollisionError",
    "TransferFailedError",
]
