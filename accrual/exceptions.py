"""
Accrual errors.

Every business-rule violation is a ValueError subclass; none is worth
retrying without changed input or a later time.
"""


class AccrualError(ValueError):
    """Base class for ledger and engine errors."""

    default_message = "Accrual operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidLockUpSelectionError(AccrualError):
    """Deposit called with zero or two lock-up flags set."""

    default_message = "Must be one or the other"


class InvalidAmountError(AccrualError):
    """Amount is not a positive 256-bit integer of smallest units."""

    default_message = "Amount must be positive"


class InvalidAccountError(AccrualError):
    """Account is not a valid address."""

    default_message = "Invalid account address"


class InvalidTimestampError(AccrualError):
    """Operation time is before the unix epoch."""

    default_message = "Timestamp must not be negative"


class NoBalanceError(AccrualError):
    """Record does not exist for the caller or is already withdrawn."""

    default_message = "No balance to withdraw"


class LockUpNotElapsedError(AccrualError):
    """Withdrawal attempted before withdrawable_at."""

    default_message = "Cannot withdraw yet"

    def __init__(
        self, withdrawable_at: int | None = None, now: int | None = None
    ) -> None:
        super().__init__()
        self.withdrawable_at = withdrawable_at
        self.now = now


class RateNotConfiguredError(AccrualError):
    """Rate table has no value for the requested cell."""

    default_message = "Interest rate is not configured"


class TransferFailedError(AccrualError):
    """Value asset refused the transfer (balance or allowance too low)."""

    default_message = "Transfer failed"


class RecordIdCollisionError(AccrualError):
    """Derived record id already exists. Never expected."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Record id collision: {record_id}")
        self.record_id = record_id
