"""
Deposit record model.

Represents one time-locked deposit of the value asset.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from accrual.models.base import Base, TimestampMixin
from accrual.models.enums import DepositStatus
from accrual.models.types import TokenAmount

FORTY_FIVE_DAYS = 45 * 24 * 60 * 60
ONE_HUNDRED_EIGHTY_DAYS = 180 * 24 * 60 * 60


class DepositRecord(TimestampMixin, Base):
    """Deposit record - principal locked until withdrawable_at."""

    __tablename__ = "deposit_records"
    __table_args__ = (
        UniqueConstraint(
            "account", "sequence", name="uq_deposit_records_account_sequence"
        ),
        CheckConstraint(
            'principal >= 0', name='check_deposit_record_principal_non_negative'
        ),
        CheckConstraint(
            f'lock_up_duration IN ({FORTY_FIVE_DAYS}, {ONE_HUNDRED_EIGHTY_DAYS})',
            name='check_deposit_record_lock_up_duration'
        ),
        CheckConstraint(
            'withdrawable_at = deposited_at + lock_up_duration',
            name='check_deposit_record_withdrawable_at'
        ),
        Index("idx_deposit_records_status_withdrawable", "status", "withdrawable_at"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Opaque keccak-256 id, 0x-prefixed hex
    record_id: Mapped[str] = mapped_column(
        String(66), nullable=False, unique=True, index=True
    )

    # Owner (checksummed address)
    account: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )
    # Per-account creation order, starts at 0
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    # Amount in smallest units of the value asset
    principal: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    # Unix seconds
    deposited_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    withdrawable_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    lock_up_duration: Mapped[int] = mapped_column(BigInteger, nullable=False)

    boosted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DepositStatus.ACTIVE.value, index=True
    )  # active, withdrawn
    withdrawn_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    paid_amount: Mapped[int | None] = mapped_column(TokenAmount, nullable=True)

    @property
    def is_active(self) -> bool:
        """True while the record still holds principal."""
        return self.principal > 0

    def is_withdrawable(self, now: int) -> bool:
        """Check whether the lock-up has elapsed at the given time."""
        return self.is_active and now >= self.withdrawable_at

    @property
    def lock_up_days(self) -> int:
        return self.lock_up_duration // (24 * 60 * 60)

    @property
    def deposited_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.deposited_at, UTC)

    @property
    def withdrawable_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.withdrawable_at, UTC)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<DepositRecord(record_id={self.record_id}, account={self.account}, "
            f"principal={self.principal}, lock_up_days={self.lock_up_days}, "
            f"boosted={self.boosted}, status={self.status})>"
        )
