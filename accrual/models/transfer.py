"""
Transfer model.

Journal of every token movement.
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from accrual.models.base import Base, utcnow
from accrual.models.types import TokenAmount


class Transfer(Base):
    """Transfer model - one token movement between two accounts."""

    __tablename__ = "transfers"
    __table_args__ = (
        CheckConstraint(
            'amount > 0', name='check_transfer_amount_positive'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    asset: Mapped[str] = mapped_column(String(16), nullable=False, index=True)

    # Transfer type
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )  # mint, deposit, payout, funding, transfer

    # Null payer means minted
    payer: Mapped[str | None] = mapped_column(String(42), nullable=True, index=True)
    payee: Mapped[str] = mapped_column(String(42), nullable=False, index=True)

    amount: Mapped[int] = mapped_column(TokenAmount, nullable=False)

    # Deposit record id the movement belongs to (if any)
    reference_id: Mapped[str | None] = mapped_column(
        String(66), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Transfer(id={self.id}, asset={self.asset}, type={self.type}, "
            f"payer={self.payer}, payee={self.payee}, amount={self.amount})>"
        )
