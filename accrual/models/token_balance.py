"""
Token balance models.

Balances and allowances of the SQL-backed token ledger.
"""

from sqlalchemy import (
    CheckConstraint,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from accrual.models.base import Base, TimestampMixin
from accrual.models.types import TokenAmount


class TokenBalance(TimestampMixin, Base):
    """Balance of one asset held by one account."""

    __tablename__ = "token_balances"
    __table_args__ = (
        UniqueConstraint("asset", "account", name="uq_token_balances_asset_account"),
        CheckConstraint(
            'balance >= 0', name='check_token_balance_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    asset: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    account: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    balance: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TokenBalance(asset={self.asset}, account={self.account}, "
            f"balance={self.balance})>"
        )


class TokenAllowance(TimestampMixin, Base):
    """Amount a spender may move out of an owner's balance."""

    __tablename__ = "token_allowances"
    __table_args__ = (
        UniqueConstraint(
            "asset", "owner", "spender", name="uq_token_allowances_asset_owner_spender"
        ),
        CheckConstraint(
            'amount >= 0', name='check_token_allowance_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    asset: Mapped[str] = mapped_column(String(16), nullable=False)
    owner: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    spender: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[int] = mapped_column(TokenAmount, nullable=False, default=0)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TokenAllowance(asset={self.asset}, owner={self.owner}, "
            f"spender={self.spender}, amount={self.amount})>"
        )
