"""
Token balance repository.

Data access layer for TokenBalance and TokenAllowance models.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accrual.models.token_balance import TokenAllowance, TokenBalance
from accrual.repositories.base import BaseRepository


class TokenBalanceRepository(BaseRepository[TokenBalance]):
    """Token balance repository with row locking."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize token balance repository."""
        super().__init__(TokenBalance, session)

    async def get_balance(self, asset: str, account: str) -> int:
        """
        Get balance without locking.

        Args:
            asset: Asset symbol
            account: Account address

        Returns:
            Balance in smallest units (0 if the account never held the asset)
        """
        entry = await self.get_by(asset=asset, account=account)
        return entry.balance if entry else 0

    async def get_for_update(self, asset: str, account: str) -> TokenBalance:
        """
        Get balance row with a pessimistic lock, creating it if missing.

        Args:
            asset: Asset symbol
            account: Account address

        Returns:
            Locked balance row
        """
        stmt = (
            select(TokenBalance)
            .where(TokenBalance.asset == asset)
            .where(TokenBalance.account == account)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        entry = result.scalar_one_or_none()
        if entry is None:
            entry = await self.create(asset=asset, account=account, balance=0)
        return entry

    async def get_total_supply(self, asset: str) -> int:
        """Sum of all balances of an asset."""
        stmt = select(TokenBalance.balance).where(TokenBalance.asset == asset)
        return sum((await self.session.scalars(stmt)).all())


class TokenAllowanceRepository(BaseRepository[TokenAllowance]):
    """Token allowance repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize token allowance repository."""
        super().__init__(TokenAllowance, session)

    async def get_allowance(self, asset: str, owner: str, spender: str) -> int:
        """Get remaining allowance (0 if never approved)."""
        entry = await self.get_by(asset=asset, owner=owner, spender=spender)
        return entry.amount if entry else 0

    async def set_allowance(
        self, asset: str, owner: str, spender: str, amount: int
    ) -> TokenAllowance:
        """
        Set allowance, replacing any previous value.

        Args:
            asset: Asset symbol
            owner: Account whose balance may be spent
            spender: Account allowed to spend
            amount: New allowance

        Returns:
            Allowance row
        """
        entry = await self.get_by(asset=asset, owner=owner, spender=spender)
        if entry is None:
            return await self.create(
                asset=asset, owner=owner, spender=spender, amount=amount
            )
        entry.amount = amount
        await self.session.flush()
        return entry
