"""
Transfer repository.

Data access layer for Transfer model.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accrual.models.transfer import Transfer
from accrual.repositories.base import BaseRepository


class TransferRepository(BaseRepository[Transfer]):
    """Transfer repository with journal queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transfer repository."""
        super().__init__(Transfer, session)

    async def get_by_reference(
        self, reference_id: str, type: Optional[str] = None
    ) -> List[Transfer]:
        """
        Get transfers belonging to a deposit record.

        Args:
            reference_id: Deposit record id
            type: Optional transfer type filter

        Returns:
            List of transfers, oldest first
        """
        filters = {"reference_id": reference_id}
        if type:
            filters["type"] = type

        return await self.find_by(**filters)

    async def get_by_account(self, asset: str, account: str) -> List[Transfer]:
        """Get transfers where the account paid or received, oldest first."""
        stmt = (
            select(Transfer)
            .where(Transfer.asset == asset)
            .where((Transfer.payer == account) | (Transfer.payee == account))
            .order_by(Transfer.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_total_by_type(self, asset: str, type: str) -> int:
        """Sum of transferred amounts of one type."""
        stmt = (
            select(Transfer.amount)
            .where(Transfer.asset == asset)
            .where(Transfer.type == type)
        )
        return sum((await self.session.scalars(stmt)).all())
