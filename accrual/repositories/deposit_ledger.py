"""
Deposit ledger.

Data access layer for DepositRecord: owns the records keyed by
(account, record_id) and each account's ordered list of record ids.
"""

from collections.abc import AsyncIterator
from typing import List, Optional

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from accrual.config.settings import settings
from accrual.exceptions import RecordIdCollisionError
from accrual.models.deposit_record import DepositRecord
from accrual.models.enums import DepositStatus
from accrual.repositories.base import BaseRepository
from accrual.utils.record_id import generate_record_id


class DepositLedger(BaseRepository[DepositRecord]):
    """Deposit ledger with record lifecycle queries."""

    def __init__(
        self, session: AsyncSession, domain: str | None = None
    ) -> None:
        """
        Initialize deposit ledger.

        Args:
            session: Async database session
            domain: Record id domain separator (default from settings)
        """
        super().__init__(DepositRecord, session)
        self.domain = domain or settings.record_id_domain

    async def next_sequence(self, account: str) -> int:
        """
        Get the sequence number the account's next record will use.

        Records are never deleted, so the count of existing records is
        monotonic per account.
        """
        return await self.count(account=account)

    async def create_record(
        self,
        account: str,
        principal: int,
        lock_up_duration: int,
        boosted: bool,
        now: int,
    ) -> DepositRecord:
        """
        Create a deposit record with a fresh id.

        Args:
            account: Checksummed owner address
            principal: Deposited amount (smallest units)
            lock_up_duration: Lock-up in seconds
            boosted: Membership boost flag
            now: Deposit time (unix seconds)

        Returns:
            Created record

        Raises:
            RecordIdCollisionError: If the derived id already exists
        """
        sequence = await self.next_sequence(account)
        record_id = generate_record_id(account, sequence, now, self.domain)

        if await self.exists(record_id=record_id):
            logger.critical(
                f"Record id collision: {record_id} "
                f"(account={account}, sequence={sequence})"
            )
            raise RecordIdCollisionError(record_id)

        return await self.create(
            record_id=record_id,
            account=account,
            sequence=sequence,
            principal=principal,
            deposited_at=now,
            withdrawable_at=now + lock_up_duration,
            lock_up_duration=lock_up_duration,
            boosted=boosted,
            status=DepositStatus.ACTIVE.value,
        )

    async def get_record(
        self, account: str, record_id: str
    ) -> Optional[DepositRecord]:
        """
        Get record by owner and id.

        Args:
            account: Owner address
            record_id: Record id

        Returns:
            Record or None (also when the id belongs to another account)
        """
        return await self.get_by(account=account, record_id=record_id.lower())

    async def list_ids(self, account: str) -> List[str]:
        """
        Get every record id created for the account, in creation order.

        Retired records stay listed.
        """
        stmt = (
            select(DepositRecord.record_id)
            .where(DepositRecord.account == account)
            .order_by(DepositRecord.sequence)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def iter_ids(
        self, account: str, batch_size: int = 100, start: int = 0
    ) -> AsyncIterator[str]:
        """
        Lazily iterate record ids in creation order.

        Args:
            account: Owner address
            batch_size: Ids fetched per query
            start: Sequence number to resume from

        Yields:
            Record ids
        """
        cursor = start
        while True:
            stmt = (
                select(DepositRecord.record_id, DepositRecord.sequence)
                .where(DepositRecord.account == account)
                .where(DepositRecord.sequence >= cursor)
                .order_by(DepositRecord.sequence)
                .limit(batch_size)
            )
            rows = (await self.session.execute(stmt)).all()
            if not rows:
                return
            for record_id, sequence in rows:
                yield record_id
                cursor = sequence + 1

    async def retire_record(
        self,
        account: str,
        record_id: str,
        now: int,
        paid_amount: int,
    ) -> bool:
        """
        Zero the record's principal in place.

        The update only matches a record that still holds principal, so of
        two concurrent retirements exactly one succeeds. Loaded instances are
        not synchronized; refresh them after a successful call.

        Args:
            account: Owner address
            record_id: Record id
            now: Withdrawal time (unix seconds)
            paid_amount: Payout transferred for this record

        Returns:
            True if the record was retired by this call
        """
        stmt = (
            update(DepositRecord)
            .where(DepositRecord.account == account)
            .where(DepositRecord.record_id == record_id.lower())
            .where(DepositRecord.principal > 0)
            .values(
                principal=0,
                status=DepositStatus.WITHDRAWN.value,
                withdrawn_at=now,
                paid_amount=paid_amount,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def get_active_records(self) -> List[DepositRecord]:
        """Get all records still holding principal."""
        return await self.find_by(status=DepositStatus.ACTIVE.value)

    async def get_outstanding_principal(self) -> int:
        """Sum of principal over active records."""
        stmt = select(DepositRecord.principal).where(
            DepositRecord.status == DepositStatus.ACTIVE.value
        )
        # Amounts exceed 64 bits, so the sum is taken in Python
        return sum((await self.session.scalars(stmt)).all())
