"""
Accrual service.

Deposit and withdrawal orchestration for time-locked interest deposits.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from accrual.config.settings import settings
from accrual.exceptions import (
    AccrualError,
    InvalidAccountError,
    InvalidAmountError,
    InvalidLockUpSelectionError,
    InvalidTimestampError,
    LockUpNotElapsedError,
    NoBalanceError,
    TransferFailedError,
)
from accrual.models.deposit_record import DepositRecord
from accrual.models.enums import LockUpTier, TransferType
from accrual.repositories.deposit_ledger import DepositLedger
from accrual.services.rate_policy import RatePolicy
from accrual.services.token_service import MembershipAsset, SqlToken, ValueAsset
from accrual.utils.ledger_lock import LedgerLock
from accrual.utils.validation import normalize_address, validate_amount


class AccrualService:
    """Accrual service handles the deposit record lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        value_asset: ValueAsset | None = None,
        membership_asset: MembershipAsset | None = None,
        rate_policy: RatePolicy | None = None,
        custody_address: str | None = None,
    ) -> None:
        """
        Initialize accrual service.

        Args:
            session: Async database session
            value_asset: Deposit/payout asset (default: SQL token from settings)
            membership_asset: Boost asset (default: SQL token from settings)
            rate_policy: Rate policy (default: rates from settings)
            custody_address: Account holding deposits (default from settings)
        """
        self.session = session
        self.ledger = DepositLedger(session)
        self.value_asset = value_asset or SqlToken(
            session, settings.value_asset_symbol
        )
        self.membership_asset = membership_asset or SqlToken(
            session, settings.membership_asset_symbol
        )
        self.rate_policy = rate_policy or RatePolicy()
        self.custody_address = normalize_address(
            custody_address or settings.custody_address
        )
        self.lock = LedgerLock(session)

    @staticmethod
    def _normalize_account(account: str) -> str:
        try:
            return normalize_address(account)
        except ValueError as e:
            raise InvalidAccountError(str(e)) from e

    @staticmethod
    def _check_time(now: int) -> None:
        if now < 0:
            raise InvalidTimestampError()

    async def _check_funds(
        self, payer: str, amount: int, spender: str | None = None
    ) -> None:
        """
        Reject a transfer the payer cannot cover before anything is written.

        The value asset checks again when it moves the funds.

        Raises:
            TransferFailedError: If allowance or balance is insufficient
        """
        if spender is not None and spender != payer:
            allowance = await self.value_asset.allowance(payer, spender)
            if allowance < amount:
                raise TransferFailedError(
                    f"Insufficient allowance: {allowance} < {amount}"
                )

        balance = await self.value_asset.balance_of(payer)
        if balance < amount:
            raise TransferFailedError(
                f"Insufficient balance: {balance} < {amount}"
            )

    async def _end_rejected(
        self, wrote: bool, record: DepositRecord | None = None
    ) -> None:
        """
        Close the transaction of a rejected call.

        Before any write the read-only transaction is committed, which
        (with expire_on_commit=False) leaves every instance loaded in the
        session usable. After a write the transaction is rolled back and
        the record the call touched is reloaded.
        """
        if not wrote:
            await self.session.commit()
            return

        await self.session.rollback()
        if record is not None:
            await self.session.refresh(record)

    @staticmethod
    def select_tier(choose_short: bool, choose_long: bool) -> LockUpTier:
        """
        Resolve the two lock-up flags to a tier.

        Raises:
            InvalidLockUpSelectionError: Unless exactly one flag is set
        """
        if bool(choose_short) == bool(choose_long):
            raise InvalidLockUpSelectionError()
        return LockUpTier.SHORT if choose_short else LockUpTier.LONG

    async def deposit(
        self,
        account: str,
        amount: int,
        choose_short: bool,
        choose_long: bool,
        now: int,
    ) -> DepositRecord:
        """
        Lock amount of the value asset for the selected period.

        Funds are pulled into custody first and the record is created
        after; both commit together or not at all.

        Args:
            account: Depositor address
            amount: Amount in smallest units
            choose_short: Select the 45-day lock-up
            choose_long: Select the 180-day lock-up
            now: Deposit time (unix seconds)

        Returns:
            Created deposit record

        Raises:
            InvalidLockUpSelectionError: Unless exactly one flag is set
            InvalidAmountError: If amount is not positive
            InvalidAccountError: If account is not a valid address
            InvalidTimestampError: If now is negative
            TransferFailedError: If the value asset refuses the pull
        """
        tier = self.select_tier(choose_short, choose_long)
        if not validate_amount(amount):
            raise InvalidAmountError()
        self._check_time(now)
        account = self._normalize_account(account)
        lock_up_duration = self.rate_policy.duration_for(tier)

        async with self.lock.hold():
            wrote = False
            try:
                membership_balance = await self.membership_asset.balance_of(account)
                boosted = membership_balance > 0

                await self._check_funds(
                    account, amount, spender=self.custody_address
                )

                wrote = True
                await self.value_asset.transfer_from(
                    account,
                    self.custody_address,
                    amount,
                    spender=self.custody_address,
                    transfer_type=TransferType.DEPOSIT,
                )

                record = await self.ledger.create_record(
                    account=account,
                    principal=amount,
                    lock_up_duration=lock_up_duration,
                    boosted=boosted,
                    now=now,
                )

                await self.session.commit()

            except AccrualError as e:
                await self._end_rejected(wrote)
                logger.warning(
                    f"Deposit rejected for {account}: {e}",
                    extra={"account": account, "amount": amount},
                )
                raise
            except Exception as e:
                await self.session.rollback()
                logger.error(f"Failed to create deposit for {account}: {e}")
                raise

        if boosted and not self.rate_policy.is_configured(lock_up_duration, boosted):
            logger.warning(
                f"Deposit {record.record_id} has no configured rate yet "
                f"({tier.value}, boosted); withdrawal waits for configuration"
            )

        logger.info(
            "Deposit created",
            extra={
                "record_id": record.record_id,
                "account": account,
                "amount": amount,
                "tier": tier.value,
                "boosted": boosted,
            },
        )
        return record

    async def withdraw(self, account: str, record_id: str, now: int) -> int:
        """
        Withdraw principal plus interest of one record.

        The record is retired before the payout is pushed; both commit
        together or not at all.

        Args:
            account: Record owner
            record_id: Record id
            now: Withdrawal time (unix seconds)

        Returns:
            Payout in smallest units

        Raises:
            InvalidTimestampError: If now is negative
            NoBalanceError: Record missing, foreign or already withdrawn
            LockUpNotElapsedError: now < withdrawable_at
            RateNotConfiguredError: Rate cell for the record is undecided
            TransferFailedError: Custody cannot cover the payout
        """
        account = self._normalize_account(account)
        self._check_time(now)

        async with self.lock.hold():
            record = None
            wrote = False
            try:
                record = await self.ledger.get_record(account, record_id)
                if record is None or record.principal == 0:
                    raise NoBalanceError()

                if now < record.withdrawable_at:
                    raise LockUpNotElapsedError(record.withdrawable_at, now)

                payout = self.rate_policy.payout(
                    record.principal, record.lock_up_duration, record.boosted
                )
                await self._check_funds(self.custody_address, payout)

                retired = await self.ledger.retire_record(
                    account, record.record_id, now=now, paid_amount=payout
                )
                if not retired:
                    raise NoBalanceError()
                wrote = True

                await self.value_asset.transfer_from(
                    self.custody_address,
                    account,
                    payout,
                    transfer_type=TransferType.PAYOUT,
                    reference_id=record.record_id,
                )

                await self.session.commit()

            except AccrualError as e:
                await self._end_rejected(wrote, record)
                logger.warning(
                    f"Withdrawal rejected for {account}: {e}",
                    extra={"account": account, "record_id": record_id},
                )
                raise
            except Exception as e:
                await self.session.rollback()
                logger.error(f"Failed to withdraw {record_id} for {account}: {e}")
                raise

        await self.session.refresh(record)
        logger.info(
            "Deposit withdrawn",
            extra={
                "record_id": record.record_id,
                "account": account,
                "payout": payout,
            },
        )
        return payout

    async def fund_custody(self, payer: str, amount: int) -> None:
        """
        Pre-fund custody so it can cover interest on outstanding deposits.

        Args:
            payer: Operator account
            amount: Amount in smallest units

        Raises:
            InvalidAmountError: If amount is not positive
            TransferFailedError: If payer's balance is insufficient
        """
        if not validate_amount(amount):
            raise InvalidAmountError()
        payer = self._normalize_account(payer)

        async with self.lock.hold():
            wrote = False
            try:
                await self._check_funds(payer, amount)

                wrote = True
                await self.value_asset.transfer_from(
                    payer,
                    self.custody_address,
                    amount,
                    transfer_type=TransferType.FUNDING,
                )
                await self.session.commit()
            except AccrualError as e:
                await self._end_rejected(wrote)
                logger.warning(f"Custody funding rejected for {payer}: {e}")
                raise
            except Exception as e:
                await self.session.rollback()
                logger.error(f"Failed to fund custody from {payer}: {e}")
                raise

        logger.info(
            "Custody funded", extra={"payer": payer, "amount": amount}
        )

    async def get_user_deposits(self, account: str) -> list[str]:
        """
        Get every record id created for account, in creation order.

        Withdrawn records remain listed with zero principal.
        """
        return await self.ledger.list_ids(self._normalize_account(account))

    async def get_deposit(
        self, account: str, record_id: str
    ) -> DepositRecord | None:
        """Get one record of account (None if not found)."""
        return await self.ledger.get_record(
            self._normalize_account(account), record_id
        )

    async def preview_payout(self, account: str, record_id: str) -> int:
        """
        Payout the record would yield once withdrawable.

        Raises:
            NoBalanceError: Record missing or already withdrawn
            RateNotConfiguredError: Rate cell for the record is undecided
        """
        record = await self.get_deposit(account, record_id)
        if record is None or record.principal == 0:
            raise NoBalanceError()
        return self.rate_policy.payout(
            record.principal, record.lock_up_duration, record.boosted
        )
