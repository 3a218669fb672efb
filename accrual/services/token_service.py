"""
Token service.

Collaborator capabilities the accrual engine depends on, and a SQL-backed
token ledger implementing them on the engine's own database session so
token moves and ledger mutations commit together.
"""

from typing import Protocol, runtime_checkable

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from accrual.exceptions import InvalidAmountError, TransferFailedError
from accrual.models.enums import TransferType
from accrual.models.transfer import Transfer
from accrual.repositories.token_balance_repository import (
    TokenAllowanceRepository,
    TokenBalanceRepository,
)
from accrual.repositories.transfer_repository import TransferRepository
from accrual.utils.validation import validate_amount


@runtime_checkable
class ValueAsset(Protocol):
    """Transferable-balance asset used for deposits and payouts."""

    symbol: str

    async def balance_of(self, account: str) -> int: ...

    async def allowance(self, owner: str, spender: str) -> int: ...

    async def transfer_from(
        self,
        payer: str,
        payee: str,
        amount: int,
        spender: str | None = None,
        transfer_type: TransferType = TransferType.TRANSFER,
        reference_id: str | None = None,
    ) -> Transfer | None:
        """Move amount from payer to payee or raise TransferFailedError."""
        ...


@runtime_checkable
class MembershipAsset(Protocol):
    """Asset whose balance only gates the boost."""

    symbol: str

    async def balance_of(self, account: str) -> int: ...


class SqlToken:
    """
    Token ledger stored in token_balances/token_allowances/transfers.

    Never commits: every call joins the session's current transaction.
    """

    def __init__(self, session: AsyncSession, symbol: str) -> None:
        """
        Initialize token.

        Args:
            session: Database session shared with the caller
            symbol: Asset symbol
        """
        self.session = session
        self.symbol = symbol
        self.balance_repo = TokenBalanceRepository(session)
        self.allowance_repo = TokenAllowanceRepository(session)
        self.transfer_repo = TransferRepository(session)

    async def balance_of(self, account: str) -> int:
        """Get account balance in smallest units."""
        return await self.balance_repo.get_balance(self.symbol, account)

    async def total_supply(self) -> int:
        """Get sum of all balances."""
        return await self.balance_repo.get_total_supply(self.symbol)

    async def allowance(self, owner: str, spender: str) -> int:
        """Get amount spender may still move out of owner's balance."""
        return await self.allowance_repo.get_allowance(self.symbol, owner, spender)

    async def approve(self, owner: str, spender: str, amount: int) -> None:
        """
        Allow spender to move up to amount from owner.

        Raises:
            InvalidAmountError: If amount is negative
        """
        if amount < 0:
            raise InvalidAmountError("Allowance must not be negative")
        await self.allowance_repo.set_allowance(self.symbol, owner, spender, amount)
        logger.debug(
            f"{self.symbol} allowance set: owner={owner}, "
            f"spender={spender}, amount={amount}"
        )

    async def mint(self, account: str, amount: int) -> Transfer:
        """
        Create new units in account.

        Raises:
            InvalidAmountError: If amount is not positive
        """
        if not validate_amount(amount):
            raise InvalidAmountError()

        entry = await self.balance_repo.get_for_update(self.symbol, account)
        entry.balance += amount
        return await self.transfer_repo.create(
            asset=self.symbol,
            type=TransferType.MINT.value,
            payer=None,
            payee=account,
            amount=amount,
        )

    async def transfer_from(
        self,
        payer: str,
        payee: str,
        amount: int,
        spender: str | None = None,
        transfer_type: TransferType = TransferType.TRANSFER,
        reference_id: str | None = None,
    ) -> Transfer:
        """
        Move amount from payer to payee.

        When a spender other than the payer is given, the payer's allowance
        for that spender is checked and consumed.

        Args:
            payer: Account debited
            payee: Account credited
            amount: Amount in smallest units
            spender: Account initiating the move on payer's behalf
            transfer_type: Journal type
            reference_id: Deposit record id, if any

        Returns:
            Journal entry

        Raises:
            InvalidAmountError: If amount is not positive
            TransferFailedError: If allowance or balance is insufficient
        """
        if not validate_amount(amount):
            raise InvalidAmountError()

        if spender is not None and spender != payer:
            allowance = await self.allowance(payer, spender)
            if allowance < amount:
                logger.warning(
                    f"{self.symbol} transfer rejected: allowance {allowance} "
                    f"< {amount} (payer={payer}, spender={spender})"
                )
                raise TransferFailedError(
                    f"Insufficient allowance: {allowance} < {amount}"
                )
            await self.allowance_repo.set_allowance(
                self.symbol, payer, spender, allowance - amount
            )

        # Lock rows in a stable order
        rows = {}
        for account in sorted({payer, payee}):
            rows[account] = await self.balance_repo.get_for_update(
                self.symbol, account
            )

        if rows[payer].balance < amount:
            logger.warning(
                f"{self.symbol} transfer rejected: balance {rows[payer].balance} "
                f"< {amount} (payer={payer})"
            )
            raise TransferFailedError(
                f"Insufficient balance: {rows[payer].balance} < {amount}"
            )

        rows[payer].balance -= amount
        rows[payee].balance += amount

        transfer = await self.transfer_repo.create(
            asset=self.symbol,
            type=transfer_type.value,
            payer=payer,
            payee=payee,
            amount=amount,
            reference_id=reference_id,
        )
        logger.debug(
            f"{self.symbol} transfer: {payer} -> {payee}, amount={amount}, "
            f"type={transfer_type.value}"
        )
        return transfer
