"""
Custody service.

Compares the custody balance with what outstanding deposits will pay out.
"""

from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from accrual.config.settings import settings
from accrual.models.enums import TransferType
from accrual.repositories.deposit_ledger import DepositLedger
from accrual.repositories.transfer_repository import TransferRepository
from accrual.services.rate_policy import RatePolicy
from accrual.services.token_service import SqlToken, ValueAsset
from accrual.utils.validation import normalize_address


@dataclass
class CustodyReport:
    """Snapshot of custody solvency."""

    custody_balance: int
    active_deposits: int
    outstanding_principal: int
    outstanding_payouts: int
    unpriced_record_ids: list[str] = field(default_factory=list)
    unpriced_principal: int = 0
    total_deposited: int = 0
    total_paid_out: int = 0

    @property
    def surplus(self) -> int:
        """Custody left after every priced payout and unpriced principal."""
        return (
            self.custody_balance
            - self.outstanding_payouts
            - self.unpriced_principal
        )

    @property
    def is_solvent(self) -> bool:
        return self.surplus >= 0


class CustodyService:
    """Service for custody solvency checks."""

    def __init__(
        self,
        session: AsyncSession,
        value_asset: ValueAsset | None = None,
        rate_policy: RatePolicy | None = None,
        custody_address: str | None = None,
    ) -> None:
        """Initialize custody service."""
        self.session = session
        self.ledger = DepositLedger(session)
        self.transfer_repo = TransferRepository(session)
        self.value_asset = value_asset or SqlToken(
            session, settings.value_asset_symbol
        )
        self.rate_policy = rate_policy or RatePolicy()
        self.custody_address = normalize_address(
            custody_address or settings.custody_address
        )

    async def get_custody_report(self) -> CustodyReport:
        """
        Build custody report.

        Records whose rate cell is undecided are counted at principal
        only and listed in unpriced_record_ids.

        Returns:
            CustodyReport
        """
        records = await self.ledger.get_active_records()
        custody_balance = await self.value_asset.balance_of(self.custody_address)

        outstanding_payouts = 0
        unpriced: list[str] = []
        unpriced_principal = 0
        for record in records:
            if self.rate_policy.is_configured(record.lock_up_duration, record.boosted):
                outstanding_payouts += self.rate_policy.payout(
                    record.principal, record.lock_up_duration, record.boosted
                )
            else:
                unpriced.append(record.record_id)
                unpriced_principal += record.principal

        report = CustodyReport(
            custody_balance=custody_balance,
            active_deposits=len(records),
            outstanding_principal=await self.ledger.get_outstanding_principal(),
            outstanding_payouts=outstanding_payouts,
            unpriced_record_ids=unpriced,
            unpriced_principal=unpriced_principal,
            total_deposited=await self.transfer_repo.get_total_by_type(
                self.value_asset.symbol, TransferType.DEPOSIT.value
            ),
            total_paid_out=await self.transfer_repo.get_total_by_type(
                self.value_asset.symbol, TransferType.PAYOUT.value
            ),
        )

        if not report.is_solvent:
            logger.warning(
                f"Custody shortfall: balance={report.custody_balance}, "
                f"liabilities={report.outstanding_payouts + report.unpriced_principal}"
            )
        return report
