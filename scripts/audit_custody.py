#!/usr/bin/env python3
"""
Audit custody solvency.

Compares the custody balance with principal plus interest owed on every
active deposit. Exits with status 1 on a shortfall.
"""

import asyncio
import sys
from pathlib import Path

from loguru import logger
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from accrual.config.database import build_session_maker  # noqa: E402
from accrual.config.logging import configure_logging  # noqa: E402
from accrual.config.settings import settings  # noqa: E402
from accrual.services.custody_service import CustodyService  # noqa: E402
from accrual.utils.validation import from_units  # noqa: E402


def _fmt(units: int) -> str:
    return f"{from_units(units, settings.token_decimals)} {settings.value_asset_symbol}"


async def audit_custody() -> bool:
    """Print custody report, return solvency."""
    logger.info("Starting custody audit...")

    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    session_maker = build_session_maker(engine)

    try:
        async with session_maker() as session:
            report = await CustodyService(session).get_custody_report()
    finally:
        await engine.dispose()

    logger.info(f"Custody account:       {settings.custody_address}")
    logger.info(f"Custody balance:       {_fmt(report.custody_balance)}")
    logger.info(f"Active deposits:       {report.active_deposits}")
    logger.info(f"Outstanding principal: {_fmt(report.outstanding_principal)}")
    logger.info(f"Outstanding payouts:   {_fmt(report.outstanding_payouts)}")
    logger.info(f"Total deposited:       {_fmt(report.total_deposited)}")
    logger.info(f"Total paid out:        {_fmt(report.total_paid_out)}")

    if report.unpriced_record_ids:
        logger.warning(
            f"{len(report.unpriced_record_ids)} deposits have no configured "
            f"rate (principal {_fmt(report.unpriced_principal)}):"
        )
        for record_id in report.unpriced_record_ids:
            logger.warning(f"  {record_id}")

    if report.is_solvent:
        logger.success(f"Custody surplus: {_fmt(report.surplus)}")
    else:
        logger.error(f"Custody shortfall: {_fmt(-report.surplus)}")
    return report.is_solvent


async def main() -> None:
    """Main entry point."""
    configure_logging()
    if not await audit_custody():
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
