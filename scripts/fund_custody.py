#!/usr/bin/env python3
"""Pre-fund custody from an operator account."""

import asyncio
import sys
from pathlib import Path

from loguru import logger

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from accrual.config.database import async_session_maker, close_db  # noqa: E402
from accrual.config.logging import configure_logging  # noqa: E402
from accrual.config.settings import settings  # noqa: E402
from accrual.exceptions import AccrualError  # noqa: E402
from accrual.services.accrual_service import AccrualService  # noqa: E402
from accrual.utils.validation import to_units  # noqa: E402


async def main() -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Transfer value asset from an operator account to custody"
    )
    parser.add_argument("payer", help="Operator account address")
    parser.add_argument(
        "amount",
        help=f"Amount in {settings.value_asset_symbol} (e.g. 100000 or 12.5)",
    )
    args = parser.parse_args()

    configure_logging()

    try:
        amount = to_units(args.amount, settings.token_decimals)
        async with async_session_maker() as session:
            await AccrualService(session).fund_custody(args.payer, amount)
    except (AccrualError, ValueError) as e:
        logger.error(f"Funding failed: {e}")
        sys.exit(1)
    finally:
        await close_db()

    logger.success(
        f"Custody funded with {args.amount} {settings.value_asset_symbol}"
    )


if __name__ == "__main__":
    asyncio.run(main())
