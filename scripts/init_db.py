#!/usr/bin/env python3
"""Initialize database tables."""

import asyncio
import sys
from pathlib import Path

from loguru import logger

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from accrual.config.database import build_engine, init_db  # noqa: E402
from accrual.config.logging import configure_logging  # noqa: E402
from accrual.config.settings import settings  # noqa: E402


async def main() -> None:
    """Create all database tables."""
    configure_logging()
    logger.info(f"Creating database tables on {settings.database_url}")

    engine = build_engine(settings.database_url, echo=settings.database_echo)
    try:
        await init_db(engine)
    finally:
        await engine.dispose()

    logger.success("Database tables created successfully")


if __name__ == "__main__":
    asyncio.run(main())
