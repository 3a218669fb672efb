"""
Pytest configuration and shared fixtures.

Tests run on an in-memory SQLite database unless TEST_DATABASE_URL
points at another async URL (e.g. postgresql+asyncpg://...).
"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from eth_utils import to_checksum_address
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from accrual.config.settings import settings
from accrual.models import Base, DepositRecord
from accrual.services.accrual_service import AccrualService
from accrual.services.token_service import SqlToken

# ==================== CONSTANTS ====================

DECIMALS = 6
ONE_TOKEN = 10**DECIMALS
ONE_HUNDRED_TOKENS = 100 * ONE_TOKEN
CUSTODY_FUNDING = 100_000 * ONE_TOKEN

FORTY_FIVE_DAYS = 45 * 24 * 60 * 60
ONE_HUNDRED_EIGHTY_DAYS = 180 * 24 * 60 * 60

# Block time at the start of each test
GENESIS = 1_700_000_000


def address(n: int) -> str:
    """Deterministic checksummed test address."""
    return to_checksum_address(f"0x{n:040x}")


OWNER = address(0x0A)
ALICE = address(0xA11CE)
BOB = address(0xB0B)
CARL = address(0xCA41)
CUSTODY = to_checksum_address(settings.custody_address)


# ==================== PYTEST CONFIGURATION ====================


def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "critical: marks tests as critical")
    config.addinivalue_line("markers", "integration: marks integration tests")
    config.addinivalue_line(
        "markers", "concurrency: marks tests running operations concurrently"
    )


# ==================== DATABASE FIXTURES ====================

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")


@pytest_asyncio.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine with fresh tables for each test."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(
    async_engine: AsyncEngine,  # pylint: disable=redefined-outer-name
) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest_asyncio.fixture
async def db_session(
    session_maker: async_sessionmaker[AsyncSession],  # pylint: disable=redefined-outer-name
) -> AsyncGenerator[AsyncSession, None]:
    """
    Create database session for tests.

    Yields:
        AsyncSession: Database session
    """
    async with session_maker() as session:
        yield session
        await session.rollback()


# ==================== TOKEN FIXTURES ====================


@pytest.fixture
def usdt(db_session: AsyncSession) -> SqlToken:  # pylint: disable=redefined-outer-name
    """Value asset on the test session."""
    return SqlToken(db_session, settings.value_asset_symbol)


@pytest.fixture
def membership(db_session: AsyncSession) -> SqlToken:  # pylint: disable=redefined-outer-name
    """Membership asset on the test session."""
    return SqlToken(db_session, settings.membership_asset_symbol)


@pytest_asyncio.fixture
async def funded_custody(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    usdt: SqlToken,  # pylint: disable=redefined-outer-name
) -> int:
    """Owner mints and pre-funds custody with 100 000 tokens."""
    await usdt.mint(OWNER, CUSTODY_FUNDING)
    await usdt.transfer_from(OWNER, CUSTODY, CUSTODY_FUNDING)
    await db_session.commit()
    return CUSTODY_FUNDING


@pytest.fixture
def accrual_service(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    usdt: SqlToken,  # pylint: disable=redefined-outer-name
    membership: SqlToken,  # pylint: disable=redefined-outer-name
) -> AccrualService:
    """Accrual service with default rates and custody."""
    return AccrualService(
        db_session, value_asset=usdt, membership_asset=membership
    )


# ==================== HELPERS ====================


@pytest.fixture
def give_tokens(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    usdt: SqlToken,  # pylint: disable=redefined-outer-name
    membership: SqlToken,  # pylint: disable=redefined-outer-name
) -> Callable[..., Awaitable[None]]:
    """
    Helper: mint value asset to an account and approve custody for it.

    Optionally mints membership tokens too.
    """

    async def _give(
        account: str,
        amount: int = ONE_HUNDRED_TOKENS,
        approve: int | None = None,
        membership_amount: int = 0,
    ) -> None:
        await usdt.mint(account, amount)
        await usdt.approve(account, CUSTODY, amount if approve is None else approve)
        if membership_amount:
            await membership.mint(account, membership_amount)
        await db_session.commit()

    return _give


@pytest.fixture
def deposit_helper(
    accrual_service: AccrualService,  # pylint: disable=redefined-outer-name
    give_tokens: Callable[..., Awaitable[None]],  # pylint: disable=redefined-outer-name
) -> Callable[..., Awaitable[DepositRecord]]:
    """Helper: fund an account and deposit for it."""

    async def _deposit(
        account: str,
        amount: int = ONE_HUNDRED_TOKENS,
        short: bool = True,
        membership_amount: int = 0,
        now: int = GENESIS,
    ) -> DepositRecord:
        await give_tokens(account, amount, membership_amount=membership_amount)
        return await accrual_service.deposit(
            account, amount, short, not short, now=now
        )

    return _deposit
