"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

# Minimal environment for settings; tests never touch these databases
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_referral.db")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.models import Affiliate, Base, Product
from app.repositories.product_repository import ProductRepository


BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.delete = MagicMock()
    session.refresh = AsyncMock()
    return session


@pytest_asyncio.fixture
async def engine(tmp_path):
    """SQLite database file per test with the full schema."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'referral.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    """Session factory bound to the test database."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_maker):
    """Session for the code under test."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_affiliate(db_session):
    """
    Insert an affiliate row directly, bypassing registration counters.

    created_at is derived from ``order`` so sibling order is predictable.
    """

    async def _make(
        code: str,
        sponsor_code: str | None = None,
        order: int = 0,
        **fields,
    ) -> Affiliate:
        affiliate = Affiliate(
            code=code,
            name=fields.pop("name", f"Affiliate {code}"),
            sponsor_code=sponsor_code,
            created_at=BASE_TIME + timedelta(minutes=order),
            **fields,
        )
        db_session.add(affiliate)
        await db_session.commit()
        return affiliate

    return _make


@pytest.fixture
def make_chain(make_affiliate):
    """
    Insert a sponsor chain, top first.

    ``make_chain(["TOP", "MID", "BUYER"])`` gives BUYER -> MID -> TOP.
    """

    async def _make(codes: Iterable[str]) -> list[Affiliate]:
        affiliates = []
        sponsor_code = None
        for index, code in enumerate(codes):
            affiliates.append(
                await make_affiliate(code, sponsor_code=sponsor_code, order=index)
            )
            sponsor_code = code
        return affiliates

    return _make


@pytest.fixture
def make_product(db_session):
    """Create a product from a list of rates, level 1 first (None = no rate)."""

    async def _make(rates: Iterable[str | None], name: str = "Starter Kit") -> Product:
        level_commissions = [
            {"level": level, "rate": Decimal(rate)}
            for level, rate in enumerate(rates, start=1)
            if rate is not None
        ]
        product = await ProductRepository(db_session).create_with_rate_table(
            name=name, level_commissions=level_commissions
        )
        await db_session.commit()
        return product

    return _make


@pytest.fixture
def fetch_affiliate(session_maker):
    """Read an affiliate through a fresh session (no identity map reuse)."""

    async def _fetch(code: str) -> Affiliate | None:
        async with session_maker() as session:
            result = await session.execute(
                select(Affiliate).where(Affiliate.code == code)
            )
            return result.scalar_one_or_none()

    return _fetch
