"""
Shared pytest configuration for evalhub tests.

Unit and route tests mock the service layer and need no database. Tests that
use the ``db_session`` fixture run against PostgreSQL and are skipped unless
TEST_DATABASE_URL is set.

SAFETY: the database fixtures REFUSE to run against any database whose name
does not contain the substring "test", so a misconfigured environment can
never truncate a development or production database.
"""

import os

# Must be set before the routes package is imported so the limiter is a no-op
os.environ.setdefault("ENV", "test")
os.environ.setdefault("INIT_DB_ON_STARTUP", "false")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import text  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from evalhub.database.db import Base  # noqa: E402
from evalhub.services import operation_guard  # noqa: E402


def _resolve_test_database_url():
    """Return TEST_DATABASE_URL, or None when it is not configured.

    Raises ``RuntimeError`` if the URL points at a database whose name does not
    contain "test".
    """
    url = os.getenv("TEST_DATABASE_URL", "")
    if not url:
        return None

    db_name = url.rsplit("/", 1)[-1].split("?")[0]
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n\n"
            f"  Fix: set TEST_DATABASE_URL to a test database, e.g.:\n"
            f"    export TEST_DATABASE_URL=postgresql+asyncpg://.../{db_name}_test\n"
            f"{'=' * 70}"
        )
    return url


TEST_DATABASE_URL = _resolve_test_database_url()


@pytest.fixture(autouse=True)
def fresh_operation_guard(monkeypatch):
    """Give every test its own in-flight guard so keys never leak between tests."""
    monkeypatch.setattr(operation_guard, "_operation_guard", operation_guard.OperationGuard())


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine and point db.AsyncSessionLocal at it."""
    if TEST_DATABASE_URL is None:
        pytest.skip("TEST_DATABASE_URL is not set")

    # NullPool avoids reusing connections across event loops
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        from evalhub.database import models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)

    # Per-session wave updates open their own session through db.AsyncSessionLocal
    from evalhub.database import db

    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    yield engine

    db.AsyncSessionLocal = original_async_session_local
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """
    Create a test database session.
    Tables are truncated before each test to ensure clean state.
    """
    async with test_engine.begin() as conn:
        table_list = ", ".join(f'"{t.name}"' for t in Base.metadata.sorted_tables)
        await conn.execute(text(f"TRUNCATE TABLE {table_list} RESTART IDENTITY CASCADE"))

    async_session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()
