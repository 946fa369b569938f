from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from schoolops.db import get_session
from schoolops.main import app
from schoolops.models import Profile, SQLModel, Tenant

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Create a fresh schema for every test.

    The default in-memory SQLite database lives on a single shared connection,
    so each test starts from empty tables. Set TEST_DATABASE_URL to run the
    suite against PostgreSQL instead.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        _engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        _engine = create_async_engine(TEST_DATABASE_URL)
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a session on the per-test database. Services commit through it."""
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def async_client(engine: AsyncEngine, db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden.

    Each request gets its own session on the per-test engine, as in production,
    so a rollback inside a request does not expire the test's fixture objects.
    """

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def tenant(db_session: AsyncSession) -> Tenant:
    """A school tenant with one staff member."""
    row = Tenant(name="Greenhill Primary School", address="Plot 4, Kampala Road", phone="+256 700 000000")
    db_session.add(row)
    db_session.add(Profile(tenant_id=row.id, full_name="Grace Namutebi", email="grace@greenhill.test", role="staff"))
    await db_session.commit()
    return row

