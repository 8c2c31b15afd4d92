"""Pytest configuration and shared fixtures for tests."""

from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from src.api.deps import get_db
from src.core.database import create_engine, create_schema, create_session_factory, session_scope
from src.main import app
from src.tax.repository import RateRepository, RateRow, RateSnapshot
from src.tax.seed import DEFAULT_RATE_TABLES, seed_default_rates
from src.tax.tax_year import tax_year_bounds

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the schema created.

    StaticPool keeps one connection so every session sees the same database.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A session whose uncommitted work is rolled back after the test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session: AsyncSession) -> RateRepository:
    return RateRepository(db_session)


@pytest_asyncio.fixture
async def seeded_repository(repository: RateRepository) -> RateRepository:
    """Repository over a database holding the default 2024-25 and 2025-26 rates."""
    await seed_default_rates(repository)
    return repository


def build_snapshot(tax_year: str = "2024-25", **overrides: int | None) -> RateSnapshot:
    """Snapshot of a default year with selected values replaced by name.

    Passing None as a value drops that row from the snapshot.
    """
    effective_from, effective_to = tax_year_bounds(tax_year)
    rows = []
    for index, seed in enumerate(DEFAULT_RATE_TABLES[tax_year], start=1):
        value = overrides.get(seed.name, seed.value)
        if value is None:
            continue
        rows.append(
            RateRow(
                id=index,
                category=seed.category,
                name=seed.name,
                rate_type=seed.rate_type,
                value=value,
                tax_year=tax_year,
                effective_from=effective_from,
                effective_to=effective_to,
                description=seed.description,
            )
        )
    return RateSnapshot.from_rows(tax_year, rows)


@pytest.fixture
def snapshot_factory() -> Callable[..., RateSnapshot]:
    """Factory building in-memory snapshots from the default rate table."""
    return build_snapshot


@pytest.fixture
def snapshot() -> RateSnapshot:
    """Default 2024-25 rates."""
    return build_snapshot("2024-25")


@pytest_asyncio.fixture
async def api_client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with a seeded in-memory database.

    Each request gets its own session that commits on success and rolls
    back on error, like the production dependency.
    """
    async with session_scope(session_factory) as session:
        await seed_default_rates(RateRepository(session))

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_scope(session_factory) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.transaction_source = None
    app.state.employee_directory = None

    client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    try:
        yield client
    finally:
        await client.aclose()
        app.dependency_overrides.clear()
        app.state.transaction_source = None
        app.state.employee_directory = None
