"""Pytest configuration and fixtures for PetrolScan tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from petrolscan.db.models import Base
from petrolscan.models import Location, Observation, Station


@pytest.fixture
def brno_location() -> Location:
    """Geocoded Globus Brno outlet."""
    return Location(name="Globus Brno", lat=49.2265, lon=16.5806)


@pytest.fixture
def make_observation(brno_location: Location) -> Callable[..., Observation]:
    """Factory for observations; keyword arguments override the defaults."""

    def _make(**overrides) -> Observation:
        values = {
            "station": Station.GLOBUS,
            "station_name": "Globus Brno",
            "location": brno_location,
            "fuel_name": "Diesel",
            "price": 32.50,
        }
        values.update(overrides)
        return Observation(**values)

    return _make


@pytest_asyncio.fixture()
async def session_factory(tmp_path) -> async_sessionmaker[AsyncSession]:
    """File-backed SQLite database shared by every session of one test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'petrolscan.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory) -> AsyncSession:
    """Single session on the test database."""
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()
