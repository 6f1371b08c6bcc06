"""Shared test fixtures for FeederFlow engine, service and API tests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles

from app.models import BusinessHub, Feeder, Region
from app.models.database import Base
from app.services.feeder_directory import FeederDirectory
from app.services.reading_store import ReadingStore
from engine.performance.matrix import FeederProfile

# ======================================================================
# Engine fixtures
# ======================================================================


@pytest.fixture
def profile() -> FeederProfile:
    """Feeder in Lagos / Ikeja with a daily uptake of 100."""
    return FeederProfile(
        id="f-1",
        name="Feeder 1",
        business_hub="Ikeja",
        region="Lagos",
        band="A20H",
        daily_energy_uptake=100.0,
        monthly_delivery_plan=3000.0,
    )


@pytest.fixture
def week() -> tuple[date, ...]:
    """Seven consecutive days starting 2024-01-01."""
    return tuple(date(2024, 1, 1) + timedelta(days=i) for i in range(7))


# ======================================================================
# SQLite compatibility for PostgreSQL column types
# ======================================================================


@compiles(PG_UUID, "sqlite")
def _compile_uuid_sqlite(type_, compiler, **kw):
    return "CHAR(36)"


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Seeded readings are recorded as of this moment
SEED_NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        # Enable foreign key enforcement for SQLite
        await conn.exec_driver_sql("PRAGMA foreign_keys = ON")
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ======================================================================
# Seeded feeder hierarchy
# ======================================================================


@dataclass
class SeededGrid:
    lagos: Region
    abuja: Region
    ikeja: BusinessHub
    lekki: BusinessHub
    wuse: BusinessHub
    allen: Feeder
    opebi: Feeder
    ajah: Feeder
    garki: Feeder


@pytest_asyncio.fixture
async def grid(db: AsyncSession) -> SeededGrid:
    """Two regions, three hubs, four feeders with uptake 100 each.

    Readings on 2024-01-01 and 2024-01-02:

    - Allen:  100 -> 200 (healthy)
    - Opebi:  100 ->  90 (decline)
    - Ajah:   100 ->   - (no last-day reading)
    - Garki:  120 -> 240
    """
    directory = FeederDirectory(db)
    lagos = await directory.create_region("Lagos")
    abuja = await directory.create_region("Abuja")
    ikeja = await directory.create_business_hub(lagos.id, "Ikeja")
    lekki = await directory.create_business_hub(lagos.id, "Lekki")
    wuse = await directory.create_business_hub(abuja.id, "Wuse")

    allen = await directory.register_feeder("Allen 33kV", ikeja.id, lagos.id, "A20H", 100.0, 3000.0)
    opebi = await directory.register_feeder("Opebi 11kV", ikeja.id, lagos.id, "B16H", 100.0, 3000.0)
    ajah = await directory.register_feeder("Ajah 11kV", lekki.id, lagos.id, "C12H", 100.0, 3000.0)
    garki = await directory.register_feeder("Garki 11kV", wuse.id, abuja.id, "A20H", 100.0, 3000.0)
    await db.commit()

    store = ReadingStore(db)
    d1, d2 = date(2024, 1, 1), date(2024, 1, 2)
    for feeder, values in (
        (allen, (100.0, 200.0)),
        (opebi, (100.0, 90.0)),
        (ajah, (100.0, None)),
        (garki, (120.0, 240.0)),
    ):
        for day, value in zip((d1, d2), values):
            if value is not None:
                await store.record_reading(feeder.id, day, value, "seed", now=SEED_NOW)

    return SeededGrid(lagos, abuja, ikeja, lekki, wuse, allen, opebi, ajah, garki)
