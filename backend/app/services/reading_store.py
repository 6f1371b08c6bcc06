"""Meter reading access: range scans, per-feeder lookups and recording.

Range scans go through a :class:`ReadingRangeCache` supplied by the
caller, so one report run never scans the same window twice.  The cache is
keyed on the exact (start, end) pair; a window that merely overlaps a
cached one is a miss.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import OrderedDict
from collections.abc import Callable
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.feeder_reading import FeederReading
from engine.performance.matrix import ReadingPoint

logger = logging.getLogger(__name__)

RangeKey = tuple[date, date]


class InvalidReading(ValueError):
    """A reading value or date rejected at write time."""


class ReadingRangeCache:
    """Bounded TTL cache of range-scan results.

    With the default capacity of 1 only the most recent window is kept:
    storing a new key evicts every other entry.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        capacity: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.capacity = capacity
        self._clock = clock
        self._entries: OrderedDict[RangeKey, tuple[float, tuple[ReadingPoint, ...]]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: RangeKey) -> bool:
        return self.get(key) is not None

    def get(self, key: RangeKey) -> tuple[ReadingPoint, ...] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, readings = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return readings

    def put(self, key: RangeKey, readings: tuple[ReadingPoint, ...]) -> None:
        self._entries.pop(key, None)
        while len(self._entries) >= self.capacity:
            self._entries.popitem(last=False)
        self._entries[key] = (self._clock(), readings)

    def clear(self) -> None:
        self._entries.clear()


def _to_point(feeder_id: uuid.UUID, day: date, value: float) -> ReadingPoint:
    return ReadingPoint(
        feeder_id=str(feeder_id), day=day, cumulative_energy_consumption=float(value)
    )


class ReadingStore:
    """Reading queries and writes bound to one database session."""

    def __init__(self, db: AsyncSession, cache: ReadingRangeCache | None = None):
        self.db = db
        self.cache = cache

    async def fetch_range(self, start: date, end: date) -> tuple[ReadingPoint, ...]:
        """All readings dated within [start, end], ordered by day then feeder."""
        key = (start, end)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Reading cache hit for %s..%s (%d rows)", start, end, len(cached))
                return cached

        result = await self.db.execute(
            select(
                FeederReading.feeder_id,
                FeederReading.reading_date,
                FeederReading.cumulative_energy_consumption,
            )
            .where(FeederReading.reading_date >= start, FeederReading.reading_date <= end)
            .order_by(FeederReading.reading_date, FeederReading.feeder_id)
        )
        readings = tuple(_to_point(*row) for row in result.all())

        if self.cache is not None:
            self.cache.put(key, readings)
        logger.debug("Fetched %d readings for %s..%s", len(readings), start, end)
        return readings

    async def fetch_feeder_range(
        self, feeder_id: uuid.UUID, start: date, end: date
    ) -> tuple[ReadingPoint, ...]:
        result = await self.db.execute(
            select(
                FeederReading.feeder_id,
                FeederReading.reading_date,
                FeederReading.cumulative_energy_consumption,
            )
            .where(
                FeederReading.feeder_id == feeder_id,
                FeederReading.reading_date >= start,
                FeederReading.reading_date <= end,
            )
            .order_by(FeederReading.reading_date)
        )
        return tuple(_to_point(*row) for row in result.all())

    async def get_reading(self, feeder_id: uuid.UUID, day: date) -> FeederReading | None:
        """Reading for *feeder_id* dated exactly *day*, if any."""
        result = await self.db.execute(
            select(FeederReading).where(
                FeederReading.feeder_id == feeder_id,
                FeederReading.reading_date == day,
            )
        )
        return result.scalar_one_or_none()

    async def record_reading(
        self,
        feeder_id: uuid.UUID,
        day: date,
        value: float,
        recorded_by: str,
        now: datetime | None = None,
    ) -> FeederReading:
        """Create the (feeder, day) reading or overwrite it with history.

        Raises
        ------
        InvalidReading
            If *value* is negative or *day* lies in the future.
        """
        now = now or datetime.now(timezone.utc)
        if value < 0:
            raise InvalidReading("Energy consumption cannot be negative")
        if day > now.date():
            raise InvalidReading("Reading date cannot be in the future")

        reading = await self.get_reading(feeder_id, day)
        if reading is None:
            reading = FeederReading(
                feeder_id=feeder_id,
                reading_date=day,
                cumulative_energy_consumption=value,
                recorded_by=recorded_by,
                history=[],
            )
            self.db.add(reading)
        elif reading.cumulative_energy_consumption != value:
            reading.record_value(value, updated_by=recorded_by, now=now)

        await self.db.commit()
        await self.db.refresh(reading)
        if self.cache is not None:
            self.cache.clear()
        return reading
