"""Region, business hub and feeder lookups for report selection.

Name filters match case-insensitively on the whole name.  Feeders come back
as :class:`~engine.performance.matrix.FeederProfile` values sorted by
(region, business hub, feeder name) so the renderer can group region
banners without re-sorting.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.business_hub import BusinessHub
from app.models.feeder import FEEDER_BANDS, Feeder
from app.models.region import Region
from engine.performance.errors import LookupNotFound, NoFeedersFound
from engine.performance.matrix import FeederProfile

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


class RegionMismatch(ValueError):
    """The feeder's region differs from its business hub's region."""


class DuplicateFeeder(ValueError):
    """A feeder with an equivalent name already exists in the hub."""


def normalize_feeder_name(name: str) -> str:
    """Lower-case *name* and drop whitespace and hyphens."""
    return re.sub(r"[\s\-]+", "", name).lower()


def to_profile(feeder: Feeder) -> FeederProfile:
    hub = feeder.business_hub
    region = feeder.region
    return FeederProfile(
        id=str(feeder.id),
        name=feeder.name,
        business_hub=hub.name if hub is not None else UNKNOWN,
        region=region.name if region is not None else UNKNOWN,
        band=feeder.band,
        daily_energy_uptake=float(feeder.daily_energy_uptake or 0.0),
        monthly_delivery_plan=float(feeder.monthly_delivery_plan or 0.0),
    )


def sort_profiles(profiles: Sequence[FeederProfile]) -> list[FeederProfile]:
    return sorted(profiles, key=lambda p: (p.region, p.business_hub, p.name))


class FeederDirectory:
    """Read and register the feeder hierarchy through one session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── lookups ──

    async def find_region_by_name(self, name: str) -> Region:
        result = await self.db.execute(
            select(Region).where(func.lower(Region.name) == name.strip().lower())
        )
        region = result.scalars().first()
        if region is None:
            raise LookupNotFound("Region", name)
        return region

    async def find_hub_by_name(self, name: str, region_id: uuid.UUID | None = None) -> BusinessHub:
        query = select(BusinessHub).where(func.lower(BusinessHub.name) == name.strip().lower())
        if region_id is not None:
            query = query.where(BusinessHub.region_id == region_id)
        result = await self.db.execute(query)
        hub = result.scalars().first()
        if hub is None:
            raise LookupNotFound("Business Hub", name)
        return hub

    async def list_feeders(
        self,
        region_id: uuid.UUID | None = None,
        business_hub_id: uuid.UUID | None = None,
        feeder_ids: Sequence[uuid.UUID] | None = None,
    ) -> list[FeederProfile]:
        query = select(Feeder).options(
            selectinload(Feeder.business_hub), selectinload(Feeder.region)
        )
        if region_id is not None:
            query = query.where(Feeder.region_id == region_id)
        if business_hub_id is not None:
            query = query.where(Feeder.business_hub_id == business_hub_id)
        if feeder_ids is not None:
            query = query.where(Feeder.id.in_(list(feeder_ids)))
        result = await self.db.execute(query)
        return sort_profiles([to_profile(f) for f in result.scalars().all()])

    async def resolve_feeders(
        self,
        region: str | None = None,
        business_hub: str | None = None,
        feeder_ids: Sequence[uuid.UUID] | None = None,
    ) -> list[FeederProfile]:
        """Resolve name filters and return the selected, sorted feeders.

        Raises
        ------
        LookupNotFound
            If a given region or business hub name does not exist.
        NoFeedersFound
            If the selection is empty.
        """
        region_id = None
        hub_id = None
        if region:
            region_id = (await self.find_region_by_name(region)).id
        if business_hub:
            hub_id = (await self.find_hub_by_name(business_hub)).id

        profiles = await self.list_feeders(
            region_id=region_id, business_hub_id=hub_id, feeder_ids=feeder_ids
        )
        if not profiles:
            raise NoFeedersFound("No feeders found for the selected filters")
        logger.info(
            "Resolved %d feeders (region=%s, business_hub=%s, explicit=%s)",
            len(profiles), region, business_hub, feeder_ids is not None,
        )
        return profiles

    # ── registration ──

    async def create_region(self, name: str) -> Region:
        region = Region(name=name.strip())
        self.db.add(region)
        await self.db.flush()
        return region

    async def create_business_hub(self, region_id: uuid.UUID, name: str) -> BusinessHub:
        hub = BusinessHub(region_id=region_id, name=name.strip())
        self.db.add(hub)
        await self.db.flush()
        return hub

    async def register_feeder(
        self,
        name: str,
        business_hub_id: uuid.UUID,
        region_id: uuid.UUID,
        band: str,
        daily_energy_uptake: float,
        monthly_delivery_plan: float = 0.0,
    ) -> Feeder:
        """Add a feeder after checking band, hub/region agreement and name uniqueness."""
        if band not in FEEDER_BANDS:
            raise ValueError(f"Unknown band '{band}', expected one of {', '.join(FEEDER_BANDS)}")

        hub = await self.db.get(BusinessHub, business_hub_id)
        if hub is None:
            raise LookupNotFound("Business Hub", str(business_hub_id))
        if hub.region_id != region_id:
            raise RegionMismatch("Feeder region must match its business hub's region")

        wanted = normalize_feeder_name(name)
        result = await self.db.execute(
            select(Feeder.name).where(Feeder.business_hub_id == business_hub_id)
        )
        if any(normalize_feeder_name(existing) == wanted for existing in result.scalars()):
            raise DuplicateFeeder(f"Feeder '{name}' already exists in this business hub")

        feeder = Feeder(
            name=name.strip(),
            business_hub_id=business_hub_id,
            region_id=region_id,
            band=band,
            daily_energy_uptake=daily_energy_uptake,
            monthly_delivery_plan=monthly_delivery_plan,
        )
        self.db.add(feeder)
        await self.db.flush()
        return feeder
