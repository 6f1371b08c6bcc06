import uuid
from datetime import datetime

from sqlalchemy import String, Float, ForeignKey, DateTime, Index, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.database import Base

FEEDER_BANDS = ("A20H", "B16H", "C12H", "D8H", "E4H")
FEEDER_STATUSES = ("active", "inactive")


class Feeder(Base):
    __tablename__ = "feeders"
    __table_args__ = (
        Index("ix_feeders_region_hub", "region_id", "business_hub_id"),
        Index("ix_feeders_region_band_status", "region_id", "band", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    business_hub_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("business_hubs.id", ondelete="CASCADE"), nullable=False
    )
    # Denormalized from the hub; must match business_hub.region_id
    region_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("regions.id", ondelete="CASCADE"), nullable=False
    )
    band: Mapped[str] = mapped_column(String(10), nullable=False)  # A20H .. E4H
    daily_energy_uptake: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    monthly_delivery_plan: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    previous_month_consumption: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active"
    )  # active, inactive
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    business_hub: Mapped["BusinessHub"] = relationship(back_populates="feeders")  # noqa: F821
    region: Mapped["Region"] = relationship(back_populates="feeders")  # noqa: F821
    readings: Mapped[list["FeederReading"]] = relationship(  # noqa: F821
        back_populates="feeder", cascade="all, delete"
    )
