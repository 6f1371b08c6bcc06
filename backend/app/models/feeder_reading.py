import uuid
from datetime import date, datetime, timezone

from sqlalchemy import String, Float, ForeignKey, Date, DateTime, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.database import Base


class FeederReading(Base):
    __tablename__ = "feeder_readings"
    __table_args__ = (
        UniqueConstraint("feeder_id", "reading_date", name="uq_feeder_readings_feeder_day"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    feeder_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("feeders.id", ondelete="CASCADE"), nullable=False
    )
    reading_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    cumulative_energy_consumption: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_by: Mapped[str] = mapped_column(String(255), nullable=False)
    # Append-only list of {date, cumulative_energy_consumption, updated_at, updated_by}
    history: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    feeder: Mapped["Feeder"] = relationship(back_populates="readings")  # noqa: F821

    def record_value(
        self, value: float, updated_by: str, now: datetime | None = None
    ) -> None:
        """Overwrite the cumulative value, keeping the previous state in history."""
        now = now or datetime.now(timezone.utc)
        snapshot = {
            "date": self.reading_date.isoformat(),
            "cumulative_energy_consumption": self.cumulative_energy_consumption,
            "updated_at": now.isoformat(),
            "updated_by": updated_by,
        }
        # Reassign so the JSON column is flagged dirty
        self.history = [*(self.history or []), snapshot]
        self.cumulative_energy_consumption = value
