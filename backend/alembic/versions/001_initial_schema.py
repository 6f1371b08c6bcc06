"""Region, business hub, feeder and reading tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Regions
    op.create_table(
        "regions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_regions_name", "regions", ["name"], unique=True)

    # Business hubs
    op.create_table(
        "business_hubs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("region_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("regions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_business_hubs_region_id", "business_hubs", ["region_id"])

    # Feeders
    op.create_table(
        "feeders",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("business_hub_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("business_hubs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("region_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("regions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("band", sa.String(10), nullable=False),
        sa.Column("daily_energy_uptake", sa.Float, nullable=False, server_default="0"),
        sa.Column("monthly_delivery_plan", sa.Float, nullable=False, server_default="0"),
        sa.Column("previous_month_consumption", sa.Float, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_feeders_region_hub", "feeders", ["region_id", "business_hub_id"])
    op.create_index("ix_feeders_region_band_status", "feeders", ["region_id", "band", "status"])

    # Readings
    op.create_table(
        "feeder_readings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("feeder_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("feeders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reading_date", sa.Date, nullable=False),
        sa.Column("cumulative_energy_consumption", sa.Float, nullable=False),
        sa.Column("recorded_by", sa.String(255), nullable=False),
        sa.Column("history", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("feeder_id", "reading_date", name="uq_feeder_readings_feeder_day"),
    )
    op.create_index("ix_feeder_readings_reading_date", "feeder_readings", ["reading_date"])


def downgrade() -> None:
    op.drop_table("feeder_readings")
    op.drop_table("feeders")
    op.drop_table("business_hubs")
    op.drop_table("regions")
