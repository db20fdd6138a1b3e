"""Trips, days, activities and budget items."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20260301_01"
down_revision = None
branch_labels = None
depends_on = None

CATEGORY_VALUES = (
    "sightseeing",
    "food",
    "transport",
    "shopping",
    "accommodation",
    "culture",
    "nature",
)
ID_TYPE = sa.String(length=32)


def _is_postgres() -> bool:
    bind = op.get_bind()
    return bind.dialect.name == "postgresql"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    is_postgres = bind.dialect.name == "postgresql"

    category_type: sa.types.TypeEngine = sa.String(length=32)
    if is_postgres:
        category_enum = postgresql.ENUM(*CATEGORY_VALUES, name="activity_category")
        category_enum.create(bind, checkfirst=True)
        category_type = postgresql.ENUM(
            *CATEGORY_VALUES,
            name="activity_category",
            create_type=False,
        )

    op.create_table(
        "trips",
        sa.Column("id", ID_TYPE, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column(
            "total_budget", sa.Float(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column("cover_image", sa.String(length=1024), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "days",
        sa.Column("id", ID_TYPE, primary_key=True),
        sa.Column(
            "trip_id",
            ID_TYPE,
            sa.ForeignKey(
                "trips.id", ondelete="CASCADE", name="fk_days_trip_id_trips"
            ),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_days_trip_date", "days", ["trip_id", "date"])

    op.create_table(
        "activities",
        sa.Column("id", ID_TYPE, primary_key=True),
        sa.Column(
            "day_id",
            ID_TYPE,
            sa.ForeignKey(
                "days.id", ondelete="CASCADE", name="fk_activities_day_id_days"
            ),
            nullable=False,
        ),
        sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("place_id", sa.String(length=255), nullable=True),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("category", category_type, nullable=False),
        sa.Column("cost", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("photo_url", sa.String(length=1024), nullable=True),
        sa.Column("rating", sa.Float(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("day_id", "order", name="uq_activities_day_order"),
    )
    op.create_index("ix_activities_day_id", "activities", ["day_id"])

    op.create_table(
        "budget_items",
        sa.Column("id", ID_TYPE, primary_key=True),
        sa.Column(
            "trip_id",
            ID_TYPE,
            sa.ForeignKey(
                "trips.id", ondelete="CASCADE", name="fk_budget_items_trip_id_trips"
            ),
            nullable=False,
        ),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("spent_on", sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_budget_items_trip_id", "budget_items", ["trip_id"])


def downgrade() -> None:
    is_postgres = _is_postgres()

    op.drop_index("ix_budget_items_trip_id", table_name="budget_items")
    op.drop_table("budget_items")
    op.drop_index("ix_activities_day_id", table_name="activities")
    op.drop_table("activities")
    op.drop_index("ix_days_trip_date", table_name="days")
    op.drop_table("days")
    op.drop_table("trips")

    if is_postgres:
        category_enum = postgresql.ENUM(*CATEGORY_VALUES, name="activity_category")
        category_enum.drop(op.get_bind(), checkfirst=True)
