from __future__ import annotations

import uuid
from datetime import date, datetime, time
from enum import StrEnum

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tabi.models import Base

ID_TYPE = sa.String(32)


def new_id() -> str:
    return uuid.uuid4().hex


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
        onupdate=sa.func.now(),
    )


class ActivityCategory(StrEnum):
    SIGHTSEEING = "sightseeing"
    FOOD = "food"
    TRANSPORT = "transport"
    SHOPPING = "shopping"
    ACCOMMODATION = "accommodation"
    CULTURE = "culture"
    NATURE = "nature"


def _category_values(enum_cls: type[ActivityCategory]) -> list[str]:
    return [member.value for member in enum_cls]


CATEGORY_ENUM = sa.Enum(
    ActivityCategory,
    name="activity_category",
    native_enum=False,
    validate_strings=True,
    values_callable=_category_values,
    length=32,
).with_variant(
    sa.Enum(
        ActivityCategory,
        name="activity_category",
        native_enum=True,
        validate_strings=True,
        values_callable=_category_values,
    ),
    "postgresql",
)


class Trip(TimestampMixin, Base):
    __tablename__ = "trips"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(sa.String(255))
    description: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    total_budget: Mapped[float] = mapped_column(
        sa.Float,
        nullable=False,
        default=0,
        server_default=sa.text("0"),
    )
    cover_image: Mapped[str | None] = mapped_column(sa.String(1024), nullable=True)

    days: Mapped[list["Day"]] = relationship(
        back_populates="trip",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Day.date",
    )
    budget_items: Mapped[list["BudgetItem"]] = relationship(
        back_populates="trip",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Day(TimestampMixin, Base):
    __tablename__ = "days"
    __table_args__ = (sa.Index("ix_days_trip_date", "trip_id", "date"),)

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=new_id)
    trip_id: Mapped[str] = mapped_column(
        ID_TYPE,
        sa.ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    title: Mapped[str] = mapped_column(sa.String(255))
    notes: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    trip: Mapped["Trip"] = relationship(back_populates="days")
    activities: Mapped[list["Activity"]] = relationship(
        back_populates="day",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Activity.order",
    )


class Activity(TimestampMixin, Base):
    __tablename__ = "activities"
    __table_args__ = (
        sa.UniqueConstraint("day_id", "order", name="uq_activities_day_order"),
    )

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=new_id)
    day_id: Mapped[str] = mapped_column(
        ID_TYPE,
        sa.ForeignKey("days.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order: Mapped[int] = mapped_column(
        sa.Integer,
        nullable=False,
        server_default=sa.text("0"),
    )
    name: Mapped[str] = mapped_column(sa.String(255))
    description: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    location: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(sa.String(512), nullable=True)
    latitude: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    place_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    start_time: Mapped[time | None] = mapped_column(sa.Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(sa.Time, nullable=True)
    category: Mapped[ActivityCategory] = mapped_column(
        CATEGORY_ENUM,
        nullable=False,
        default=ActivityCategory.SIGHTSEEING,
    )
    cost: Mapped[float] = mapped_column(
        sa.Float,
        nullable=False,
        default=0,
        server_default=sa.text("0"),
    )
    currency: Mapped[str] = mapped_column(sa.String(8), nullable=False)
    photo_url: Mapped[str | None] = mapped_column(sa.String(1024), nullable=True)
    rating: Mapped[float | None] = mapped_column(sa.Float, nullable=True)

    day: Mapped["Day"] = relationship(back_populates="activities")


class BudgetItem(TimestampMixin, Base):
    __tablename__ = "budget_items"

    id: Mapped[str] = mapped_column(ID_TYPE, primary_key=True, default=new_id)
    trip_id: Mapped[str] = mapped_column(
        ID_TYPE,
        sa.ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category: Mapped[str] = mapped_column(sa.String(64))
    description: Mapped[str | None] = mapped_column(sa.String(512), nullable=True)
    amount: Mapped[float] = mapped_column(sa.Float, nullable=False)
    currency: Mapped[str] = mapped_column(sa.String(8), nullable=False)
    spent_on: Mapped[date | None] = mapped_column(sa.Date, nullable=True)

    trip: Mapped["Trip"] = relationship(back_populates="budget_items")


__all__ = [
    "Trip",
    "Day",
    "Activity",
    "ActivityCategory",
    "BudgetItem",
    "new_id",
]
