from __future__ import annotations

from datetime import date as dt_date
from datetime import datetime, time

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from tabi.models.orm import ActivityCategory


class CamelModel(BaseModel):
    """Wire models speak camelCase and still accept snake_case input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ORMBaseSchema(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _check_time_window(start: time | None, end: time | None) -> None:
    if start and end and start >= end:
        msg = "startTime must be earlier than endTime"
        raise ValueError(msg)


class ActivityFields(CamelModel):
    description: str | None = None
    location: str | None = None
    address: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    place_id: str | None = None
    start_time: time | None = None
    end_time: time | None = None
    photo_url: str | None = None
    rating: float | None = Field(default=None, ge=0, le=5)


class ActivityCreate(ActivityFields):
    day_id: str
    name: str = Field(min_length=1, max_length=255)
    category: ActivityCategory = ActivityCategory.SIGHTSEEING
    cost: float = Field(default=0, ge=0)
    currency: str | None = Field(default=None, max_length=8)
    order: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_time_range(self) -> "ActivityCreate":
        _check_time_window(self.start_time, self.end_time)
        return self

    @model_validator(mode="after")
    def validate_coordinates(self) -> "ActivityCreate":
        if (self.latitude is None) ^ (self.longitude is None):
            msg = "latitude and longitude must be provided together"
            raise ValueError(msg)
        return self


class ActivityUpdate(ActivityFields):
    """Partial update; only fields present in the body are applied.

    A single coordinate may be sent on its own; the pair is checked against
    the stored row once merged.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: ActivityCategory | None = None
    cost: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, max_length=8)
    order: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_time_range(self) -> "ActivityUpdate":
        _check_time_window(self.start_time, self.end_time)
        return self


class ActivitySchema(ActivityFields, ORMBaseSchema):
    id: str
    day_id: str
    name: str
    category: ActivityCategory
    cost: float
    currency: str
    order: int = Field(ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ActivityDayRef(ORMBaseSchema):
    id: str
    date: dt_date
    title: str
    trip_id: str


class ActivityWithDaySchema(ActivitySchema):
    day: ActivityDayRef


class ReorderItem(CamelModel):
    id: str
    day_id: str
    order: int = Field(ge=0)


class ReorderPayload(CamelModel):
    activities: list[ReorderItem]


class DayCreate(CamelModel):
    date: dt_date
    title: str = Field(min_length=1, max_length=255)
    notes: str | None = None


class DayUpdate(CamelModel):
    date: dt_date | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    notes: str | None = None


class DaySchema(ORMBaseSchema):
    id: str
    trip_id: str
    date: dt_date
    title: str
    notes: str | None = None
    activities: list[ActivitySchema] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TripBase(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    start_date: dt_date
    end_date: dt_date
    total_budget: float = Field(default=0, ge=0)
    cover_image: str | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "TripBase":
        if self.start_date > self.end_date:
            msg = "startDate must not be later than endDate"
            raise ValueError(msg)
        return self


class TripCreate(TripBase):
    pass


class TripUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    start_date: dt_date | None = None
    end_date: dt_date | None = None
    total_budget: float | None = Field(default=None, ge=0)
    cover_image: str | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "TripUpdate":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            msg = "startDate must not be later than endDate"
            raise ValueError(msg)
        return self


class TripSchema(TripBase, ORMBaseSchema):
    id: str
    days: list[DaySchema] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TripCounts(CamelModel):
    days: int = 0
    budget_items: int = 0


class TripSummarySchema(ORMBaseSchema):
    id: str
    name: str
    description: str | None = None
    start_date: dt_date
    end_date: dt_date
    total_budget: float
    cover_image: str | None = None
    counts: TripCounts = Field(alias="_count")
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BudgetItemCreate(CamelModel):
    category: str = Field(min_length=1, max_length=64)
    description: str | None = Field(default=None, max_length=512)
    amount: float = Field(ge=0)
    currency: str | None = Field(default=None, max_length=8)
    spent_on: dt_date | None = None


class BudgetItemUpdate(CamelModel):
    category: str | None = Field(default=None, min_length=1, max_length=64)
    description: str | None = Field(default=None, max_length=512)
    amount: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, max_length=8)
    spent_on: dt_date | None = None


class BudgetItemSchema(ORMBaseSchema):
    id: str
    trip_id: str
    category: str
    description: str | None = None
    amount: float
    currency: str
    spent_on: dt_date | None = None
    created_at: datetime | None = None


class BudgetCategoryTotal(CamelModel):
    category: str
    amount: float


class BudgetSummarySchema(CamelModel):
    total_budget: float
    total_spent: float
    remaining: float
    percentage: float
    over_budget: bool
    over_by: float
    categories: list[BudgetCategoryTotal] = Field(default_factory=list)
