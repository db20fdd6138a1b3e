from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from sqlalchemy.orm import Session

from tabi.core.cache import build_cache_key, cache_backend
from tabi.core.db import session_scope
from tabi.core.logging import get_logger
from tabi.core.settings import settings
from tabi.models.orm import Activity, Day, Trip
from tabi.models.schemas import (
    ActivityCreate,
    ActivitySchema,
    ActivityUpdate,
    ActivityWithDaySchema,
    DayCreate,
    DaySchema,
    DayUpdate,
    ReorderItem,
    TripCreate,
    TripSchema,
    TripSummarySchema,
    TripUpdate,
)
from tabi.repositories import ActivityRepository, DayRepository, TripRepository
from tabi.services.ordering import (
    OrderAssignment,
    OrderingError,
    append_position,
    apply_assignments,
    insert_at,
    is_dense,
    remove_item,
)

TRIP_LIST_CACHE_NS = "trip:list"
TRIP_DETAIL_CACHE_NS = "trip:detail"

# Activity fields copied verbatim from create/update payloads.
ACTIVITY_FIELDS = (
    "name",
    "description",
    "location",
    "address",
    "latitude",
    "longitude",
    "place_id",
    "start_time",
    "end_time",
    "category",
    "cost",
    "currency",
    "photo_url",
    "rating",
)
NON_NULLABLE_ACTIVITY_FIELDS = {"name", "category", "cost", "currency"}
REQUIRED_TRIP_FIELDS = {"name", "start_date", "end_date", "total_budget"}


class PlannerError(Exception):
    """Base class for planner failures raised by the service layer."""

    def __init__(self, message: str, code: int = 14000) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ResourceNotFoundError(PlannerError):
    pass


class PlannerValidationError(PlannerError):
    pass


class ReorderConflictError(PlannerError):
    """The reorder batch would leave a day without a dense ordering."""


@dataclass(frozen=True)
class ReorderResult:
    trip_id: str | None
    day_ids: tuple[str, ...]
    updated: int


def _invalidate_trip_list_cache() -> None:
    cache_backend.invalidate(TRIP_LIST_CACHE_NS)


def _invalidate_trip_detail_cache(trip_id: str | None = None) -> None:
    if trip_id is None:
        cache_backend.invalidate(TRIP_DETAIL_CACHE_NS)
        return
    cache_backend.invalidate(TRIP_DETAIL_CACHE_NS, trip_id)


class TripServiceBase:
    """Shared helpers used by specialized Trip services."""

    def __init__(self) -> None:
        self.logger = get_logger(self.__class__.__name__)

    def _load_trip(self, session: Session, trip_id: str) -> Trip | None:
        trip = TripRepository(session).get_with_details(trip_id)
        if trip is None:
            return None
        trip.days.sort(key=lambda day: (day.date, day.id))
        for day in trip.days:
            day.activities.sort(key=lambda item: (item.order, item.id))
        return trip

    def _require_day(self, locked: dict[str, Day], day_id: str) -> Day:
        day = locked.get(day_id)
        if day is None:
            raise ResourceNotFoundError("Day not found", code=14005)
        return day

    def _place(
        self,
        repo: ActivityRepository,
        day_id: str,
        activities: Iterable[Activity],
        ordered_ids: Sequence[str],
    ) -> None:
        """Write the dense order given by ``ordered_ids`` for one day.

        Only rows whose ``(day_id, order)`` actually changes are touched.
        """

        by_id = {activity.id: activity for activity in activities}
        placements = [
            (by_id[item_id], day_id, idx)
            for idx, item_id in enumerate(ordered_ids)
            if (by_id[item_id].day_id, by_id[item_id].order) != (day_id, idx)
        ]
        if placements:
            repo.write_positions(placements)


class TripQueryService(TripServiceBase):
    def list_trips(self) -> list[TripSummarySchema]:
        def _loader() -> list[TripSummarySchema]:
            with session_scope() as session:
                rows = TripRepository(session).list_summaries()
            return [
                TripSummarySchema.model_validate(
                    {
                        "id": trip.id,
                        "name": trip.name,
                        "description": trip.description,
                        "start_date": trip.start_date,
                        "end_date": trip.end_date,
                        "total_budget": trip.total_budget,
                        "cover_image": trip.cover_image,
                        "_count": {
                            "days": int(day_count or 0),
                            "budget_items": int(item_count or 0),
                        },
                        "created_at": trip.created_at,
                        "updated_at": trip.updated_at,
                    }
                )
                for trip, day_count, item_count in rows
            ]

        return cache_backend.remember(
            TRIP_LIST_CACHE_NS,
            build_cache_key("all"),
            settings.trip_list_ttl_seconds,
            _loader,
        )

    def get_trip(self, trip_id: str) -> TripSchema:
        def _loader() -> TripSchema:
            with session_scope() as session:
                trip = self._load_trip(session, trip_id)
                if trip is None:
                    raise ResourceNotFoundError("Trip not found", code=14004)
                return TripSchema.model_validate(trip)

        return cache_backend.remember(
            TRIP_DETAIL_CACHE_NS,
            trip_id,
            settings.trip_detail_ttl_seconds,
            _loader,
        )

    def list_activities(
        self,
        *,
        trip_id: str | None = None,
        located_only: bool = False,
    ) -> list[ActivityWithDaySchema]:
        with session_scope() as session:
            rows = ActivityRepository(session).list_with_day(
                trip_id=trip_id, located_only=located_only
            )
            return [ActivityWithDaySchema.model_validate(row) for row in rows]


class TripCommandService(TripServiceBase):
    def create_trip(self, payload: TripCreate) -> TripSchema:
        with session_scope() as session:
            trip = Trip(
                name=payload.name,
                description=payload.description or None,
                start_date=payload.start_date,
                end_date=payload.end_date,
                total_budget=payload.total_budget or 0,
                cover_image=payload.cover_image or None,
            )
            TripRepository(session).add(trip)
            loaded = self._load_trip(session, trip.id)
            assert loaded is not None
            schema = TripSchema.model_validate(loaded)
        _invalidate_trip_list_cache()
        self.logger.info("trip.created", extra={"trip_id": schema.id})
        return schema

    def update_trip(self, trip_id: str, payload: TripUpdate) -> TripSchema:
        with session_scope() as session:
            trip = TripRepository(session).get(trip_id)
            if trip is None:
                raise ResourceNotFoundError("Trip not found", code=14004)

            for field in payload.model_fields_set:
                value = getattr(payload, field)
                if value is None and field in REQUIRED_TRIP_FIELDS:
                    continue
                setattr(trip, field, value)
            if trip.start_date > trip.end_date:
                raise PlannerValidationError(
                    "startDate must not be later than endDate", code=14010
                )

            session.flush()
            loaded = self._load_trip(session, trip_id)
            assert loaded is not None
            schema = TripSchema.model_validate(loaded)
        _invalidate_trip_list_cache()
        _invalidate_trip_detail_cache(trip_id)
        self.logger.info("trip.updated", extra={"trip_id": trip_id})
        return schema

    def delete_trip(self, trip_id: str) -> None:
        with session_scope() as session:
            deleted = TripRepository(session).delete(trip_id)
            if not deleted:
                raise ResourceNotFoundError("Trip not found", code=14004)
        _invalidate_trip_list_cache()
        _invalidate_trip_detail_cache(trip_id)
        self.logger.info("trip.deleted", extra={"trip_id": trip_id})


class DayService(TripServiceBase):
    def create_day(self, trip_id: str, payload: DayCreate) -> DaySchema:
        with session_scope() as session:
            trip = TripRepository(session).get(trip_id)
            if trip is None:
                raise ResourceNotFoundError("Trip not found", code=14004)
            day = Day(
                trip_id=trip.id,
                date=payload.date,
                title=payload.title,
                notes=payload.notes or None,
            )
            DayRepository(session).add(day)
            schema = DaySchema.model_validate(day)
        _invalidate_trip_detail_cache(trip_id)
        _invalidate_trip_list_cache()
        self.logger.info("day.created", extra={"trip_id": trip_id, "day_id": schema.id})
        return schema

    def update_day(self, day_id: str, payload: DayUpdate) -> DaySchema:
        with session_scope() as session:
            day = DayRepository(session).get(day_id)
            if day is None:
                raise ResourceNotFoundError("Day not found", code=14005)
            if payload.date is not None:
                day.date = payload.date
            if payload.title is not None:
                day.title = payload.title
            if "notes" in payload.model_fields_set:
                day.notes = payload.notes
            session.flush()
            day.activities.sort(key=lambda item: (item.order, item.id))
            schema = DaySchema.model_validate(day)
            trip_id = day.trip_id
        _invalidate_trip_detail_cache(trip_id)
        self.logger.info("day.updated", extra={"trip_id": trip_id, "day_id": day_id})
        return schema

    def delete_day(self, day_id: str) -> None:
        with session_scope() as session:
            repo = DayRepository(session)
            day = repo.get_plain(day_id)
            if day is None:
                raise ResourceNotFoundError("Day not found", code=14005)
            trip_id = day.trip_id
            repo.delete(day_id)
        _invalidate_trip_detail_cache(trip_id)
        _invalidate_trip_list_cache()
        self.logger.info("day.deleted", extra={"trip_id": trip_id, "day_id": day_id})


class ActivityService(TripServiceBase):
    def create_activity(self, payload: ActivityCreate) -> ActivitySchema:
        with session_scope() as session:
            repo = ActivityRepository(session)
            day = self._require_day(
                DayRepository(session).lock([payload.day_id]), payload.day_id
            )
            existing = repo.list_for_day(day.id)
            activity = Activity(
                day_id=day.id,
                order=append_position(len(existing)),
                currency=payload.currency or settings.default_currency,
                **{
                    field: getattr(payload, field)
                    for field in ACTIVITY_FIELDS
                    if field != "currency"
                },
            )
            repo.add(activity)
            if payload.order is not None and payload.order < len(existing):
                ordered = insert_at(
                    [item.id for item in existing], activity.id, payload.order
                )
                self._place(repo, day.id, [*existing, activity], ordered)
            schema = ActivitySchema.model_validate(activity)
            trip_id = day.trip_id
        _invalidate_trip_detail_cache(trip_id)
        self.logger.info(
            "activity.created",
            extra={
                "trip_id": trip_id,
                "day_id": schema.day_id,
                "activity_id": schema.id,
                "order": schema.order,
            },
        )
        return schema

    def update_activity(
        self, activity_id: str, payload: ActivityUpdate
    ) -> ActivitySchema:
        with session_scope() as session:
            repo = ActivityRepository(session)
            activity = repo.get(activity_id)
            if activity is None:
                raise ResourceNotFoundError("Activity not found", code=14006)
            day = self._require_day(
                DayRepository(session).lock([activity.day_id]), activity.day_id
            )

            for field in ACTIVITY_FIELDS:
                if field not in payload.model_fields_set:
                    continue
                value = getattr(payload, field)
                if value is None and field in NON_NULLABLE_ACTIVITY_FIELDS:
                    continue
                setattr(activity, field, value)
            if (
                activity.start_time
                and activity.end_time
                and activity.start_time >= activity.end_time
            ):
                raise PlannerValidationError(
                    "startTime must be earlier than endTime", code=14012
                )
            if (activity.latitude is None) != (activity.longitude is None):
                raise PlannerValidationError(
                    "latitude and longitude must be set together", code=14013
                )
            session.flush()

            if payload.order is not None:
                existing = repo.list_for_day(day.id)
                ordered = insert_at(
                    [item.id for item in existing], activity.id, payload.order
                )
                self._place(repo, day.id, existing, ordered)
            schema = ActivitySchema.model_validate(activity)
            trip_id = day.trip_id
        _invalidate_trip_detail_cache(trip_id)
        self.logger.info(
            "activity.updated",
            extra={"trip_id": trip_id, "activity_id": activity_id},
        )
        return schema

    def delete_activity(self, activity_id: str) -> None:
        with session_scope() as session:
            repo = ActivityRepository(session)
            activity = repo.get(activity_id)
            if activity is None:
                raise ResourceNotFoundError("Activity not found", code=14006)
            day = self._require_day(
                DayRepository(session).lock([activity.day_id]), activity.day_id
            )
            remaining = repo.list_for_day(day.id)
            ordered = remove_item([item.id for item in remaining], activity_id)
            repo.delete(activity_id)
            session.flush()
            self._place(
                repo,
                day.id,
                [item for item in remaining if item.id != activity_id],
                ordered,
            )
            trip_id = day.trip_id
        _invalidate_trip_detail_cache(trip_id)
        self.logger.info(
            "activity.deleted",
            extra={"trip_id": trip_id, "activity_id": activity_id},
        )

    def reorder_activities(self, items: Sequence[ReorderItem]) -> ReorderResult:
        """Apply a drag gesture's ``(id, dayId, order)`` batch atomically.

        Activities not named in the batch keep their order; the batch as a
        whole must leave every touched day densely ordered, otherwise nothing
        is written.
        """

        if not items:
            return ReorderResult(trip_id=None, day_ids=(), updated=0)
        ids = [item.id for item in items]
        if len(set(ids)) != len(ids):
            raise ReorderConflictError("Activity listed twice in batch", code=14020)

        with session_scope() as session:
            repo = ActivityRepository(session)
            activities = repo.get_many(ids)
            missing = [item_id for item_id in ids if item_id not in activities]
            if missing:
                raise ResourceNotFoundError(
                    f"Activity not found: {', '.join(missing)}", code=14006
                )

            touched = {activity.day_id for activity in activities.values()}
            touched.update(item.day_id for item in items)
            locked = DayRepository(session).lock(touched)
            for day_id in touched:
                self._require_day(locked, day_id)
            trip_ids = {day.trip_id for day in locked.values()}
            if len(trip_ids) > 1:
                raise PlannerValidationError(
                    "Activities cannot move between trips", code=14011
                )

            current = repo.list_for_days(touched)
            groups = {
                day_id: [activity.id for activity in rows]
                for day_id, rows in current.items()
            }
            present = {item_id for rows in groups.values() for item_id in rows}
            if not set(ids) <= present:
                raise ReorderConflictError(
                    "Activity moved concurrently", code=14021
                )
            try:
                apply_assignments(
                    groups,
                    [
                        OrderAssignment(id=item.id, day_id=item.day_id, order=item.order)
                        for item in items
                    ],
                )
            except OrderingError as exc:
                raise ReorderConflictError(str(exc), code=14022) from exc

            repo.write_positions(
                [(activities[item.id], item.day_id, item.order) for item in items]
            )
            for day_id, rows in repo.list_for_days(touched).items():
                if not is_dense(activity.order for activity in rows):
                    raise ReorderConflictError(
                        f"Day {day_id} lost its dense order", code=14023
                    )
            trip_id = trip_ids.pop()

        _invalidate_trip_detail_cache(trip_id)
        result = ReorderResult(
            trip_id=trip_id, day_ids=tuple(sorted(touched)), updated=len(items)
        )
        self.logger.info(
            "activity.reordered",
            extra={
                "trip_id": trip_id,
                "day_ids": list(result.day_ids),
                "updated": result.updated,
            },
        )
        return result


class TripService:
    """Facade used by API layer to interact with specialized services."""

    def __init__(self) -> None:
        self.query_service = TripQueryService()
        self.command_service = TripCommandService()
        self.day_service = DayService()
        self.activity_service = ActivityService()

    def list_trips(self) -> list[TripSummarySchema]:
        return self.query_service.list_trips()

    def get_trip(self, trip_id: str) -> TripSchema:
        return self.query_service.get_trip(trip_id)

    def create_trip(self, payload: TripCreate) -> TripSchema:
        return self.command_service.create_trip(payload)

    def update_trip(self, trip_id: str, payload: TripUpdate) -> TripSchema:
        return self.command_service.update_trip(trip_id, payload)

    def delete_trip(self, trip_id: str) -> None:
        self.command_service.delete_trip(trip_id)

    def create_day(self, trip_id: str, payload: DayCreate) -> DaySchema:
        return self.day_service.create_day(trip_id, payload)

    def update_day(self, day_id: str, payload: DayUpdate) -> DaySchema:
        return self.day_service.update_day(day_id, payload)

    def delete_day(self, day_id: str) -> None:
        self.day_service.delete_day(day_id)

    def list_activities(
        self,
        *,
        trip_id: str | None = None,
        located_only: bool = False,
    ) -> list[ActivityWithDaySchema]:
        return self.query_service.list_activities(
            trip_id=trip_id, located_only=located_only
        )

    def create_activity(self, payload: ActivityCreate) -> ActivitySchema:
        return self.activity_service.create_activity(payload)

    def update_activity(
        self, activity_id: str, payload: ActivityUpdate
    ) -> ActivitySchema:
        return self.activity_service.update_activity(activity_id, payload)

    def delete_activity(self, activity_id: str) -> None:
        self.activity_service.delete_activity(activity_id)

    def reorder_activities(self, items: Sequence[ReorderItem]) -> ReorderResult:
        return self.activity_service.reorder_activities(items)


__all__ = [
    "TripService",
    "PlannerError",
    "ResourceNotFoundError",
    "PlannerValidationError",
    "ReorderConflictError",
    "ReorderResult",
    "TripQueryService",
    "TripCommandService",
    "DayService",
    "ActivityService",
]
