from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from tabi.core.logging import get_logger
from tabi.models.schemas import DayCreate, DayUpdate, TripCreate, TripUpdate
from tabi.services.trip_service import PlannerError, TripService
from tabi.utils.responses import failure_response, success_response

router = APIRouter(prefix="/api", tags=["trips"])
logger = get_logger(__name__)

FAILURES = (PlannerError, SQLAlchemyError)


def _service() -> TripService:
    return TripService()


@router.get(
    "/trips",
    summary="List trips",
    description="All trips ordered by start date, with day and budget item counts.",
)
def list_trips() -> list[dict]:
    try:
        summaries = _service().list_trips()
    except FAILURES as exc:
        return failure_response("Failed to fetch trips", exc, logger=logger)
    return [summary.model_dump(mode="json", by_alias=True) for summary in summaries]


@router.post("/trips", status_code=201, summary="Create trip")
def create_trip(payload: TripCreate) -> dict:
    try:
        trip = _service().create_trip(payload)
    except FAILURES as exc:
        return failure_response("Failed to create trip", exc, logger=logger)
    return trip.model_dump(mode="json", by_alias=True)


@router.get(
    "/trips/{trip_id}",
    summary="Trip detail",
    description="Trip with its days (by date) and each day's activities (by order).",
)
def get_trip(trip_id: str) -> dict:
    try:
        trip = _service().get_trip(trip_id)
    except FAILURES as exc:
        return failure_response("Failed to fetch trip", exc, logger=logger)
    return trip.model_dump(mode="json", by_alias=True)


@router.put("/trips/{trip_id}", summary="Update trip")
def update_trip(trip_id: str, payload: TripUpdate) -> dict:
    try:
        trip = _service().update_trip(trip_id, payload)
    except FAILURES as exc:
        return failure_response("Failed to update trip", exc, logger=logger)
    return trip.model_dump(mode="json", by_alias=True)


@router.delete(
    "/trips/{trip_id}",
    summary="Delete trip",
    description="Deletes the trip together with its days, activities and budget items.",
)
def delete_trip(trip_id: str) -> dict:
    try:
        _service().delete_trip(trip_id)
    except FAILURES as exc:
        return failure_response("Failed to delete trip", exc, logger=logger)
    return success_response()


@router.post("/trips/{trip_id}/days", status_code=201, summary="Add day to trip")
def create_day(trip_id: str, payload: DayCreate) -> dict:
    try:
        day = _service().create_day(trip_id, payload)
    except FAILURES as exc:
        return failure_response("Failed to create day", exc, logger=logger)
    return day.model_dump(mode="json", by_alias=True)


@router.put("/days/{day_id}", summary="Update day")
def update_day(day_id: str, payload: DayUpdate) -> dict:
    try:
        day = _service().update_day(day_id, payload)
    except FAILURES as exc:
        return failure_response("Failed to update day", exc, logger=logger)
    return day.model_dump(mode="json", by_alias=True)


@router.delete(
    "/days/{day_id}",
    summary="Delete day",
    description="Deletes the day and every activity planned on it.",
)
def delete_day(day_id: str) -> dict:
    try:
        _service().delete_day(day_id)
    except FAILURES as exc:
        return failure_response("Failed to delete day", exc, logger=logger)
    return success_response()
