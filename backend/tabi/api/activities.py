from __future__ import annotations

from fastapi import APIRouter, Query
from sqlalchemy.exc import SQLAlchemyError

from tabi.core.logging import get_logger
from tabi.models.schemas import ActivityCreate, ActivityUpdate, ReorderPayload
from tabi.services.trip_service import PlannerError, TripService
from tabi.utils.responses import failure_response, success_response

router = APIRouter(prefix="/api", tags=["activities"])
logger = get_logger(__name__)

FAILURES = (PlannerError, SQLAlchemyError)


def _service() -> TripService:
    return TripService()


@router.get(
    "/activities",
    summary="List activities",
    description="Activities with their day's date and title, for the map view.",
)
def list_activities(
    trip_id: str | None = Query(default=None, alias="tripId"),
    located: bool = Query(
        default=False, description="Only activities with both coordinates"
    ),
) -> list[dict]:
    try:
        activities = _service().list_activities(trip_id=trip_id, located_only=located)
    except FAILURES as exc:
        return failure_response("Failed to fetch activities", exc, logger=logger)
    return [item.model_dump(mode="json", by_alias=True) for item in activities]


@router.post(
    "/activities",
    status_code=201,
    summary="Create activity",
    description="Appends to the day unless an explicit order is given.",
)
def create_activity(payload: ActivityCreate) -> dict:
    try:
        activity = _service().create_activity(payload)
    except FAILURES as exc:
        return failure_response("Failed to create activity", exc, logger=logger)
    return activity.model_dump(mode="json", by_alias=True)


# Declared before /activities/{activity_id} so "reorder" is not taken as an id.
@router.put(
    "/activities/reorder",
    summary="Reorder activities",
    description=(
        "Atomically rewrites dayId and order for every activity of one drag "
        "gesture. Either the whole batch applies or nothing does."
    ),
)
def reorder_activities(payload: ReorderPayload) -> dict:
    try:
        _service().reorder_activities(payload.activities)
    except FAILURES as exc:
        return failure_response("Failed to reorder activities", exc, logger=logger)
    return success_response()


@router.put("/activities/{activity_id}", summary="Update activity")
def update_activity(activity_id: str, payload: ActivityUpdate) -> dict:
    try:
        activity = _service().update_activity(activity_id, payload)
    except FAILURES as exc:
        return failure_response("Failed to update activity", exc, logger=logger)
    return activity.model_dump(mode="json", by_alias=True)


@router.delete(
    "/activities/{activity_id}",
    summary="Delete activity",
    description="Deletes the activity and closes the gap in its day's order.",
)
def delete_activity(activity_id: str) -> dict:
    try:
        _service().delete_activity(activity_id)
    except FAILURES as exc:
        return failure_response("Failed to delete activity", exc, logger=logger)
    return success_response()
