from __future__ import annotations

from fastapi import APIRouter, Query
from sqlalchemy.exc import SQLAlchemyError

from tabi.core.logging import get_logger
from tabi.models.schemas import BudgetItemCreate, BudgetItemUpdate
from tabi.services.budget_service import BudgetService
from tabi.services.trip_service import PlannerError
from tabi.utils.responses import failure_response, success_response

router = APIRouter(prefix="/api", tags=["budget"])
logger = get_logger(__name__)

FAILURES = (PlannerError, SQLAlchemyError)


@router.get(
    "/budget",
    summary="Budget summary",
    description="Budget versus spending, for one trip or across all trips.",
)
def get_budget(trip_id: str | None = Query(default=None, alias="tripId")) -> dict:
    try:
        summary = BudgetService().get_summary(trip_id)
    except FAILURES as exc:
        return failure_response("Failed to fetch budget", exc, logger=logger)
    return summary.model_dump(mode="json", by_alias=True)


@router.get("/trips/{trip_id}/budget-items", summary="List budget items")
def list_budget_items(trip_id: str) -> list[dict]:
    try:
        items = BudgetService().list_items(trip_id)
    except FAILURES as exc:
        return failure_response("Failed to fetch budget items", exc, logger=logger)
    return [item.model_dump(mode="json", by_alias=True) for item in items]


@router.post(
    "/trips/{trip_id}/budget-items", status_code=201, summary="Add budget item"
)
def create_budget_item(trip_id: str, payload: BudgetItemCreate) -> dict:
    try:
        item = BudgetService().create_item(trip_id, payload)
    except FAILURES as exc:
        return failure_response("Failed to create budget item", exc, logger=logger)
    return item.model_dump(mode="json", by_alias=True)


@router.put("/budget-items/{item_id}", summary="Update budget item")
def update_budget_item(item_id: str, payload: BudgetItemUpdate) -> dict:
    try:
        item = BudgetService().update_item(item_id, payload)
    except FAILURES as exc:
        return failure_response("Failed to update budget item", exc, logger=logger)
    return item.model_dump(mode="json", by_alias=True)


@router.delete("/budget-items/{item_id}", summary="Delete budget item")
def delete_budget_item(item_id: str) -> dict:
    try:
        BudgetService().delete_item(item_id)
    except FAILURES as exc:
        return failure_response("Failed to delete budget item", exc, logger=logger)
    return success_response()
