from __future__ import annotations

from typing import Iterable

from tabi.core.cache import cache_backend
from tabi.core.db import session_scope
from tabi.core.settings import settings
from tabi.models.orm import BudgetItem
from tabi.models.schemas import (
    BudgetCategoryTotal,
    BudgetItemCreate,
    BudgetItemSchema,
    BudgetItemUpdate,
    BudgetSummarySchema,
)
from tabi.repositories import BudgetRepository, TripRepository
from tabi.services.trip_service import (
    TRIP_LIST_CACHE_NS,
    ResourceNotFoundError,
    TripServiceBase,
)

REQUIRED_BUDGET_ITEM_FIELDS = {"category", "amount", "currency"}


def summarize_budget(
    total_budget: float,
    spent_by_category: Iterable[tuple[str, float]],
) -> BudgetSummarySchema:
    """Fold category totals into the numbers the budget bar shows.

    ``percentage`` is capped at 100 and is 0 when no budget is set;
    ``over_by`` is the amount spent beyond the budget.
    """

    categories = sorted(
        (
            BudgetCategoryTotal(category=category, amount=round(amount, 2))
            for category, amount in spent_by_category
        ),
        key=lambda item: (-item.amount, item.category),
    )
    total_spent = round(sum(item.amount for item in categories), 2)
    percentage = (
        min(total_spent / total_budget * 100, 100.0) if total_budget > 0 else 0.0
    )
    over_budget = total_spent > total_budget
    return BudgetSummarySchema(
        total_budget=total_budget,
        total_spent=total_spent,
        remaining=round(total_budget - total_spent, 2),
        percentage=round(percentage, 2),
        over_budget=over_budget,
        over_by=round(total_spent - total_budget, 2) if over_budget else 0.0,
        categories=categories,
    )


class BudgetService(TripServiceBase):
    def get_summary(self, trip_id: str | None = None) -> BudgetSummarySchema:
        with session_scope() as session:
            repo = BudgetRepository(session)
            if trip_id and TripRepository(session).get(trip_id) is None:
                raise ResourceNotFoundError("Trip not found", code=14004)
            total = repo.total_budget(trip_id)
            spent = repo.spent_by_category(trip_id)
        return summarize_budget(total, spent)

    def list_items(self, trip_id: str) -> list[BudgetItemSchema]:
        with session_scope() as session:
            if TripRepository(session).get(trip_id) is None:
                raise ResourceNotFoundError("Trip not found", code=14004)
            items = BudgetRepository(session).list_for_trip(trip_id)
            return [BudgetItemSchema.model_validate(item) for item in items]

    def create_item(self, trip_id: str, payload: BudgetItemCreate) -> BudgetItemSchema:
        with session_scope() as session:
            if TripRepository(session).get(trip_id) is None:
                raise ResourceNotFoundError("Trip not found", code=14004)
            item = BudgetItem(
                trip_id=trip_id,
                category=payload.category,
                description=payload.description or None,
                amount=payload.amount,
                currency=payload.currency or settings.default_currency,
                spent_on=payload.spent_on,
            )
            BudgetRepository(session).add(item)
            schema = BudgetItemSchema.model_validate(item)
        cache_backend.invalidate(TRIP_LIST_CACHE_NS)
        self.logger.info(
            "budget_item.created",
            extra={"trip_id": trip_id, "budget_item_id": schema.id},
        )
        return schema

    def update_item(
        self, item_id: str, payload: BudgetItemUpdate
    ) -> BudgetItemSchema:
        with session_scope() as session:
            item = BudgetRepository(session).get(item_id)
            if item is None:
                raise ResourceNotFoundError("Budget item not found", code=14007)
            for field in payload.model_fields_set:
                value = getattr(payload, field)
                if value is None and field in REQUIRED_BUDGET_ITEM_FIELDS:
                    continue
                setattr(item, field, value)
            session.flush()
            schema = BudgetItemSchema.model_validate(item)
        self.logger.info(
            "budget_item.updated",
            extra={"trip_id": schema.trip_id, "budget_item_id": item_id},
        )
        return schema

    def delete_item(self, item_id: str) -> None:
        with session_scope() as session:
            repo = BudgetRepository(session)
            item = repo.get(item_id)
            if item is None:
                raise ResourceNotFoundError("Budget item not found", code=14007)
            trip_id = item.trip_id
            repo.delete(item_id)
        cache_backend.invalidate(TRIP_LIST_CACHE_NS)
        self.logger.info(
            "budget_item.deleted",
            extra={"trip_id": trip_id, "budget_item_id": item_id},
        )
