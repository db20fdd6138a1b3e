from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Session

from tabi.models.orm import BudgetItem, Trip

from .base import BaseRepository


class BudgetRepository(BaseRepository):
    """Budget items and the aggregates behind the budget summary."""

    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get(self, item_id: str) -> BudgetItem | None:
        return self.session.get(BudgetItem, item_id)

    def add(self, item: BudgetItem) -> BudgetItem:
        self.session.add(item)
        self.session.flush()
        return item

    def delete(self, item_id: str) -> int:
        return self.session.query(BudgetItem).filter(BudgetItem.id == item_id).delete()

    def list_for_trip(self, trip_id: str) -> list[BudgetItem]:
        return (
            self.session.query(BudgetItem)
            .filter(BudgetItem.trip_id == trip_id)
            .order_by(BudgetItem.spent_on, BudgetItem.created_at, BudgetItem.id)
            .all()
        )

    def total_budget(self, trip_id: str | None = None) -> float:
        query = self.session.query(sa.func.coalesce(sa.func.sum(Trip.total_budget), 0))
        if trip_id:
            query = query.filter(Trip.id == trip_id)
        return float(query.scalar() or 0)

    def spent_by_category(self, trip_id: str | None = None) -> list[tuple[str, float]]:
        query = self.session.query(
            BudgetItem.category,
            sa.func.sum(BudgetItem.amount),
        ).group_by(BudgetItem.category)
        if trip_id:
            query = query.filter(BudgetItem.trip_id == trip_id)
        return [(category, float(amount or 0)) for category, amount in query.all()]
