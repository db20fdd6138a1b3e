from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from tabi.models.orm import BudgetItem, Day, Trip

from .base import BaseRepository


class TripRepository(BaseRepository):
    """Encapsulates Trip level data operations."""

    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def list_summaries(self) -> list[tuple[Trip, int, int]]:
        day_counts = (
            sa.select(Day.trip_id, func.count(Day.id).label("day_count"))
            .group_by(Day.trip_id)
            .subquery()
        )
        item_counts = (
            sa.select(
                BudgetItem.trip_id,
                func.count(BudgetItem.id).label("budget_item_count"),
            )
            .group_by(BudgetItem.trip_id)
            .subquery()
        )
        query = (
            self.session.query(
                Trip,
                func.coalesce(day_counts.c.day_count, 0),
                func.coalesce(item_counts.c.budget_item_count, 0),
            )
            .outerjoin(day_counts, day_counts.c.trip_id == Trip.id)
            .outerjoin(item_counts, item_counts.c.trip_id == Trip.id)
            .order_by(Trip.start_date.asc(), Trip.id)
        )
        return [tuple(row) for row in query.all()]

    def get_with_details(self, trip_id: str) -> Trip | None:
        return (
            self.session.query(Trip)
            .options(selectinload(Trip.days).selectinload(Day.activities))
            .filter(Trip.id == trip_id)
            .one_or_none()
        )

    def get(self, trip_id: str) -> Trip | None:
        return self.session.get(Trip, trip_id)

    def add(self, trip: Trip) -> Trip:
        self.session.add(trip)
        self.session.flush()
        return trip

    def delete(self, trip_id: str) -> int:
        return self.session.query(Trip).filter(Trip.id == trip_id).delete()
