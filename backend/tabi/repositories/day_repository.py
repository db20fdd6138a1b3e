from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from tabi.models.orm import Day

from .base import BaseRepository


class DayRepository(BaseRepository):
    """Data access helpers for Day aggregates."""

    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get(self, day_id: str) -> Day | None:
        return (
            self.session.query(Day)
            .options(selectinload(Day.activities))
            .filter(Day.id == day_id)
            .one_or_none()
        )

    def get_plain(self, day_id: str) -> Day | None:
        return self.session.get(Day, day_id)

    def lock(self, day_ids: Iterable[str]) -> dict[str, Day]:
        """Row-lock the given days in id order and return them by id.

        Locking in a fixed order keeps two concurrent reorders over the same
        pair of days from deadlocking. Dialects without ``FOR UPDATE``
        (SQLite) serialize writers on their own.
        """

        ordered = sorted(set(day_ids))
        if not ordered:
            return {}
        rows = (
            self.session.execute(
                select(Day)
                .where(Day.id.in_(ordered))
                .order_by(Day.id)
                .with_for_update()
            )
            .scalars()
            .all()
        )
        return {day.id: day for day in rows}

    def add(self, day: Day) -> Day:
        self.session.add(day)
        self.session.flush()
        return day

    def delete(self, day_id: str) -> int:
        return self.session.query(Day).filter(Day.id == day_id).delete()
