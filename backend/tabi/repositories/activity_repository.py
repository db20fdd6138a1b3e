from __future__ import annotations

from typing import Iterable, Sequence

import sqlalchemy as sa
from sqlalchemy.orm import Session, attributes as orm_attributes, joinedload
from sqlalchemy.orm.exc import StaleDataError

from tabi.models.orm import Activity, Day

from .base import BaseRepository


class ActivityRepository(BaseRepository):
    """Data access helpers for Activity records."""

    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get(self, activity_id: str) -> Activity | None:
        return self.session.get(Activity, activity_id)

    def get_many(self, activity_ids: Iterable[str]) -> dict[str, Activity]:
        ids = list(set(activity_ids))
        if not ids:
            return {}
        rows = self.session.query(Activity).filter(Activity.id.in_(ids)).all()
        return {activity.id: activity for activity in rows}

    def add(self, activity: Activity) -> Activity:
        self.session.add(activity)
        self.session.flush()
        return activity

    def delete(self, activity_id: str) -> int:
        return (
            self.session.query(Activity).filter(Activity.id == activity_id).delete()
        )

    def list_for_day(self, day_id: str) -> list[Activity]:
        return (
            self.session.query(Activity)
            .filter(Activity.day_id == day_id)
            .order_by(Activity.order, Activity.id)
            .all()
        )

    def list_for_days(self, day_ids: Iterable[str]) -> dict[str, list[Activity]]:
        ids = list(set(day_ids))
        grouped: dict[str, list[Activity]] = {day_id: [] for day_id in ids}
        if not ids:
            return grouped
        rows = (
            self.session.query(Activity)
            .filter(Activity.day_id.in_(ids))
            .order_by(Activity.day_id, Activity.order, Activity.id)
            .populate_existing()
            .all()
        )
        for activity in rows:
            grouped[activity.day_id].append(activity)
        return grouped

    def list_with_day(
        self,
        *,
        trip_id: str | None = None,
        located_only: bool = False,
    ) -> list[Activity]:
        query = (
            self.session.query(Activity)
            .join(Day, Day.id == Activity.day_id)
            .options(joinedload(Activity.day))
            .order_by(Day.date, Day.id, Activity.order)
        )
        if trip_id:
            query = query.filter(Day.trip_id == trip_id)
        if located_only:
            query = query.filter(
                Activity.latitude.is_not(None), Activity.longitude.is_not(None)
            )
        return query.all()

    def write_positions(
        self, placements: Sequence[tuple[Activity, str, int]]
    ) -> None:
        """Persist ``(activity, day_id, order)`` placements in two phases.

        Every row is first parked on a unique negative order so that no
        intermediate state trips ``uq_activities_day_order``, then moved to
        its final slot. Raises ``StaleDataError`` when a row vanished since
        it was loaded.
        """

        for idx, (activity, _day_id, _order) in enumerate(placements):
            parked = -(idx + 1)
            self._update_row(activity, order=parked)
            orm_attributes.set_committed_value(activity, "order", parked)
        for activity, day_id, order in placements:
            self._update_row(activity, day_id=day_id, order=order)
            orm_attributes.set_committed_value(activity, "day_id", day_id)
            orm_attributes.set_committed_value(activity, "order", order)

    def _update_row(self, activity: Activity, **values) -> None:
        result = self.session.execute(
            sa.update(Activity).where(Activity.id == activity.id).values(**values)
        )
        if result.rowcount != 1:
            raise StaleDataError(
                f"Activity {activity.id} matched {result.rowcount} rows on update"
            )
