from __future__ import annotations

from datetime import date, time

import pytest
from sqlalchemy.exc import IntegrityError

from tabi.core.db import session_scope
from tabi.models.orm import Activity, ActivityCategory, BudgetItem, Day, Trip


def test_orm_can_persist_full_trip_graph() -> None:
    with session_scope() as session:
        trip = Trip(
            name="Hokkaido winter",
            start_date=date(2026, 2, 1),
            end_date=date(2026, 2, 5),
            total_budget=250000,
        )
        day = Day(date=date(2026, 2, 1), title="Sapporo", trip=trip)
        day.activities.append(
            Activity(
                name="Snow festival",
                order=0,
                category=ActivityCategory.CULTURE,
                currency="JPY",
                start_time=time(18, 0),
            )
        )
        trip.budget_items.append(
            BudgetItem(category="transport", amount=14000, currency="JPY")
        )
        session.add(trip)

    with session_scope() as session:
        persisted = session.query(Trip).filter_by(name="Hokkaido winter").one()
        activity = persisted.days[0].activities[0]
        assert activity.category is ActivityCategory.CULTURE
        assert activity.cost == 0
        assert len(persisted.id) == 32
        assert persisted.budget_items[0].amount == 14000


def test_day_and_order_must_be_unique() -> None:
    with session_scope() as session:
        trip = Trip(name="Clash", start_date=date(2026, 3, 1), end_date=date(2026, 3, 1))
        day = Day(date=date(2026, 3, 1), title="Only day", trip=trip)
        session.add(trip)
        session.flush()
        day_id = day.id

    with pytest.raises(IntegrityError):
        with session_scope() as session:
            session.add_all(
                [
                    Activity(day_id=day_id, name="One", order=0, currency="JPY"),
                    Activity(day_id=day_id, name="Two", order=0, currency="JPY"),
                ]
            )

    with session_scope() as session:
        assert session.query(Activity).filter_by(day_id=day_id).count() == 0
