from __future__ import annotations

from datetime import date, time
from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = PROJECT_ROOT / "backend"
for candidate in (PROJECT_ROOT, BACKEND_DIR):
    if str(candidate) not in sys.path:
        sys.path.insert(0, str(candidate))

from tabi.core.db import session_scope
from tabi.models.orm import Activity, ActivityCategory, BudgetItem, Day, Trip

TRIP_NAME = "Demo: Tokyo and Kyoto in spring"

# (date, title, [(name, category, start, end, cost, lat, lng)])
DAYS = [
    (
        date(2026, 4, 1),
        "Arrival in Tokyo",
        [
            ("Check in at Shinjuku hotel", ActivityCategory.ACCOMMODATION, time(15), time(16), 0, None, None),
            ("Omoide Yokocho dinner", ActivityCategory.FOOD, time(19), time(21), 3500, 35.6933, 139.6995),
        ],
    ),
    (
        date(2026, 4, 2),
        "Asakusa and Ueno",
        [
            ("Senso-ji", ActivityCategory.CULTURE, time(9), time(10, 30), 0, 35.7148, 139.7967),
            ("Ueno Park hanami", ActivityCategory.NATURE, time(11), time(13), 0, 35.7156, 139.7745),
            ("Ameyoko market", ActivityCategory.SHOPPING, time(14), time(16), 5000, 35.7100, 139.7745),
        ],
    ),
    (
        date(2026, 4, 3),
        "Shinkansen to Kyoto",
        [
            ("Nozomi to Kyoto", ActivityCategory.TRANSPORT, time(8), time(10, 15), 14170, None, None),
            ("Fushimi Inari", ActivityCategory.SIGHTSEEING, time(13), time(16), 0, 34.9671, 135.7727),
        ],
    ),
]

BUDGET_ITEMS = [
    ("lodging", "Shinjuku hotel, 2 nights", 36000, date(2026, 4, 1)),
    ("transport", "Tokyo to Kyoto", 14170, date(2026, 4, 3)),
    ("food", "Omoide Yokocho", 3500, date(2026, 4, 1)),
]


def seed() -> None:
    with session_scope() as session:
        trip = session.query(Trip).filter_by(name=TRIP_NAME).one_or_none()
        if trip is not None:
            return
        trip = Trip(
            name=TRIP_NAME,
            description="Cherry blossom week across two cities.",
            start_date=DAYS[0][0],
            end_date=DAYS[-1][0],
            total_budget=180000,
        )
        session.add(trip)

        for day_date, title, activities in DAYS:
            day = Day(trip=trip, date=day_date, title=title)
            for order, (name, category, start, end, cost, lat, lng) in enumerate(
                activities
            ):
                day.activities.append(
                    Activity(
                        order=order,
                        name=name,
                        category=category,
                        start_time=start,
                        end_time=end,
                        cost=cost,
                        currency="JPY",
                        latitude=lat,
                        longitude=lng,
                    )
                )
            session.add(day)

        for category, description, amount, spent_on in BUDGET_ITEMS:
            trip.budget_items.append(
                BudgetItem(
                    category=category,
                    description=description,
                    amount=amount,
                    currency="JPY",
                    spent_on=spent_on,
                )
            )


if __name__ == "__main__":
    seed()
    print("Demo trip is ready.")
