from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from tabi.services.ordering import MoveResult


@dataclass(frozen=True, slots=True)
class ActivityView:
    id: str
    day_id: str
    order: int
    name: str
    category: str
    cost: float
    currency: str
    start_time: str | None = None
    end_time: str | None = None
    location: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ActivityView":
        return cls(
            id=payload["id"],
            day_id=payload["dayId"],
            order=int(payload["order"]),
            name=payload["name"],
            category=payload.get("category", "sightseeing"),
            cost=float(payload.get("cost") or 0),
            currency=payload.get("currency") or "",
            start_time=payload.get("startTime"),
            end_time=payload.get("endTime"),
            location=payload.get("location"),
        )


@dataclass(frozen=True, slots=True)
class DayView:
    id: str
    date: str
    title: str
    activities: tuple[ActivityView, ...] = ()

    @property
    def activity_ids(self) -> tuple[str, ...]:
        return tuple(activity.id for activity in self.activities)


@dataclass(frozen=True, slots=True)
class TripSnapshot:
    """Immutable view of one trip tree as last seen (or optimistically guessed).

    Snapshots are never patched: a move produces a new snapshot and the board
    swaps it in whole.
    """

    trip_id: str
    name: str
    days: tuple[DayView, ...]
    version: int = 0

    @classmethod
    def from_payload(
        cls, payload: Mapping[str, Any], *, version: int = 0
    ) -> "TripSnapshot":
        days = []
        for day in sorted(payload.get("days", []), key=lambda d: (d["date"], d["id"])):
            activities = sorted(
                (ActivityView.from_payload(item) for item in day.get("activities", [])),
                key=lambda item: (item.order, item.id),
            )
            days.append(
                DayView(
                    id=day["id"],
                    date=day["date"],
                    title=day["title"],
                    activities=tuple(activities),
                )
            )
        return cls(
            trip_id=payload["id"],
            name=payload["name"],
            days=tuple(days),
            version=version,
        )

    def groups(self) -> dict[str, tuple[str, ...]]:
        return {day.id: day.activity_ids for day in self.days}

    def day(self, day_id: str) -> DayView:
        for day in self.days:
            if day.id == day_id:
                return day
        raise KeyError(day_id)

    def with_move(self, move: MoveResult) -> "TripSnapshot":
        """Return the snapshot that results from applying ``move``."""

        by_id = {
            activity.id: activity for day in self.days for activity in day.activities
        }
        days = tuple(
            replace(
                day,
                activities=tuple(
                    replace(by_id[activity_id], day_id=day.id, order=idx)
                    for idx, activity_id in enumerate(move.groups[day.id])
                ),
            )
            for day in self.days
        )
        return replace(self, days=days, version=self.version + 1)
