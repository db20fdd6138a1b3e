"""Drag-and-drop itinerary board with optimistic reordering.

The board keeps one published :class:`TripSnapshot`. A drop publishes the
locally computed result straight away, then persists the reorder batch. When
the server accepts it the candidate simply becomes the confirmed snapshot;
when anything fails the candidate is thrown away and the authoritative trip is
fetched again. Failures are never retried automatically.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable

from tabi.client.api import PlannerApiClient, PlannerApiError
from tabi.client.snapshot import TripSnapshot
from tabi.core.logging import get_logger
from tabi.services.ordering import OrderAssignment, Position, move_activity

logger = get_logger(__name__)

Listener = Callable[[TripSnapshot], None]


class SyncState(StrEnum):
    IDLE = "idle"
    OPTIMISTIC = "optimistic"
    PERSISTING = "persisting"


class MoveStatus(StrEnum):
    NOOP = "noop"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


@dataclass(frozen=True, slots=True)
class MoveOutcome:
    status: MoveStatus
    snapshot: TripSnapshot
    changes: tuple[OrderAssignment, ...] = ()
    error: str | None = None


class BoardNotLoadedError(RuntimeError):
    pass


class ItineraryBoard:
    def __init__(self, api: PlannerApiClient, trip_id: str) -> None:
        self._api = api
        self.trip_id = trip_id
        self._snapshot: TripSnapshot | None = None
        self._confirmed: TripSnapshot | None = None
        self._listeners: list[Listener] = []
        self._state = SyncState.IDLE
        # One gesture at a time; a second drop waits for the first to settle.
        self._gesture_lock = asyncio.Lock()

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def snapshot(self) -> TripSnapshot:
        if self._snapshot is None:
            raise BoardNotLoadedError(f"board for trip {self.trip_id} not loaded")
        return self._snapshot

    @property
    def confirmed(self) -> TripSnapshot | None:
        """Last snapshot known to match the server."""

        return self._confirmed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def refresh(self) -> TripSnapshot:
        payload = await self._api.get_trip(self.trip_id)
        version = self._snapshot.version + 1 if self._snapshot else 0
        snapshot = TripSnapshot.from_payload(payload, version=version)
        self._confirmed = snapshot
        self._publish(snapshot)
        return snapshot

    async def move(
        self,
        source_day_id: str,
        source_index: int,
        dest_day_id: str,
        dest_index: int,
    ) -> MoveOutcome:
        async with self._gesture_lock:
            current = self.snapshot
            result = move_activity(
                current.groups(),
                Position(source_day_id, source_index),
                Position(dest_day_id, dest_index),
            )
            if result.is_noop:
                return MoveOutcome(status=MoveStatus.NOOP, snapshot=current)

            self._state = SyncState.OPTIMISTIC
            candidate = current.with_move(result)
            self._publish(candidate)

            self._state = SyncState.PERSISTING
            try:
                await self._api.reorder_activities(result.changes)
            except PlannerApiError as exc:
                logger.warning(
                    "board.reorder_failed",
                    extra={
                        "trip_id": self.trip_id,
                        "activity_id": result.moved_id,
                        "error": exc.message,
                    },
                )
                snapshot = await self._reconcile_after_failure(candidate)
                return MoveOutcome(
                    status=MoveStatus.REVERTED,
                    snapshot=snapshot,
                    changes=result.changes,
                    error=exc.message,
                )
            finally:
                self._state = SyncState.IDLE

            self._confirmed = candidate
            logger.info(
                "board.reorder_confirmed",
                extra={
                    "trip_id": self.trip_id,
                    "activity_id": result.moved_id,
                    "changes": len(result.changes),
                },
            )
            return MoveOutcome(
                status=MoveStatus.CONFIRMED,
                snapshot=candidate,
                changes=result.changes,
            )

    async def _reconcile_after_failure(self, candidate: TripSnapshot) -> TripSnapshot:
        try:
            return await self.refresh()
        except PlannerApiError as exc:
            # Server unreachable: fall back to the last confirmed tree.
            logger.error(
                "board.refetch_failed",
                extra={"trip_id": self.trip_id, "error": exc.message},
            )
            fallback = self._confirmed or candidate
            restored = TripSnapshot(
                trip_id=fallback.trip_id,
                name=fallback.name,
                days=fallback.days,
                version=candidate.version + 1,
            )
            self._publish(restored)
            return restored

    def _publish(self, snapshot: TripSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
