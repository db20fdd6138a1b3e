from __future__ import annotations

import json

import httpx
import pytest

from backend.tests.utils.factories import build_itinerary, persisted_layout
from tabi.client import (
    ItineraryBoard,
    MoveStatus,
    PlannerApiClient,
    PlannerApiError,
    SyncState,
    TripSnapshot,
)


def _names(snapshot: TripSnapshot) -> dict[str, list[str]]:
    return {
        day.title: [activity.name for activity in day.activities]
        for day in snapshot.days
    }


@pytest.mark.asyncio
async def test_move_is_published_then_confirmed(app, client):
    trip, days, _ = build_itinerary(client, {"D1": ["A", "B"], "D2": ["X"]})

    async with PlannerApiClient(app=app) as api:
        board = ItineraryBoard(api, trip["id"])
        published: list[TripSnapshot] = []
        board.subscribe(published.append)
        await board.refresh()

        outcome = await board.move(days["D1"], 1, days["D2"], 0)

    assert outcome.status is MoveStatus.CONFIRMED
    assert _names(outcome.snapshot) == {"D1": ["A"], "D2": ["B", "X"]}
    assert board.snapshot is outcome.snapshot
    assert board.confirmed is outcome.snapshot
    assert board.state is SyncState.IDLE
    # Initial load, then the optimistic candidate; nothing published after.
    assert len(published) == 2
    assert published[-1] is outcome.snapshot
    assert persisted_layout(days) == {
        "D1": [("A", 0)],
        "D2": [("B", 0), ("X", 1)],
    }


@pytest.mark.asyncio
async def test_failed_reorder_discards_candidate_and_refetches(app, client):
    trip, days, ids = build_itinerary(client, {"D": ["A", "B", "C"]})

    async with PlannerApiClient(app=app) as api:
        board = ItineraryBoard(api, trip["id"])
        await board.refresh()
        # Another session deletes C; the board still shows it.
        await api.delete_activity(ids["C"])

        outcome = await board.move(days["D"], 0, days["D"], 2)

    assert outcome.status is MoveStatus.REVERTED
    assert outcome.error == "Failed to reorder activities"
    assert _names(board.snapshot) == {"D": ["A", "B"]}
    assert [a.order for a in board.snapshot.days[0].activities] == [0, 1]
    assert board.confirmed is board.snapshot
    assert persisted_layout(days) == {"D": [("A", 0), ("B", 1)]}


@pytest.mark.asyncio
async def test_noop_move_sends_nothing(app, client):
    trip, days, _ = build_itinerary(client, {"D": ["A", "B"]})
    sent: list[str] = []

    async def _record(request: httpx.Request) -> None:
        sent.append(f"{request.method} {request.url.path}")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
        event_hooks={"request": [_record]},
    ) as raw:
        board = ItineraryBoard(PlannerApiClient(client=raw), trip["id"])
        await board.refresh()
        outcome = await board.move(days["D"], 1, days["D"], 1)

    assert outcome.status is MoveStatus.NOOP
    assert sent == [f"GET /api/trips/{trip['id']}"]


def _trip_payload() -> dict:
    return {
        "id": "t1",
        "name": "Offline",
        "days": [
            {
                "id": "d1",
                "date": "2026-11-02",
                "title": "Kyoto",
                "activities": [
                    {"id": "a", "dayId": "d1", "order": 0, "name": "A"},
                    {"id": "b", "dayId": "d1", "order": 1, "name": "B"},
                ],
            }
        ],
    }


@pytest.mark.asyncio
async def test_candidate_is_visible_while_persisting_and_reverted_offline():
    seen: dict[str, object] = {}
    calls = {"get": 0}
    board: ItineraryBoard | None = None

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            calls["get"] += 1
            if calls["get"] == 1:
                return httpx.Response(200, json=_trip_payload())
            raise httpx.ConnectError("planner unreachable", request=request)
        assert board is not None
        seen["state"] = board.state
        seen["names"] = _names(board.snapshot)
        seen["body"] = json.loads(request.content)
        return httpx.Response(500, json={"error": "Failed to reorder activities"})

    raw = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://planner"
    )
    async with PlannerApiClient(client=raw) as api:
        board = ItineraryBoard(api, "t1")
        original = await board.refresh()
        outcome = await board.move("d1", 0, "d1", 1)

    assert seen["state"] is SyncState.PERSISTING
    assert seen["names"] == {"Kyoto": ["B", "A"]}
    assert seen["body"] == {
        "activities": [
            {"id": "b", "dayId": "d1", "order": 0},
            {"id": "a", "dayId": "d1", "order": 1},
        ]
    }
    assert outcome.status is MoveStatus.REVERTED
    assert _names(board.snapshot) == {"Kyoto": ["A", "B"]}
    assert board.snapshot.days == original.days
    assert board.snapshot.version > original.version
    assert board.state is SyncState.IDLE
    assert calls["get"] == 2


@pytest.mark.asyncio
async def test_board_requires_refresh_before_moving():
    raw = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        base_url="http://planner",
    )
    async with PlannerApiClient(client=raw) as api:
        board = ItineraryBoard(api, "t1")
        with pytest.raises(RuntimeError):
            await board.move("d1", 0, "d1", 1)


@pytest.mark.asyncio
async def test_api_client_raises_on_error_status(app):
    async with PlannerApiClient(app=app) as api:
        with pytest.raises(PlannerApiError) as exc_info:
            await api.get_trip("missing")
    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Failed to fetch trip"
