from tabi.client.api import PlannerApiClient, PlannerApiError
from tabi.client.board import (
    BoardNotLoadedError,
    ItineraryBoard,
    MoveOutcome,
    MoveStatus,
    SyncState,
)
from tabi.client.snapshot import ActivityView, DayView, TripSnapshot

__all__ = [
    "ActivityView",
    "BoardNotLoadedError",
    "DayView",
    "ItineraryBoard",
    "MoveOutcome",
    "MoveStatus",
    "PlannerApiClient",
    "PlannerApiError",
    "SyncState",
    "TripSnapshot",
]
