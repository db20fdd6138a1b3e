from .activity_repository import ActivityRepository
from .budget_repository import BudgetRepository
from .day_repository import DayRepository
from .trip_repository import TripRepository

__all__ = [
    "TripRepository",
    "DayRepository",
    "ActivityRepository",
    "BudgetRepository",
]
