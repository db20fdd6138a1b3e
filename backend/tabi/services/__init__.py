from .budget_service import BudgetService
from .trip_service import TripService

__all__ = ["BudgetService", "TripService"]
