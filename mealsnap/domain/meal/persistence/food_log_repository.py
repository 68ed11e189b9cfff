"""
Food log repository interface.

Protocol for the local record store holding saved analyses.
"""

from datetime import date, datetime
from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from mealsnap.domain.meal.analysis.models import FoodAnalysis
from mealsnap.domain.meal.persistence.models import FoodLog


@runtime_checkable
class IFoodLogRepository(Protocol):
    """
    Repository interface for saved food logs.

    Implementations must provide:
    - Create / update / delete of single entries
    - Queries by inclusive date range, newest first
    - Daily calorie totals

    Design Pattern: Repository Pattern + Protocol (Dependency Injection)

    Example:
        >>> repository = InMemoryFoodLogRepository()
        >>> saved = await repository.save(FoodLog.from_analysis(analysis))
        >>> today = await repository.list_for_day(date.today())
    """

    async def save(self, food_log: FoodLog) -> FoodLog:
        """
        Insert or replace a food log.

        Returns:
            The stored entry
        """
        ...

    async def get_by_id(self, log_id: UUID) -> Optional[FoodLog]:
        """Retrieve a log, None if unknown."""
        ...

    async def list_all(self) -> list[FoodLog]:
        """All logs ordered by logged_at DESC."""
        ...

    async def list_by_date_range(self, start: datetime, end: datetime) -> list[FoodLog]:
        """
        Logs with start <= logged_at <= end, ordered by logged_at DESC.

        Args:
            start: Range start (inclusive)
            end: Range end (inclusive)
        """
        ...

    async def list_for_day(self, day: date) -> list[FoodLog]:
        """Logs whose logged_at falls on the given calendar day."""
        ...

    async def update(self, log_id: UUID, analysis: FoodAnalysis) -> FoodLog:
        """
        Replace the analysis fields of an existing log.

        Raises:
            FoodLogNotFoundError: If log_id is unknown
        """
        ...

    async def delete(self, log_id: UUID) -> None:
        """
        Delete a log.

        Raises:
            FoodLogNotFoundError: If log_id is unknown
        """
        ...

    async def total_calories_for_day(self, day: date) -> float:
        """Sum of total_calories of the day's logs."""
        ...
