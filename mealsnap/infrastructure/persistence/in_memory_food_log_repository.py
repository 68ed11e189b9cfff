"""In-memory food log repository implementation.

Provides an in-memory implementation of IFoodLogRepository port.
Uses a dictionary for storage with no external dependencies.
"""

from copy import deepcopy
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID

import structlog

from mealsnap.domain.meal.analysis.models import FoodAnalysis
from mealsnap.domain.meal.persistence.models import FoodLog
from mealsnap.domain.shared.errors import FoodLogNotFoundError

logger = structlog.get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Normalize for comparison; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class InMemoryFoodLogRepository:
    """
    In-memory implementation of IFoodLogRepository port.

    Thread safety: NOT thread-safe (single event loop use)
    Persistence: Data lost on process restart (in-memory only)

    Example:
        >>> repository = InMemoryFoodLogRepository()
        >>> saved = await repository.save(FoodLog.from_analysis(analysis))
        >>> retrieved = await repository.get_by_id(saved.id)
    """

    def __init__(self) -> None:
        """Initialize repository with empty storage."""
        self._storage: Dict[UUID, FoodLog] = {}

    async def save(self, food_log: FoodLog) -> FoodLog:
        """
        Save or replace a food log in memory.

        Note:
            Stores a deep copy to prevent external modifications
        """
        self._storage[food_log.id] = deepcopy(food_log)
        logger.info(
            "Food log saved",
            log_id=str(food_log.id),
            total_calories=food_log.total_calories,
        )
        return deepcopy(food_log)

    async def get_by_id(self, log_id: UUID) -> Optional[FoodLog]:
        food_log = self._storage.get(log_id)
        return deepcopy(food_log) if food_log is not None else None

    async def list_all(self) -> List[FoodLog]:
        return self._sorted(self._storage.values())

    async def list_by_date_range(self, start: datetime, end: datetime) -> List[FoodLog]:
        """
        Get logs within an inclusive date range.

        Args:
            start: Start of range (inclusive)
            end: End of range (inclusive)

        Returns:
            Deep copies ordered by logged_at descending
        """
        lower = _as_utc(start)
        upper = _as_utc(end)
        return self._sorted(
            log for log in self._storage.values() if lower <= _as_utc(log.logged_at) <= upper
        )

    async def list_for_day(self, day: date) -> List[FoodLog]:
        # Calendar day in the timezone the entry was logged with
        return self._sorted(log for log in self._storage.values() if log.logged_at.date() == day)

    async def update(self, log_id: UUID, analysis: FoodAnalysis) -> FoodLog:
        """
        Replace analysis fields of an existing log.

        Raises:
            FoodLogNotFoundError: If log_id is unknown
        """
        food_log = self._storage.get(log_id)
        if food_log is None:
            raise FoodLogNotFoundError(f"Food log {log_id} not found")

        food_log.apply_analysis(deepcopy(analysis))
        logger.info("Food log updated", log_id=str(log_id))
        return deepcopy(food_log)

    async def delete(self, log_id: UUID) -> None:
        if log_id not in self._storage:
            raise FoodLogNotFoundError(f"Food log {log_id} not found")
        del self._storage[log_id]
        logger.info("Food log deleted", log_id=str(log_id))

    async def total_calories_for_day(self, day: date) -> float:
        logs = await self.list_for_day(day)
        return sum(log.total_calories for log in logs)

    def clear(self) -> None:
        """Clear all stored logs (test helper)."""
        self._storage.clear()

    @staticmethod
    def _sorted(logs: Iterable[FoodLog]) -> List[FoodLog]:
        ordered = sorted(logs, key=lambda log: _as_utc(log.logged_at), reverse=True)
        return [deepcopy(log) for log in ordered]
