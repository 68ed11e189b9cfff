"""
Food history queries over saved food logs.

Daily totals, meal-type filtering and calendar markers.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional, Set
from uuid import UUID

import structlog

from mealsnap.domain.meal.persistence.food_log_repository import IFoodLogRepository
from mealsnap.domain.meal.persistence.models import FoodLog

logger = structlog.get_logger(__name__)

# Widest offset of a real timezone (UTC+14 / UTC-12)
MAX_UTC_OFFSET = timedelta(hours=14)


class FoodHistoryService:
    """
    Read-side service for the food history.

    Example:
        >>> history = FoodHistoryService(repository)
        >>> logs = await history.logs_for_day(date.today())
        >>> total = await history.total_calories_for_day(date.today())
    """

    def __init__(self, repository: IFoodLogRepository):
        self.repository = repository

    async def list_all(self) -> List[FoodLog]:
        return await self.repository.list_all()

    async def logs_for_day(self, day: date) -> List[FoodLog]:
        return await self.repository.list_for_day(day)

    async def total_calories_for_day(self, day: date) -> float:
        return await self.repository.total_calories_for_day(day)

    async def has_logs(self, day: date) -> bool:
        return bool(await self.repository.list_for_day(day))

    @staticmethod
    def filter_by_meal_type(logs: List[FoodLog], meal_type: Optional[str]) -> List[FoodLog]:
        """
        Keep logs of one meal type.

        Args:
            logs: Logs to filter
            meal_type: Meal type to keep (None keeps everything)
        """
        if meal_type is None:
            return list(logs)
        return [log for log in logs if log.meal_type == meal_type]

    async def dates_with_logs(self, month: date) -> Set[date]:
        """
        Calendar days of the given month that have at least one log.

        Args:
            month: Any date inside the month
        """
        start = datetime(month.year, month.month, 1)
        if month.month == 12:
            next_month = datetime(month.year + 1, 1, 1)
        else:
            next_month = datetime(month.year, month.month + 1, 1)

        # Range is compared in UTC, days are read in each log's own timezone
        logs = await self.repository.list_by_date_range(
            start - MAX_UTC_OFFSET,
            next_month + MAX_UTC_OFFSET,
        )
        return {
            log.logged_at.date()
            for log in logs
            if (log.logged_at.year, log.logged_at.month) == (month.year, month.month)
        }

    async def delete_log(self, log_id: UUID) -> None:
        """
        Delete a log.

        Raises:
            FoodLogNotFoundError: If log_id is unknown
        """
        await self.repository.delete(log_id)
        logger.info("Food log removed from history", log_id=str(log_id))
