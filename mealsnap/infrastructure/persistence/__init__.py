"""Food log storage adapters."""

from mealsnap.infrastructure.persistence.in_memory_food_log_repository import (
    InMemoryFoodLogRepository,
)

__all__ = ["InMemoryFoodLogRepository"]
