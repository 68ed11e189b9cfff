"""
Food log persistence models.

A FoodLog is a saved FoodAnalysis plus timestamps and an optional
JPEG thumbnail of the photographed meal.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from mealsnap.domain.meal.analysis.models import (
    DEFAULT_MEAL_TYPE,
    FoodAnalysis,
    Ingredient,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FoodLog(BaseModel):
    """
    Saved meal entry.

    Attributes:
        id: Unique log identifier
        logged_at: When the meal was eaten (used by date queries)
        meal_type: Meal category copied from the analysis
        total_calories: Total copied from the analysis
        description: Free-text description
        ingredients: Ingredient snapshot
        thumbnail: Optional JPEG thumbnail bytes
        created_at: Creation timestamp
        updated_at: Last update timestamp

    Example:
        >>> log = FoodLog.from_analysis(analysis, logged_at=datetime.now(timezone.utc))
        >>> restored = log.to_analysis()
        >>> assert restored.total_calories == analysis.total_calories
    """

    id: UUID = Field(default_factory=uuid4, description="Log identifier")
    logged_at: datetime = Field(default_factory=_utcnow, description="Meal time")
    meal_type: Optional[str] = Field(None, description="Meal category")
    total_calories: float = Field(0.0, ge=0, description="Total calories")
    description: Optional[str] = Field(None, description="Meal description")
    ingredients: List[Ingredient] = Field(default_factory=list, description="Ingredients")
    thumbnail: Optional[bytes] = Field(None, description="JPEG thumbnail")
    created_at: datetime = Field(default_factory=_utcnow, description="Created at")
    updated_at: datetime = Field(default_factory=_utcnow, description="Updated at")

    @classmethod
    def from_analysis(
        cls,
        analysis: FoodAnalysis,
        logged_at: Optional[datetime] = None,
        thumbnail: Optional[bytes] = None,
    ) -> FoodLog:
        """Create a new log entry from an analysis snapshot."""
        now = _utcnow()
        return cls(
            logged_at=logged_at or now,
            meal_type=analysis.meal_type,
            total_calories=analysis.total_calories,
            description=analysis.description,
            ingredients=list(analysis.ingredients),
            thumbnail=thumbnail,
            created_at=now,
            updated_at=now,
        )

    def apply_analysis(self, analysis: FoodAnalysis) -> None:
        """Overwrite analysis fields and bump updated_at."""
        self.meal_type = analysis.meal_type
        self.total_calories = analysis.total_calories
        self.description = analysis.description
        self.ingredients = list(analysis.ingredients)
        self.updated_at = _utcnow()

    def to_analysis(self) -> FoodAnalysis:
        """
        Rebuild an editable FoodAnalysis.

        Missing meal type falls back to "snack", missing description to "".
        """
        return FoodAnalysis(
            ingredients=list(self.ingredients),
            total_calories=self.total_calories,
            meal_type=self.meal_type or DEFAULT_MEAL_TYPE,
            description=self.description or "",
        )
