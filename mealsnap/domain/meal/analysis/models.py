"""
Domain models for food photo analysis.

Ingredient and FoodAnalysis mirror the JSON object returned by the
vision model (camelCase on the wire, snake_case in Python).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = structlog.get_logger(__name__)


class MealType(str, Enum):
    """
    Meal categories suggested to the model.

    The set is open: the API may return other values and they are kept
    verbatim in FoodAnalysis.meal_type.
    """

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"

    @classmethod
    def is_known(cls, value: str) -> bool:
        """Check whether value is one of the suggested categories."""
        return value.strip().lower() in {m.value for m in cls}


DEFAULT_MEAL_TYPE = MealType.SNACK.value


class Ingredient(BaseModel):
    """
    Single food component of an analysis.

    Attributes:
        id: Identifier, generated when absent or malformed in the payload
        name: Food name (e.g., "Grilled chicken")
        quantity: Amount in `unit`
        unit: Free-text unit (g, ml, oz, slice...)
        calories: Calories for the whole quantity

    Example:
        >>> rice = Ingredient(name="White rice", quantity=150, unit="g", calories=195)
        >>> rice.calories_per_unit
        1.3
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4, description="Ingredient identifier")
    name: str = Field(..., description="Food name")
    quantity: float = Field(..., ge=0, description="Amount in unit")
    unit: str = Field(..., description="Unit of measure")
    calories: float = Field(..., ge=0, description="Calories for quantity")

    @field_validator("id", mode="before")
    @classmethod
    def ensure_id(cls, v: Any) -> UUID:
        """Replace a null or unparsable id with a fresh one."""
        if isinstance(v, UUID):
            return v
        if isinstance(v, str):
            try:
                return UUID(v)
            except ValueError:
                pass
        if v is not None:
            logger.warning(
                "Discarding malformed ingredient id",
                raw_id=repr(v)[:64],
            )
        return uuid4()

    @property
    def calories_per_unit(self) -> float:
        """Calories for one unit, 0 when quantity is 0."""
        if self.quantity <= 0:
            return 0.0
        return self.calories / self.quantity


class FoodAnalysis(BaseModel):
    """
    Structured nutrition result for one photographed meal.

    Ingredient order is the order returned by the API. The total is
    recalculated on every ingredient mutation, never trusted from edits.

    Example:
        >>> analysis = FoodAnalysis.model_validate({
        ...     "ingredients": [
        ...         {"name": "Egg", "quantity": 2, "unit": "pcs", "calories": 140},
        ...     ],
        ...     "totalCalories": 140,
        ...     "mealType": "breakfast",
        ...     "description": "Two boiled eggs",
        ... })
        >>> analysis.add_ingredient(
        ...     Ingredient(name="Toast", quantity=1, unit="slice", calories=80)
        ... )
        >>> analysis.total_calories
        220.0
    """

    model_config = ConfigDict(populate_by_name=True)

    ingredients: List[Ingredient] = Field(..., description="Ordered food components")
    total_calories: float = Field(..., alias="totalCalories", description="Sum of calories")
    meal_type: str = Field(..., alias="mealType", description="breakfast/lunch/dinner/snack/...")
    description: str = Field(..., description="Short description of the meal")

    @model_validator(mode="after")
    def unique_ingredient_ids(self) -> "FoodAnalysis":
        """Re-issue duplicated ingredient ids."""
        seen: set[UUID] = set()
        for index, ingredient in enumerate(self.ingredients):
            if ingredient.id in seen:
                logger.warning(
                    "Duplicate ingredient id re-issued",
                    index=index,
                    ingredient_id=str(ingredient.id),
                )
                ingredient = ingredient.model_copy(update={"id": uuid4()})
                self.ingredients[index] = ingredient
            seen.add(ingredient.id)
        return self

    @classmethod
    def from_ingredient(cls, ingredient: Ingredient) -> FoodAnalysis:
        """Start a new snack analysis from a single ingredient."""
        return cls(
            ingredients=[ingredient],
            total_calories=ingredient.calories,
            meal_type=DEFAULT_MEAL_TYPE,
            description="",
        )

    # ─── Mutations ────────────────────────────────────────

    def recalculate_total_calories(self) -> None:
        """Set total_calories to the sum of ingredient calories."""
        self.total_calories = sum(ingredient.calories for ingredient in self.ingredients)

    def add_ingredient(self, ingredient: Ingredient) -> None:
        """Append ingredient (re-issuing its id if already used)."""
        if any(existing.id == ingredient.id for existing in self.ingredients):
            ingredient = ingredient.model_copy(update={"id": uuid4()})
        self.ingredients.append(ingredient)
        self.recalculate_total_calories()

    def update_ingredient(self, index: int, name: str, quantity: float, unit: str) -> bool:
        """
        Edit ingredient at index, scaling its calories to the new quantity.

        Calories become `old.calories_per_unit * quantity`.

        Returns:
            False if index is out of range or quantity is negative/NaN
            (nothing changed)
        """
        if not 0 <= index < len(self.ingredients):
            return False
        if not quantity >= 0:
            logger.warning("Rejected ingredient quantity", index=index, quantity=quantity)
            return False

        current = self.ingredients[index]
        self.ingredients[index] = Ingredient(
            id=current.id,
            name=name,
            quantity=quantity,
            unit=unit,
            calories=current.calories_per_unit * quantity,
        )
        self.recalculate_total_calories()
        return True

    def remove_ingredient(self, index: int) -> bool:
        """Remove ingredient at index; False if out of range."""
        if not 0 <= index < len(self.ingredients):
            return False
        del self.ingredients[index]
        self.recalculate_total_calories()
        return True

    def update_meal_type(self, meal_type: str) -> None:
        self.meal_type = meal_type

    def update_description(self, description: str) -> None:
        self.description = description

    # ─── Serialization ────────────────────────────────────

    def to_wire(self) -> dict[str, Any]:
        """Dump to the JSON shape used by the API (camelCase, string ids)."""
        return self.model_dump(mode="json", by_alias=True)
