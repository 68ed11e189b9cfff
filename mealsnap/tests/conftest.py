"""
Shared fixtures for mealsnap tests.

Provides sample analyses, chat-completion bodies and generated images.
"""

from typing import Any, Dict

import pytest

from mealsnap.domain.meal.analysis.models import FoodAnalysis, Ingredient
from mealsnap.infrastructure.persistence.in_memory_food_log_repository import (
    InMemoryFoodLogRepository,
)
from mealsnap.tests.factories import (
    make_completion_body,
    make_gradient_image,
    to_png_bytes,
)


# ═══════════════════════════════════════════════════════════
# DOMAIN MODEL FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def sample_analysis_payload() -> Dict[str, Any]:
    """Analysis as returned in the message content (no ids)."""
    return {
        "ingredients": [
            {"name": "Grilled chicken breast", "quantity": 150, "unit": "g", "calories": 248},
            {"name": "White rice", "quantity": 200, "unit": "g", "calories": 260},
            {"name": "Broccoli", "quantity": 80, "unit": "g", "calories": 27},
        ],
        "totalCalories": 535,
        "mealType": "lunch",
        "description": "Grilled chicken with rice and broccoli",
    }


@pytest.fixture
def sample_analysis(sample_analysis_payload: Dict[str, Any]) -> FoodAnalysis:
    """Validated sample analysis."""
    return FoodAnalysis.model_validate(sample_analysis_payload)


@pytest.fixture
def sample_ingredient() -> Ingredient:
    return Ingredient(name="Olive oil", quantity=10, unit="ml", calories=88)


# ═══════════════════════════════════════════════════════════
# API BODY FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def completion_body(sample_analysis_payload: Dict[str, Any]) -> bytes:
    """Successful chat-completion body carrying the sample analysis."""
    return make_completion_body(sample_analysis_payload)


# ═══════════════════════════════════════════════════════════
# IMAGE FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def small_photo_bytes() -> bytes:
    """Small, easily compressible photo as PNG bytes."""
    return to_png_bytes(make_gradient_image(64, 48))


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def repository() -> InMemoryFoodLogRepository:
    return InMemoryFoodLogRepository()
