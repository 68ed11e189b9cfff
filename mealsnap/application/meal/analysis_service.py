"""
Food Analysis Application Service.

Runs the photo pipeline (compress -> encode -> request -> parse), exposes
the outcome as an explicit AnalysisState and applies ingredient edits
before the analysis is saved as a food log.

Design Pattern: Service Layer + Dependency Injection
"""

import asyncio
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

import structlog

from mealsnap.domain.meal.analysis.models import FoodAnalysis, Ingredient
from mealsnap.domain.meal.analysis.state import AnalysisState
from mealsnap.domain.meal.persistence.food_log_repository import IFoodLogRepository
from mealsnap.domain.meal.persistence.models import FoodLog
from mealsnap.domain.shared.errors import AnalysisError, DomainError, FoodLogNotFoundError
from mealsnap.infrastructure.image.image_service import ImageInput, ImageService

logger = structlog.get_logger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"
IMAGE_PREPARATION_ERROR_MESSAGE = "Failed to process image. Please try another photo."


@runtime_checkable
class IFoodAnalysisClient(Protocol):
    """Port for the vision analysis API."""

    async def analyze_food_image(self, image_base64: str) -> FoodAnalysis:
        """
        Analyze a base64 JPEG food photo.

        Raises:
            AnalysisError: On any API failure
        """
        ...


class FoodAnalysisService:
    """
    Coordinates one food photo analysis and its edits.

    Responsibilities:
    - Prepare the photo off the event loop
    - Call the analysis client and translate errors into AnalysisState
    - Keep total calories consistent across ingredient edits
    - Save / reload analyses through the food log repository

    Cancelling the task running analyze_photo/analyze_image leaves the
    state PENDING and propagates asyncio.CancelledError.

    Example:
        >>> service = FoodAnalysisService(client, repository)
        >>> state = await service.analyze_photo(photo_bytes)
        >>> if state.is_success:
        ...     service.remove_ingredient(0)
        ...     await service.save_food_log(photo_bytes)
    """

    def __init__(
        self,
        analysis_client: IFoodAnalysisClient,
        repository: IFoodLogRepository,
        image_service: Optional[ImageService] = None,
        thumbnail_max_dimension: int = 200,
    ):
        """
        Initialize service with dependencies.

        Args:
            analysis_client: Vision API client
            repository: Food log storage
            image_service: Image compression (default: ImageService())
            thumbnail_max_dimension: Longer side of stored thumbnails
        """
        self.analysis_client = analysis_client
        self.repository = repository
        self.image_service = image_service or ImageService()
        self.thumbnail_max_dimension = thumbnail_max_dimension
        self._state = AnalysisState.idle()
        self._save_error: Optional[str] = None

    @property
    def state(self) -> AnalysisState:
        return self._state

    @property
    def analysis(self) -> Optional[FoodAnalysis]:
        return self._state.analysis

    @property
    def save_error(self) -> Optional[str]:
        """Message of the last failed save, None after a successful one."""
        return self._save_error

    # ─── Analysis ─────────────────────────────────────────

    async def analyze_photo(self, image: ImageInput) -> AnalysisState:
        """
        Compress, encode and analyze a photo.

        Compression runs in the default executor so the event loop is
        not blocked by the quality search.

        Returns:
            SUCCESS with the analysis, or FAILURE with a user-facing message
        """
        self._state = AnalysisState.pending()

        loop = asyncio.get_running_loop()
        image_base64 = await loop.run_in_executor(None, self.image_service.image_to_base64, image)
        if image_base64 is None:
            logger.warning("Image preparation failed")
            self._state = AnalysisState.failure(IMAGE_PREPARATION_ERROR_MESSAGE)
            return self._state

        return await self.analyze_image(image_base64)

    async def analyze_image(self, image_base64: str) -> AnalysisState:
        """
        Analyze an already encoded photo.

        Args:
            image_base64: Base64 JPEG payload
        """
        self._state = AnalysisState.pending()

        try:
            result = await self.analysis_client.analyze_food_image(image_base64)
        except AnalysisError as e:
            self._state = AnalysisState.failure(e.message)
        except Exception as e:
            logger.error(
                "Unexpected analysis failure",
                error_type=type(e).__name__,
                error=str(e),
            )
            self._state = AnalysisState.failure(UNEXPECTED_ERROR_MESSAGE)
        else:
            self._state = AnalysisState.success(result)

        return self._state

    def clear_analysis(self) -> None:
        """Reset to IDLE."""
        self._state = AnalysisState.idle()
        self._save_error = None

    # ─── Edits ────────────────────────────────────────────

    def add_ingredient(self, ingredient: Ingredient) -> None:
        """Append ingredient; starts a new snack analysis if none exists."""
        if self.analysis is None:
            self._state = AnalysisState.success(FoodAnalysis.from_ingredient(ingredient))
            return
        self.analysis.add_ingredient(ingredient)

    def update_ingredient(self, index: int, name: str, quantity: float, unit: str) -> bool:
        """
        Edit ingredient at index; calories scale with the new quantity.

        Returns False (nothing changed) for an unknown index or a negative quantity.
        """
        if self.analysis is None:
            return False
        return self.analysis.update_ingredient(index, name, quantity, unit)

    def remove_ingredient(self, index: int) -> bool:
        if self.analysis is None:
            return False
        return self.analysis.remove_ingredient(index)

    def update_meal_type(self, meal_type: str) -> None:
        if self.analysis is not None:
            self.analysis.update_meal_type(meal_type)

    def update_description(self, description: str) -> None:
        if self.analysis is not None:
            self.analysis.update_description(description)

    # ─── Persistence ──────────────────────────────────────

    async def save_food_log(
        self,
        image_data: Optional[bytes] = None,
        logged_at: Optional[datetime] = None,
    ) -> Optional[FoodLog]:
        """
        Save the current analysis as a food log.

        A thumbnail is stored when image_data can be decoded.

        Args:
            image_data: Original photo bytes
            logged_at: Meal time (default: now)

        Returns:
            Saved FoodLog, or None on failure (see save_error)
        """
        if self.analysis is None:
            self._save_error = "No analysis to save"
            return None

        self._save_error = None
        thumbnail = None
        if image_data is not None:
            loop = asyncio.get_running_loop()
            thumbnail = await loop.run_in_executor(
                None,
                self.image_service.create_thumbnail_data,
                image_data,
                self.thumbnail_max_dimension,
            )

        food_log = FoodLog.from_analysis(self.analysis, logged_at=logged_at, thumbnail=thumbnail)
        try:
            return await self.repository.save(food_log)
        except DomainError as e:
            logger.error("Food log save failed", error=str(e))
            self._save_error = f"Failed to save food log: {e}"
            return None

    async def load_from_food_log(self, log_id: UUID) -> FoodAnalysis:
        """
        Load a saved log as the current analysis.

        Raises:
            FoodLogNotFoundError: If log_id is unknown
        """
        food_log = await self.repository.get_by_id(log_id)
        if food_log is None:
            raise FoodLogNotFoundError(f"Food log {log_id} not found")

        analysis = food_log.to_analysis()
        self._state = AnalysisState.success(analysis)
        return analysis
