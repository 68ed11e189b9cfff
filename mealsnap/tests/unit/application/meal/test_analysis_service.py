"""
Unit tests for FoodAnalysisService.

The analysis client is an AsyncMock; storage is the in-memory repository.
"""

import asyncio
import base64
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from mealsnap.application.meal.analysis_service import (
    IMAGE_PREPARATION_ERROR_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    FoodAnalysisService,
)
from mealsnap.domain.meal.analysis.models import FoodAnalysis, Ingredient
from mealsnap.domain.meal.analysis.state import AnalysisPhase
from mealsnap.domain.shared.errors import (
    AnalysisError,
    APIError,
    FoodLogNotFoundError,
    InvalidCredentialsError,
    NetworkError,
    RateLimitedError,
    RepositoryError,
)
from mealsnap.infrastructure.persistence.in_memory_food_log_repository import (
    InMemoryFoodLogRepository,
)

JPEG_MAGIC = b"\xff\xd8"


@pytest.fixture
def mock_client(sample_analysis: FoodAnalysis) -> MagicMock:
    """Analysis client returning the sample analysis."""
    client = MagicMock()
    client.analyze_food_image = AsyncMock(return_value=sample_analysis)
    return client


@pytest.fixture
def service(mock_client: MagicMock, repository: InMemoryFoodLogRepository) -> FoodAnalysisService:
    return FoodAnalysisService(analysis_client=mock_client, repository=repository)


class TestAnalyzePhoto:
    """Test the photo pipeline and state transitions."""

    def test_starts_idle(self, service: FoodAnalysisService) -> None:
        assert service.state.phase == AnalysisPhase.IDLE
        assert service.analysis is None

    @pytest.mark.asyncio
    async def test_success(
        self,
        service: FoodAnalysisService,
        mock_client: MagicMock,
        small_photo_bytes: bytes,
        sample_analysis: FoodAnalysis,
    ) -> None:
        state = await service.analyze_photo(small_photo_bytes)

        assert state.is_success
        assert state.analysis == sample_analysis
        assert service.state is state

        mock_client.analyze_food_image.assert_awaited_once()
        payload = mock_client.analyze_food_image.await_args.args[0]
        assert base64.b64decode(payload).startswith(JPEG_MAGIC)

    @pytest.mark.asyncio
    async def test_undecodable_photo(
        self, service: FoodAnalysisService, mock_client: MagicMock
    ) -> None:
        state = await service.analyze_photo(b"not an image")

        assert state.is_failure
        assert state.error_message == IMAGE_PREPARATION_ERROR_MESSAGE
        mock_client.analyze_food_image.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            InvalidCredentialsError(),
            NetworkError(),
            RateLimitedError(),
            APIError("Failed to parse API response: Missing key 'name' at path: ingredients.0.name"),
        ],
    )
    async def test_analysis_error_becomes_failure(
        self, service: FoodAnalysisService, mock_client: MagicMock, error: AnalysisError
    ) -> None:
        mock_client.analyze_food_image.side_effect = error

        state = await service.analyze_image("QUJD")

        assert state.is_failure
        assert state.error_message == error.message
        assert state.analysis is None

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_generic_failure(
        self, service: FoodAnalysisService, mock_client: MagicMock
    ) -> None:
        mock_client.analyze_food_image.side_effect = RuntimeError("boom")

        state = await service.analyze_image("QUJD")

        assert state.is_failure
        assert state.error_message == UNEXPECTED_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_pending_while_in_flight_and_after_cancel(
        self, service: FoodAnalysisService, mock_client: MagicMock
    ) -> None:
        started = asyncio.Event()

        async def never_returns(image_base64: str) -> FoodAnalysis:
            started.set()
            await asyncio.Event().wait()
            raise AssertionError("unreachable")

        mock_client.analyze_food_image.side_effect = never_returns

        task = asyncio.create_task(service.analyze_image("QUJD"))
        await started.wait()
        assert service.state.is_pending

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert service.state.is_pending

    @pytest.mark.asyncio
    async def test_clear_analysis(self, service: FoodAnalysisService) -> None:
        await service.analyze_image("QUJD")

        service.clear_analysis()

        assert service.state.phase == AnalysisPhase.IDLE
        assert service.analysis is None


class TestEdits:
    """Test edits through the service."""

    @pytest.mark.asyncio
    async def test_edits_keep_total_consistent(
        self, service: FoodAnalysisService, sample_ingredient: Ingredient
    ) -> None:
        await service.analyze_image("QUJD")

        service.add_ingredient(sample_ingredient)
        assert service.update_ingredient(0, "Chicken thigh", 75, "g") is True
        assert service.remove_ingredient(2) is True

        analysis = service.analysis
        assert analysis is not None
        assert [i.name for i in analysis.ingredients] == ["Chicken thigh", "White rice", "Olive oil"]
        assert analysis.total_calories == pytest.approx(124 + 260 + 88)

    @pytest.mark.asyncio
    async def test_update_with_negative_quantity_returns_false(
        self, service: FoodAnalysisService
    ) -> None:
        await service.analyze_image("QUJD")

        assert service.update_ingredient(0, "Chicken", -2, "g") is False

        assert service.analysis is not None
        assert service.analysis.ingredients[0].quantity == 150
        assert service.analysis.total_calories == 535

    def test_add_without_analysis_starts_snack(
        self, service: FoodAnalysisService, sample_ingredient: Ingredient
    ) -> None:
        service.add_ingredient(sample_ingredient)

        assert service.state.is_success
        assert service.analysis is not None
        assert service.analysis.meal_type == "snack"
        assert service.analysis.total_calories == 88

    def test_edits_without_analysis(self, service: FoodAnalysisService) -> None:
        assert service.update_ingredient(0, "X", 1, "g") is False
        assert service.remove_ingredient(0) is False
        service.update_meal_type("dinner")
        service.update_description("nothing")
        assert service.analysis is None

    @pytest.mark.asyncio
    async def test_metadata_edits(self, service: FoodAnalysisService) -> None:
        await service.analyze_image("QUJD")

        service.update_meal_type("dinner")
        service.update_description("Late lunch")

        assert service.analysis is not None
        assert service.analysis.meal_type == "dinner"
        assert service.analysis.description == "Late lunch"


class TestPersistence:
    """Test saving and reloading food logs."""

    @pytest.mark.asyncio
    async def test_save_with_thumbnail(
        self,
        service: FoodAnalysisService,
        repository: InMemoryFoodLogRepository,
        small_photo_bytes: bytes,
    ) -> None:
        await service.analyze_image("QUJD")
        logged_at = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)

        saved = await service.save_food_log(small_photo_bytes, logged_at=logged_at)

        assert saved is not None
        assert service.save_error is None
        assert saved.logged_at == logged_at
        assert saved.total_calories == 535
        assert saved.thumbnail is not None and saved.thumbnail.startswith(JPEG_MAGIC)
        assert await repository.get_by_id(saved.id) == saved

    @pytest.mark.asyncio
    async def test_save_with_undecodable_image_has_no_thumbnail(
        self, service: FoodAnalysisService
    ) -> None:
        await service.analyze_image("QUJD")

        saved = await service.save_food_log(b"garbage")

        assert saved is not None
        assert saved.thumbnail is None

    @pytest.mark.asyncio
    async def test_save_without_analysis(self, service: FoodAnalysisService) -> None:
        saved = await service.save_food_log()

        assert saved is None
        assert service.save_error == "No analysis to save"

    @pytest.mark.asyncio
    async def test_save_repository_failure(
        self, mock_client: MagicMock, sample_analysis: FoodAnalysis
    ) -> None:
        repository = MagicMock()
        repository.save = AsyncMock(side_effect=RepositoryError("disk full"))
        service = FoodAnalysisService(analysis_client=mock_client, repository=repository)
        await service.analyze_image("QUJD")

        saved = await service.save_food_log()

        assert saved is None
        assert service.save_error == "Failed to save food log: disk full"

    @pytest.mark.asyncio
    async def test_load_from_food_log(
        self, service: FoodAnalysisService, sample_analysis: FoodAnalysis
    ) -> None:
        await service.analyze_image("QUJD")
        saved = await service.save_food_log()
        assert saved is not None
        service.clear_analysis()

        analysis = await service.load_from_food_log(saved.id)

        assert service.state.is_success
        assert analysis == sample_analysis

    @pytest.mark.asyncio
    async def test_load_unknown_log(self, service: FoodAnalysisService) -> None:
        with pytest.raises(FoodLogNotFoundError):
            await service.load_from_food_log(uuid4())
