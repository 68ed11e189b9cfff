"""
Tests for FoodLog persistence model.
"""

from datetime import datetime, timezone

from mealsnap.domain.meal.analysis.models import FoodAnalysis
from mealsnap.domain.meal.persistence.models import FoodLog


class TestFoodLog:
    """Test conversions between FoodLog and FoodAnalysis."""

    def test_from_analysis_copies_fields(self, sample_analysis: FoodAnalysis) -> None:
        logged_at = datetime(2025, 3, 14, 12, 30, tzinfo=timezone.utc)

        log = FoodLog.from_analysis(sample_analysis, logged_at=logged_at, thumbnail=b"\xff\xd8")

        assert log.logged_at == logged_at
        assert log.meal_type == "lunch"
        assert log.total_calories == 535
        assert log.description == sample_analysis.description
        assert [i.id for i in log.ingredients] == [i.id for i in sample_analysis.ingredients]
        assert log.thumbnail == b"\xff\xd8"
        assert log.created_at == log.updated_at

    def test_from_analysis_snapshot_is_independent(self, sample_analysis: FoodAnalysis) -> None:
        """Test later edits of the analysis do not change the log."""
        log = FoodLog.from_analysis(sample_analysis)

        sample_analysis.remove_ingredient(0)

        assert len(log.ingredients) == 3

    def test_to_analysis_round_trip(self, sample_analysis: FoodAnalysis) -> None:
        restored = FoodLog.from_analysis(sample_analysis).to_analysis()

        assert restored == sample_analysis

    def test_to_analysis_defaults(self) -> None:
        """Test missing meal type/description fallbacks."""
        log = FoodLog(total_calories=0)

        analysis = log.to_analysis()

        assert analysis.meal_type == "snack"
        assert analysis.description == ""
        assert analysis.ingredients == []

    def test_apply_analysis_bumps_updated_at(self, sample_analysis: FoodAnalysis) -> None:
        log = FoodLog.from_analysis(sample_analysis)
        created_at = log.created_at

        sample_analysis.update_meal_type("dinner")
        sample_analysis.remove_ingredient(2)
        log.apply_analysis(sample_analysis)

        assert log.meal_type == "dinner"
        assert log.total_calories == sample_analysis.total_calories
        assert len(log.ingredients) == 2
        assert log.created_at == created_at
        assert log.updated_at >= created_at
