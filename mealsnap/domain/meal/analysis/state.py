"""
Explicit analysis state for presentation layers.

Replaces observable loading/error flags with one immutable value:
idle, pending, success(analysis) or failure(message).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mealsnap.domain.meal.analysis.models import FoodAnalysis


class AnalysisPhase(str, Enum):
    """Lifecycle phase of one photo analysis."""

    IDLE = "IDLE"  # Nothing requested yet (or cleared)
    PENDING = "PENDING"  # Request in flight
    SUCCESS = "SUCCESS"  # Analysis available
    FAILURE = "FAILURE"  # Terminal error, message available


class AnalysisState(BaseModel):
    """
    Tagged union of the analysis lifecycle.

    Example:
        >>> state = AnalysisState.failure("Rate limit exceeded. Please try again later.")
        >>> state.is_failure
        True
        >>> state.analysis is None
        True
    """

    model_config = ConfigDict(frozen=True)

    phase: AnalysisPhase = Field(AnalysisPhase.IDLE, description="Lifecycle phase")
    analysis: Optional[FoodAnalysis] = Field(None, description="Result on SUCCESS")
    error_message: Optional[str] = Field(None, description="User-facing message on FAILURE")

    @classmethod
    def idle(cls) -> AnalysisState:
        return cls(phase=AnalysisPhase.IDLE)

    @classmethod
    def pending(cls) -> AnalysisState:
        return cls(phase=AnalysisPhase.PENDING)

    @classmethod
    def success(cls, analysis: FoodAnalysis) -> AnalysisState:
        return cls(phase=AnalysisPhase.SUCCESS, analysis=analysis)

    @classmethod
    def failure(cls, message: str) -> AnalysisState:
        return cls(phase=AnalysisPhase.FAILURE, error_message=message)

    @property
    def is_pending(self) -> bool:
        return self.phase == AnalysisPhase.PENDING

    @property
    def is_success(self) -> bool:
        return self.phase == AnalysisPhase.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.phase == AnalysisPhase.FAILURE
