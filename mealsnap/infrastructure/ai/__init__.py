"""OpenAI client for food photo analysis."""

from mealsnap.infrastructure.ai.openai_client import (
    OpenAIAnalysisClient,
    RetryState,
    extract_error_message,
)

__all__ = [
    "OpenAIAnalysisClient",
    "RetryState",
    "extract_error_message",
]
