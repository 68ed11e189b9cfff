"""
Parser for chat-completion responses carrying a food analysis.

The analysis travels as a JSON-encoded string inside
`choices[0].message.content`. Decoding failures are reported with the
offending field path and a short prefix of the raw content.
"""

from __future__ import annotations

import json
from typing import Any, Union

import structlog
from pydantic import ValidationError

from mealsnap.domain.meal.analysis.models import FoodAnalysis
from mealsnap.domain.shared.errors import APIError, InvalidResponseError

logger = structlog.get_logger(__name__)

RAW_CONTENT_PREVIEW_CHARS = 200


def parse_chat_completion(body: Union[bytes, str]) -> FoodAnalysis:
    """
    Extract and decode the FoodAnalysis from a chat-completion body.

    Args:
        body: Raw HTTP response body

    Returns:
        Validated FoodAnalysis

    Raises:
        InvalidResponseError: If the envelope shape is absent, `choices`
            is empty or the content is not text
        APIError: If the content cannot be decoded into a FoodAnalysis

    Example:
        >>> body = '{"choices": [{"message": {"content": "{...}"}}]}'
        >>> analysis = parse_chat_completion(body)  # doctest: +SKIP
    """
    try:
        envelope = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning("Response body is not JSON", error=str(e))
        raise InvalidResponseError() from e

    content = _extract_content(envelope)
    return parse_analysis_content(content)


def parse_analysis_content(content: str) -> FoodAnalysis:
    """
    Decode the nested JSON string into a FoodAnalysis.

    Ingredients without a usable `id` get a generated one; every other
    structural problem is fatal.

    Raises:
        APIError: "Failed to parse API response: <detail>. Raw content: <prefix>"
    """
    try:
        analysis = FoodAnalysis.model_validate_json(content)
    except ValidationError as e:
        detail = describe_validation_error(e)
        logger.warning(
            "Food analysis decode failed",
            detail=detail,
            content_length=len(content),
        )
        raise APIError(
            f"Failed to parse API response: {detail}. "
            f"Raw content: {content[:RAW_CONTENT_PREVIEW_CHARS]}"
        ) from e

    logger.debug(
        "Food analysis decoded",
        ingredient_count=len(analysis.ingredients),
        total_calories=analysis.total_calories,
    )
    return analysis


def describe_validation_error(error: ValidationError) -> str:
    """
    Describe the first validation problem with its dotted field path.

    Example:
        "Missing key 'name' at path: ingredients.0.name"
    """
    first = error.errors()[0]
    loc = first.get("loc", ())
    path = ".".join(str(part) for part in loc) or "(root)"
    kind = first.get("type", "")
    msg = first.get("msg", "")

    if kind == "missing":
        key = loc[-1] if loc else "?"
        return f"Missing key '{key}' at path: {path}"
    if kind == "json_invalid":
        return f"Data corrupted at path: {path}. Debug: {msg}"
    if first.get("input", "") is None:
        return f"Value not found at path: {path} ({msg})"
    if kind.endswith("_type") or kind.endswith("_parsing"):
        return f"Type mismatch at path: {path} ({msg})"
    return f"Invalid value at path: {path} ({msg})"


def _extract_content(envelope: Any) -> str:
    """Return choices[0].message.content or raise InvalidResponseError."""
    if not isinstance(envelope, dict):
        raise InvalidResponseError()

    choices = envelope.get("choices")
    if not isinstance(choices, list) or not choices:
        logger.warning("Response has no choices")
        raise InvalidResponseError()

    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        raise InvalidResponseError()

    content = message.get("content")
    if not isinstance(content, str):
        logger.warning("Message content is not text", content_type=type(content).__name__)
        raise InvalidResponseError()

    return content
