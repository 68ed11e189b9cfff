"""
OpenAI chat-completions client for food photo analysis.

Sends the analysis request over httpx and applies a bounded retry policy
driven by an explicit per-attempt decision table:

    transport error  -> retry after base_delay * 2**attempt
    200              -> parse (parse errors are terminal)
    400/401/403      -> terminal (APIError with detail or InvalidCredentials)
    429              -> retry after Retry-After seconds, else 2s
    500-599          -> retry after base_delay * 2**attempt
    other            -> terminal (APIError with detail or InvalidResponse)
"""

from __future__ import annotations

import asyncio
import json
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
import structlog

from mealsnap.domain.meal.analysis.models import FoodAnalysis
from mealsnap.domain.meal.analysis.parser import parse_chat_completion
from mealsnap.domain.meal.analysis.prompts import (
    DEFAULT_MODEL,
    MAX_TOKENS,
    build_analysis_request,
)
from mealsnap.domain.shared.errors import (
    AnalysisError,
    APIError,
    InvalidCredentialsError,
    InvalidResponseError,
    NetworkError,
    RateLimitedError,
    ServerError,
)

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"

QUOTA_GUIDANCE = (
    "OpenAI API Quota Exceeded\n\n"
    "You've exceeded your current OpenAI API quota. Please:\n"
    "1. Check your billing at https://platform.openai.com/account/billing\n"
    "2. Add payment method or increase your quota\n"
    "3. Wait for your quota to reset\n\n"
    "Original error: {message}"
)

SleepFunc = Callable[[float], Awaitable[Any]]


class ClientState(str, Enum):
    """Lifecycle of one request through the retry loop."""

    NOT_STARTED = "NOT_STARTED"
    IN_FLIGHT = "IN_FLIGHT"
    AWAITING_BACKOFF = "AWAITING_BACKOFF"
    SUCCESS = "SUCCESS"
    TERMINAL_FAILURE = "TERMINAL_FAILURE"


class RetryAction(str, Enum):
    """What the loop does after an attempt."""

    SUCCEED = "SUCCEED"
    RETRY = "RETRY"
    FAIL = "FAIL"


@dataclass
class AttemptDecision:
    """Outcome of classifying one attempt."""

    action: RetryAction
    delay: float = 0.0
    analysis: Optional[FoodAnalysis] = None
    error: Optional[AnalysisError] = None

    @classmethod
    def succeed(cls, analysis: FoodAnalysis) -> AttemptDecision:
        return cls(action=RetryAction.SUCCEED, analysis=analysis)

    @classmethod
    def retry(cls, delay: float) -> AttemptDecision:
        return cls(action=RetryAction.RETRY, delay=delay)

    @classmethod
    def fail(cls, error: AnalysisError) -> AttemptDecision:
        return cls(action=RetryAction.FAIL, error=error)


@dataclass
class RetryState:
    """
    Bookkeeping for one call: attempts made and waits performed.

    The attempt counter only grows; a backoff always leads to exactly
    one more attempt.
    """

    max_attempts: int
    attempts: int = 0
    delays: List[float] = field(default_factory=list)
    state: ClientState = ClientState.NOT_STARTED

    @property
    def has_attempts_left(self) -> bool:
        return self.attempts < self.max_attempts

    def begin_attempt(self) -> None:
        self.attempts += 1
        self.state = ClientState.IN_FLIGHT

    def begin_backoff(self, delay: float) -> None:
        self.delays.append(delay)
        self.state = ClientState.AWAITING_BACKOFF


def extract_error_message(body: bytes) -> Optional[str]:
    """
    Extract a human-readable message from an error response body.

    Reads `error.message` from a JSON body; quota/billing messages are
    rewritten into billing guidance. Without a JSON message the raw body
    is returned prefixed with "API Error: ", an empty body gives None.

    Example:
        >>> extract_error_message(b'{"error": {"message": "Bad image"}}')
        'Bad image'
    """
    message: Optional[str] = None
    try:
        data = json.loads(body)
    except ValueError:
        data = None

    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        raw_message = data["error"].get("message")
        if isinstance(raw_message, str):
            message = raw_message

    if message is None:
        text = body.decode("utf-8", errors="replace")
        if not text.strip():
            return None
        return f"API Error: {text}"

    lowered = message.lower()
    if "quota" in lowered or "billing" in lowered:
        return QUOTA_GUIDANCE.format(message=message)

    return message


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse a Retry-After header given in seconds.

    Returns:
        Non-negative delay in seconds, None if absent or unparsable
    """
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def _raise_if_cancelled() -> None:
    """Unwind if the current task has a pending cancellation request."""
    task = asyncio.current_task()
    if task is not None and task.cancelling():
        raise asyncio.CancelledError()


class OpenAIAnalysisClient:
    """
    Async chat-completions client with bounded retries.

    Features:
    - JSON object response format
    - Explicit retry decision table (transport, 429, 5xx)
    - Retry-After support for rate limits
    - Fixed per-attempt timeout (not a cumulative budget)
    - Injectable sleep for non-blocking, testable backoff

    Example:
        >>> async with OpenAIAnalysisClient(api_key="sk-...") as client:
        ...     analysis = await client.analyze_food_image(image_base64)
        ...     print(analysis.total_calories)
    """

    RATE_LIMIT_DEFAULT_DELAY_S = 2.0

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout_seconds: float = 30.0,
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
        max_tokens: int = MAX_TOKENS,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """
        Initialize client.

        Args:
            api_key: API key (empty/None fails every call with InvalidCredentialsError)
            base_url: API base URL, without trailing /chat/completions
            model: Vision model identifier
            timeout_seconds: Timeout of each attempt
            max_attempts: Total attempts, first one included
            base_delay_seconds: Base of the exponential backoff
            max_tokens: Completion token ceiling
            http_client: Optional pre-configured httpx client (for testing)
            sleep: Async sleep used for backoff waits
        """
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds
        self.max_tokens = max_tokens
        self._sleep = sleep
        self._session: Optional[httpx.AsyncClient] = http_client
        self._owns_session = http_client is None
        self.last_retry_state: Optional[RetryState] = None

    async def __aenter__(self) -> OpenAIAnalysisClient:
        """Async context manager entry."""
        if self._session is None:
            self._session = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
            self._owns_session = True
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        if self._session is not None and self._owns_session:
            await self._session.aclose()
            self._session = None

    @property
    def completions_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    async def analyze_food_image(self, image_base64: str) -> FoodAnalysis:
        """
        Analyze a food photo and return structured nutrition data.

        Args:
            image_base64: Base64 JPEG payload

        Returns:
            FoodAnalysis with ingredients and calories

        Raises:
            AnalysisError: Typed failure (see module docstring)
        """
        request_body = build_analysis_request(
            image_base64,
            model=self.model,
            max_tokens=self.max_tokens,
        )
        logger.info(
            "Analyzing food image",
            model=self.model,
            payload_chars=len(image_base64),
        )
        return await self.send(request_body)

    async def send(self, request_body: Dict[str, Any]) -> FoodAnalysis:
        """
        Execute the request applying the retry decision table.

        Cancellation of the calling task unwinds the loop at the next
        check (loop top, after the HTTP call, after each backoff wait).

        Raises:
            InvalidCredentialsError: Missing key (no network call)
            AnalysisError: Terminal failure after classification/retries
            RuntimeError: If used outside `async with`
        """
        if not self.api_key:
            logger.error("API key missing, request not sent")
            raise InvalidCredentialsError()

        if self._session is None:
            raise RuntimeError("Client not initialized. Use async with.")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        retry_state = RetryState(max_attempts=self.max_attempts)
        self.last_retry_state = retry_state
        start_time = time.time()

        while retry_state.has_attempts_left:
            _raise_if_cancelled()
            attempt = retry_state.attempts
            retry_state.begin_attempt()

            try:
                response = await self._session.post(
                    self.completions_url,
                    json=request_body,
                    headers=headers,
                    timeout=httpx.Timeout(self.timeout_seconds),
                )
            except httpx.RequestError as e:
                _raise_if_cancelled()
                decision = self._classify_transport_error(e, attempt)
            else:
                _raise_if_cancelled()
                decision = self._classify_response(response, attempt)

            if decision.action is RetryAction.SUCCEED and decision.analysis is not None:
                retry_state.state = ClientState.SUCCESS
                logger.info(
                    "Food analysis received",
                    attempts=retry_state.attempts,
                    ingredient_count=len(decision.analysis.ingredients),
                    processing_time_ms=int((time.time() - start_time) * 1000),
                )
                return decision.analysis

            if decision.action is RetryAction.RETRY:
                retry_state.begin_backoff(decision.delay)
                logger.warning(
                    f"Retrying in {decision.delay}s",
                    attempt=retry_state.attempts,
                    max_attempts=self.max_attempts,
                )
                await self._sleep(decision.delay)
                _raise_if_cancelled()
                continue

            retry_state.state = ClientState.TERMINAL_FAILURE
            error = decision.error or InvalidResponseError()
            logger.error(
                "Food analysis failed",
                attempts=retry_state.attempts,
                error_type=type(error).__name__,
                error=error.message,
            )
            raise error

        # Unreachable with max_attempts >= 1: the last attempt never retries
        retry_state.state = ClientState.TERMINAL_FAILURE
        raise NetworkError()

    def _backoff_delay(self, attempt: int) -> float:
        return self.base_delay_seconds * (2**attempt)

    def _is_last_attempt(self, attempt: int) -> bool:
        return attempt >= self.max_attempts - 1

    def _classify_transport_error(self, exc: httpx.RequestError, attempt: int) -> AttemptDecision:
        """Transport failures retry with exponential backoff."""
        logger.warning(
            "Transport error",
            attempt=attempt + 1,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        if not self._is_last_attempt(attempt):
            return AttemptDecision.retry(self._backoff_delay(attempt))

        error = NetworkError(f"{NetworkError.default_message} ({type(exc).__name__}: {exc})")
        error.__cause__ = exc
        return AttemptDecision.fail(error)

    def _classify_response(self, response: httpx.Response, attempt: int) -> AttemptDecision:
        """Map an HTTP response to the next action."""
        status = response.status_code
        logger.debug("Response received", status=status, attempt=attempt + 1)

        if status == 200:
            try:
                return AttemptDecision.succeed(parse_chat_completion(response.content))
            except AnalysisError as e:
                return AttemptDecision.fail(e)

        if status in (400, 401, 403):
            message = extract_error_message(response.content)
            return AttemptDecision.fail(
                APIError(message) if message else InvalidCredentialsError()
            )

        if status == 429:
            if not self._is_last_attempt(attempt):
                retry_after = parse_retry_after(response.headers.get("Retry-After"))
                delay = self.RATE_LIMIT_DEFAULT_DELAY_S if retry_after is None else retry_after
                logger.warning("Rate limited", retry_after=retry_after, delay=delay)
                return AttemptDecision.retry(delay)
            message = extract_error_message(response.content)
            return AttemptDecision.fail(APIError(message) if message else RateLimitedError())

        if 500 <= status <= 599:
            if not self._is_last_attempt(attempt):
                logger.warning("Server error", status=status)
                return AttemptDecision.retry(self._backoff_delay(attempt))
            message = extract_error_message(response.content)
            return AttemptDecision.fail(APIError(message) if message else ServerError())

        logger.warning("Unexpected status code", status=status)
        message = extract_error_message(response.content)
        return AttemptDecision.fail(APIError(message) if message else InvalidResponseError())
