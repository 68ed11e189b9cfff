"""Configuration loaded from environment variables (and an optional .env file).

The API key is always environment-supplied; there is no hardcoded fallback.

Example .env:
    OPENAI_API_KEY=sk-...
    OPENAI_MODEL=gpt-4o
    LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from mealsnap.domain.meal.analysis.prompts import DEFAULT_MODEL
from mealsnap.infrastructure.ai.openai_client import DEFAULT_BASE_URL
from mealsnap.infrastructure.image.image_service import MAX_IMAGE_SIZE, TARGET_IMAGE_SIZE


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


class Settings(BaseModel):
    """
    Application settings.

    Example:
        >>> settings = Settings.from_env()
        >>> settings.openai_model
        'gpt-4o'
    """

    model_config = ConfigDict(frozen=True)

    openai_api_key: str = Field("", description="OpenAI API key")
    openai_base_url: str = Field(DEFAULT_BASE_URL, description="API base URL")
    openai_model: str = Field(DEFAULT_MODEL, description="Vision model")
    openai_timeout_s: float = Field(30.0, gt=0, description="Per-attempt timeout")
    openai_max_attempts: int = Field(3, ge=1, description="Total attempts per analysis")
    target_image_size: int = Field(TARGET_IMAGE_SIZE, gt=0, description="Compression target (bytes)")
    max_image_size: int = Field(MAX_IMAGE_SIZE, gt=0, description="Compression ceiling (bytes)")
    thumbnail_max_dimension: int = Field(200, gt=0, description="Thumbnail longer side (px)")
    log_level: str = Field("INFO", description="Logging level name")

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key.strip())

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> Settings:
        """
        Build settings from the environment.

        Args:
            env_file: Optional .env path (default: search from cwd)
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_base_url=os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL),
            openai_model=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
            openai_timeout_s=_float_env("OPENAI_TIMEOUT_S", 30.0),
            openai_max_attempts=_int_env("OPENAI_MAX_ATTEMPTS", 3),
            target_image_size=_int_env("TARGET_IMAGE_SIZE", TARGET_IMAGE_SIZE),
            max_image_size=_int_env("MAX_IMAGE_SIZE", MAX_IMAGE_SIZE),
            thumbnail_max_dimension=_int_env("THUMBNAIL_MAX_DIMENSION", 200),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
