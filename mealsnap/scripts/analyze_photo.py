#!/usr/bin/env python
"""Analyze one meal photo from the command line.

Usage:
    python -m mealsnap.scripts.analyze_photo path/to/meal.jpg [--model gpt-4o]

Reads OPENAI_API_KEY (and the other settings) from the environment or .env.

Exit codes:
    0 analysis printed as JSON
    1 analysis failed (message printed on stderr)
    2 photo file not readable
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog

from mealsnap.application.meal.analysis_service import FoodAnalysisService
from mealsnap.config import Settings
from mealsnap.infrastructure.ai.openai_client import OpenAIAnalysisClient
from mealsnap.infrastructure.image.image_service import ImageService
from mealsnap.infrastructure.persistence.in_memory_food_log_repository import (
    InMemoryFoodLogRepository,
)
from mealsnap.log_config import configure_logging

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Estimate calories of a meal photo.")
    parser.add_argument("photo", type=Path, help="Path to the meal photo")
    parser.add_argument("--model", dest="model", default=None, help="Override OPENAI_MODEL")
    return parser


async def run(photo: Path, settings: Settings) -> int:
    try:
        image_data = photo.read_bytes()
    except OSError as e:
        print(f"Cannot read {photo}: {e}", file=sys.stderr)
        return 2

    image_service = ImageService(
        target_size=settings.target_image_size,
        max_size=settings.max_image_size,
    )
    async with OpenAIAnalysisClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_s,
        max_attempts=settings.openai_max_attempts,
    ) as client:
        service = FoodAnalysisService(
            analysis_client=client,
            repository=InMemoryFoodLogRepository(),
            image_service=image_service,
            thumbnail_max_dimension=settings.thumbnail_max_dimension,
        )
        state = await service.analyze_photo(image_data)

    if state.analysis is None:
        print(state.error_message or "Analysis failed", file=sys.stderr)
        return 1

    print(json.dumps(state.analysis.to_wire(), indent=2))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    if args.model:
        settings = settings.model_copy(update={"openai_model": args.model})

    configure_logging(settings.log_level)
    logger.info("Starting photo analysis", photo=str(args.photo), model=settings.openai_model)
    return asyncio.run(run(args.photo, settings))


if __name__ == "__main__":
    sys.exit(main())
