"""Image compression and thumbnails."""

from mealsnap.infrastructure.image.image_service import ImageService

__all__ = ["ImageService"]
