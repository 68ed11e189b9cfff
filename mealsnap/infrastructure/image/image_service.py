"""Image compression and thumbnails for meal photos.

Turns a captured photo into JPEG bytes under a size ceiling before it is
base64-encoded for the vision API. Compression is CPU-bound: callers on an
event loop should run it in an executor.
"""

from __future__ import annotations

import base64
import io
import math
from typing import Optional, Tuple, Union

import structlog
from PIL import Image, UnidentifiedImageError

logger = structlog.get_logger(__name__)

# 4MB target, 20MB hard limit of the vision API
TARGET_IMAGE_SIZE = 4 * 1024 * 1024
MAX_IMAGE_SIZE = 20 * 1024 * 1024

ImageInput = Union[bytes, Image.Image]


class ImageService:
    """
    JPEG compression with a byte-size ceiling.

    Quality is expressed in [0.0, 1.0] and mapped to Pillow's 1-100 scale.

    Example:
        >>> service = ImageService()
        >>> data = service.compress_image(photo_bytes)
        >>> if data is None:
        ...     print("Image could not be encoded")
    """

    DEFAULT_QUALITY = 0.7
    THUMBNAIL_QUALITY = 0.7
    MAX_ITERATIONS = 10
    QUALITY_TOLERANCE = 0.05

    def __init__(
        self,
        target_size: int = TARGET_IMAGE_SIZE,
        max_size: int = MAX_IMAGE_SIZE,
    ) -> None:
        """
        Initialize image service.

        Args:
            target_size: Default target size in bytes
            max_size: Default maximum size in bytes
        """
        self.target_size = target_size
        self.max_size = max_size

    def compress_image(
        self,
        image: ImageInput,
        target_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ) -> Optional[bytes]:
        """
        Compress image to target size while maintaining quality.

        Workflow:
        1. Encode at full quality; return it if already <= target
        2. If > max, downscale by sqrt(max / size) keeping aspect ratio
        3. Binary search JPEG quality for the best encoding <= target
        4. Fall back to default quality 0.7 if nothing fits

        Args:
            image: Raw image bytes or PIL image
            target_size: Target size in bytes (default: service target)
            max_size: Maximum size in bytes (default: service max)

        Returns:
            JPEG bytes, or None if the image cannot be decoded/encoded
        """
        target = self.target_size if target_size is None else target_size
        ceiling = self.max_size if max_size is None else max_size

        current = self._load_image(image)
        if current is None:
            return None

        image_data = self.encode_jpeg(current, 1.0)
        if image_data is None:
            return None

        if len(image_data) <= target:
            return image_data

        if len(image_data) > ceiling:
            scale_factor = math.sqrt(ceiling / len(image_data))
            new_size = (
                max(1, round(current.width * scale_factor)),
                max(1, round(current.height * scale_factor)),
            )
            logger.debug(
                "Downscaling image before compression",
                original_bytes=len(image_data),
                original_size=current.size,
                new_size=new_size,
            )
            current = current.resize(new_size, Image.Resampling.LANCZOS)

        compressed = self._find_optimal_compression(current, target)
        if compressed is None:
            logger.info(
                "No quality fits target, using default quality",
                target_bytes=target,
                quality=self.DEFAULT_QUALITY,
            )
            compressed = self.encode_jpeg(current, self.DEFAULT_QUALITY)

        if compressed is not None:
            logger.debug(
                "Image compressed",
                original_bytes=len(image_data),
                compressed_bytes=len(compressed),
            )
        return compressed

    def image_to_base64(self, image: ImageInput) -> Optional[str]:
        """
        Convert image to base64 string for API.

        Returns:
            Base64 ASCII string, or None if compression failed
        """
        image_data = self.compress_image(image)
        if image_data is None:
            return None
        return base64.b64encode(image_data).decode("ascii")

    def create_thumbnail(
        self,
        image_data: bytes,
        max_dimension: float = 200,
    ) -> Optional[Image.Image]:
        """
        Create thumbnail from image data.

        The longer side becomes max_dimension, aspect ratio is kept.

        Args:
            image_data: Encoded image bytes
            max_dimension: Maximum dimension for thumbnail

        Returns:
            Thumbnail image, or None if image_data cannot be decoded
        """
        image = self._load_image(image_data)
        if image is None:
            return None

        size = self.calculate_thumbnail_size(image.size, max_dimension)
        return image.resize(size, Image.Resampling.LANCZOS)

    def create_thumbnail_data(
        self,
        image_data: bytes,
        max_dimension: float = 200,
    ) -> Optional[bytes]:
        """Thumbnail encoded as JPEG at quality 0.7 (stored with food logs)."""
        thumbnail = self.create_thumbnail(image_data, max_dimension)
        if thumbnail is None:
            return None
        return self.encode_jpeg(thumbnail, self.THUMBNAIL_QUALITY)

    @staticmethod
    def calculate_thumbnail_size(
        original_size: Tuple[int, int],
        max_dimension: float,
    ) -> Tuple[int, int]:
        """
        Calculate thumbnail size maintaining aspect ratio.

        Example:
            >>> ImageService.calculate_thumbnail_size((4000, 3000), 200)
            (200, 150)
        """
        width, height = original_size
        aspect_ratio = width / height

        if width > height:
            new_width, new_height = max_dimension, max_dimension / aspect_ratio
        else:
            new_width, new_height = max_dimension * aspect_ratio, max_dimension

        return max(1, round(new_width)), max(1, round(new_height))

    @staticmethod
    def encode_jpeg(image: Image.Image, quality: float) -> Optional[bytes]:
        """
        Encode image as JPEG.

        Args:
            image: Image to encode (converted to RGB if needed)
            quality: Compression quality in [0.0, 1.0]

        Returns:
            JPEG bytes, or None if encoding failed
        """
        pillow_quality = min(100, max(1, round(quality * 100)))
        output = io.BytesIO()
        try:
            _to_rgb(image).save(output, format="JPEG", quality=pillow_quality)
        except (OSError, ValueError) as e:
            logger.warning("JPEG encoding failed", quality=pillow_quality, error=str(e))
            return None
        return output.getvalue()

    def _find_optimal_compression(self, image: Image.Image, target_size: int) -> Optional[bytes]:
        """
        Find optimal compression quality using binary search.

        Returns:
            Last encoding found <= target_size, None if none fits
        """
        low = 0.0
        high = 1.0
        best_data: Optional[bytes] = None

        for _ in range(self.MAX_ITERATIONS):
            quality = (low + high) / 2.0
            compressed_data = self.encode_jpeg(image, quality)
            if compressed_data is None:
                break

            if len(compressed_data) <= target_size:
                best_data = compressed_data
                high = quality
            else:
                low = quality

            # Close enough
            if abs(high - low) < self.QUALITY_TOLERANCE:
                break

        return best_data

    @staticmethod
    def _load_image(image: ImageInput) -> Optional[Image.Image]:
        """Decode bytes into a PIL image; None for corrupt input."""
        if isinstance(image, Image.Image):
            return image
        try:
            loaded = Image.open(io.BytesIO(image))
            loaded.load()
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            logger.warning("Image could not be decoded", error=str(e))
            return None
        return loaded


def _to_rgb(img: Image.Image) -> Image.Image:
    """Convert to RGB, flattening transparency on white."""
    if img.mode in ("RGBA", "LA", "P"):
        background = Image.new("RGB", img.size, (255, 255, 255))
        if img.mode == "P":
            img = img.convert("RGBA")
        has_alpha = img.mode in ("RGBA", "LA")
        mask = img.split()[-1] if has_alpha else None
        background.paste(img, mask=mask)
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img
