"""
Resolution-aware scaling for OCR.

OCR engines read best when characters are roughly 20-35 pixels tall. The
scaler estimates the current text height and resizes with Catmull-Rom
interpolation so characters land near the configured target.

Two estimators are provided:
- estimate_text_height(): height / 15, used by the basic scale() path
- estimate_text_height_advanced(): aspect-ratio bucket adjusted by the
  share of dark pixels and by overall size, used by scale_for_ocr()
"""

import logging
import time

import numpy as np

from config import (
    BASIC_TEXT_HEIGHT_DIVISOR,
    DEFAULT_SCALE_BOUNDS,
    DEFAULT_TARGET_CHAR_HEIGHT,
    LARGE_IMAGE_PIXELS,
    LARGE_IMAGE_SCALE_BOUNDS,
    MAX_ESTIMATED_TEXT_HEIGHT,
    MAX_SCALE_FACTOR,
    MAX_TARGET_CHAR_HEIGHT,
    MIN_ESTIMATED_TEXT_HEIGHT,
    MIN_SCALE_FACTOR,
    MIN_TARGET_CHAR_HEIGHT,
    SMALL_IMAGE_PIXELS,
    SMALL_IMAGE_SCALE_BOUNDS,
)
from .errors import InvalidTargetHeight
from .normalization import grayscale_pixels, resize_cubic, scaled_dimensions
from .thresholding import build_histogram
from .types import RasterImage, ScaleMetrics, StageResult, elapsed_ms

logger = logging.getLogger(__name__)


def _clamp(value, low, high):
    return min(max(value, low), high)


def scale_bounds(pixel_count: int) -> tuple[float, float]:
    """Allowed (min, max) scale factor for an image of the given size.

    Small images may be enlarged further; large ones are held back to keep
    memory and OCR time in check.
    """
    if pixel_count < SMALL_IMAGE_PIXELS:
        return SMALL_IMAGE_SCALE_BOUNDS
    if pixel_count > LARGE_IMAGE_PIXELS:
        return LARGE_IMAGE_SCALE_BOUNDS
    return DEFAULT_SCALE_BOUNDS


class ImageScaler:
    """Scales images so text reaches a target character height.

    Attributes:
        target_char_height: Desired character height in pixels (20-35).
    """

    DEFAULT_TARGET_HEIGHT = DEFAULT_TARGET_CHAR_HEIGHT
    MIN_TARGET_HEIGHT = MIN_TARGET_CHAR_HEIGHT
    MAX_TARGET_HEIGHT = MAX_TARGET_CHAR_HEIGHT

    def __init__(self, target_char_height: int = DEFAULT_TARGET_CHAR_HEIGHT):
        if (
            isinstance(target_char_height, bool)
            or not isinstance(target_char_height, (int, np.integer))
            or not self.MIN_TARGET_HEIGHT <= target_char_height <= self.MAX_TARGET_HEIGHT
        ):
            raise InvalidTargetHeight(
                target_char_height, self.MIN_TARGET_HEIGHT, self.MAX_TARGET_HEIGHT
            )
        self._target_char_height = int(target_char_height)

    @classmethod
    def with_target_height(cls, height: int) -> "ImageScaler":
        """Create a scaler with a custom target height.

        Raises:
            InvalidTargetHeight: If height is outside 20-35.
        """
        return cls(height)

    @property
    def target_char_height(self) -> int:
        return self._target_char_height

    def __repr__(self) -> str:
        return f"ImageScaler(target_char_height={self._target_char_height})"

    def estimate_text_height(self, image: RasterImage) -> int:
        """Rough text height: one fifteenth of the image height, clamped."""
        return _clamp(
            image.height // BASIC_TEXT_HEIGHT_DIVISOR,
            MIN_ESTIMATED_TEXT_HEIGHT,
            MAX_ESTIMATED_TEXT_HEIGHT,
        )

    def scale(self, image: RasterImage) -> StageResult[ScaleMetrics]:
        """Scale with the basic estimator and a 0.5-3.0 factor clamp."""
        start = time.perf_counter()
        estimated = self.estimate_text_height(image)
        scale_factor = _clamp(
            self._target_char_height / estimated, MIN_SCALE_FACTOR, MAX_SCALE_FACTOR
        )
        return self._resize(image, scale_factor, estimated, start)

    def estimate_text_height_advanced(self, image: RasterImage) -> int:
        """Estimate text height from layout and ink density.

        The base estimate depends on orientation: 12% of the height for wide
        images (aspect > 1.5), 8% for tall ones (aspect < 0.8), 10%
        otherwise. Dense ink (> 40% dark pixels) suggests smaller text,
        sparse ink (< 20%) larger text. Images over 1000px on both sides
        are nudged down. The result is clamped to 10-150.
        """
        histogram = build_histogram(grayscale_pixels(image))
        dark_ratio = histogram[:128].sum() / image.pixel_count
        text_density = _clamp(float(dark_ratio), 0.1, 0.6)

        width, height = image.dimensions
        aspect_ratio = width / height
        if aspect_ratio > 1.5:
            estimate = height * 0.12
        elif aspect_ratio < 0.8:
            estimate = height * 0.08
        else:
            estimate = height * 0.10

        if text_density > 0.4:
            estimate *= 0.8
        elif text_density < 0.2:
            estimate *= 1.2

        if width > 1000 and height > 1000:
            estimate *= 0.9

        return int(_clamp(estimate, MIN_ESTIMATED_TEXT_HEIGHT, MAX_ESTIMATED_TEXT_HEIGHT))

    def scale_for_ocr(self, image: RasterImage) -> StageResult[ScaleMetrics]:
        """Scale an image for OCR using the advanced estimator.

        The raw ratio target / estimate is adjusted for very small or very
        large text, for the overall pixel count and for extreme aspect
        ratios, then clamped to the bounds for the image's size bucket
        (see scale_bounds()).

        Returns:
            StageResult with the resized image, original and new
            dimensions, the factor applied and the text height estimate.
        """
        start = time.perf_counter()
        estimated = self.estimate_text_height_advanced(image)
        scale_factor = self._target_char_height / estimated

        if estimated < 15:
            scale_factor *= 1.2
        elif estimated > 80:
            scale_factor *= 0.9

        pixel_count = image.pixel_count
        if pixel_count < SMALL_IMAGE_PIXELS:
            scale_factor *= 1.1
        elif pixel_count > LARGE_IMAGE_PIXELS:
            scale_factor *= 0.95

        aspect_ratio = image.width / image.height
        if aspect_ratio > 2.0:
            scale_factor *= 0.95
        elif aspect_ratio < 0.5:
            scale_factor *= 1.05

        min_factor, max_factor = scale_bounds(pixel_count)
        scale_factor = _clamp(scale_factor, min_factor, max_factor)
        return self._resize(image, scale_factor, estimated, start)

    def _resize(
        self,
        image: RasterImage,
        scale_factor: float,
        estimated: int,
        start: float,
    ) -> StageResult[ScaleMetrics]:
        new_width, new_height = scaled_dimensions(image.width, image.height, scale_factor)
        scaled = resize_cubic(image, new_width, new_height)

        processing_time = elapsed_ms(start)
        logger.debug(
            "Scaled %dx%d -> %dx%d in %.2fms: factor=%.3f, estimated_text_height=%d, target=%d",
            image.width,
            image.height,
            new_width,
            new_height,
            processing_time,
            scale_factor,
            estimated,
            self._target_char_height,
        )

        return StageResult(
            image=scaled,
            metrics=ScaleMetrics(
                original_dimensions=image.dimensions,
                new_dimensions=scaled.dimensions,
                scale_factor=scale_factor,
                estimated_text_height=estimated,
            ),
            processing_time_ms=processing_time,
        )
