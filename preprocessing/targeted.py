"""
Targeted preprocessing for small measurement regions.

Quantities and fractions ("1/2", "3/4") are often too small for the OCR
engine on a full recipe card. Once a measurement's line has been cropped,
this micro-pipeline upscales it 2.5x, converts to grayscale and binarizes
with a global Otsu threshold so dark text ends up black on white.
"""

import logging
import time

from config import TARGETED_SCALE_FACTOR
from .normalization import grayscale_pixels, resize_cubic, scaled_dimensions
from .thresholding import binarize, build_histogram, find_otsu_threshold
from .types import PixelFormat, RasterImage, StageResult, TargetedMetrics, elapsed_ms

logger = logging.getLogger(__name__)


def preprocess_measurement_region(image: RasterImage) -> StageResult[TargetedMetrics]:
    """Upscale, grayscale and binarize a cropped measurement region.

    Args:
        image: Cropped region in any supported format.

    Returns:
        StageResult with the GRAY8 binary image, original and final
        dimensions, the fixed scale factor and the Otsu threshold.
    """
    start = time.perf_counter()
    original_dimensions = image.dimensions

    new_width, new_height = scaled_dimensions(image.width, image.height, TARGETED_SCALE_FACTOR)
    upscaled = resize_cubic(image, new_width, new_height)

    gray = grayscale_pixels(upscaled)
    threshold = find_otsu_threshold(build_histogram(gray))
    final = RasterImage(pixels=binarize(gray, threshold), format=PixelFormat.GRAY8)

    processing_time = elapsed_ms(start)
    logger.debug(
        "Applied targeted preprocessing: %dx%d -> %dx%d (scale: %.1fx), threshold: %d",
        original_dimensions[0],
        original_dimensions[1],
        final.width,
        final.height,
        TARGETED_SCALE_FACTOR,
        threshold,
    )

    return StageResult(
        image=final,
        metrics=TargetedMetrics(
            original_dimensions=original_dimensions,
            final_dimensions=final.dimensions,
            scale_factor=TARGETED_SCALE_FACTOR,
            threshold=threshold,
        ),
        processing_time_ms=processing_time,
    )
