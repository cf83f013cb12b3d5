"""
Image quality assessment for adaptive preprocessing.

Scores contrast, brightness and sharpness on the grayscale intensities and
combines them into a HIGH / MEDIUM / LOW class. The orchestrator uses the
class to skip stages a clean photo does not need.
"""

import logging
import time

import numpy as np

from config import HIGH_QUALITY_SCORE, MEDIUM_QUALITY_SCORE, SHARPNESS_NORMALIZER
from .normalization import grayscale_pixels
from .types import ImageQuality, QualityReport, RasterImage, elapsed_ms

logger = logging.getLogger(__name__)

CONTRAST_WEIGHT = 0.4
BRIGHTNESS_WEIGHT = 0.2
SHARPNESS_WEIGHT = 0.4


def calculate_contrast_ratio(gray: np.ndarray) -> float:
    """Spread between the 10th and 90th intensity percentiles, in [0, 1].

    Percentiles are read from the sorted pixels at index int(n * p).
    """
    pixels = np.sort(gray, axis=None)
    n = pixels.size
    p10 = pixels[int(n * 0.1)] / 255.0
    p90 = pixels[min(int(n * 0.9), n - 1)] / 255.0
    return float(min(max(p90 - p10, 0.0), 1.0))


def calculate_brightness(gray: np.ndarray) -> float:
    """Mean intensity normalized to [0, 1]."""
    return float(gray.mean(dtype=np.float64) / 255.0)


def calculate_sharpness(gray: np.ndarray) -> float:
    """Laplacian energy over interior pixels, normalized to [0, 1].

    Uses the 4-neighbour kernel [[0,1,0],[1,-4,1],[0,1,0]] and the mean of
    squared responses. Images smaller than 3x3 have no interior and score 0.5.
    """
    height, width = gray.shape
    if width < 3 or height < 3:
        return 0.5

    g = gray.astype(np.float64)
    laplacian = (
        g[:-2, 1:-1] + g[2:, 1:-1] + g[1:-1, :-2] + g[1:-1, 2:]
        - 4.0 * g[1:-1, 1:-1]
    )
    energy = float(np.mean(laplacian * laplacian))
    return min(energy / SHARPNESS_NORMALIZER, 1.0)


def quality_score(contrast_ratio: float, brightness: float, sharpness: float) -> float:
    """Weighted composite; brightness scores best at 0.5."""
    brightness_score = 1.0 - abs(brightness - 0.5) * 2.0
    return (
        contrast_ratio * CONTRAST_WEIGHT
        + brightness_score * BRIGHTNESS_WEIGHT
        + sharpness * SHARPNESS_WEIGHT
    )


def classify_image_quality(contrast_ratio: float, brightness: float, sharpness: float) -> ImageQuality:
    score = quality_score(contrast_ratio, brightness, sharpness)
    if score >= HIGH_QUALITY_SCORE:
        return ImageQuality.HIGH
    if score >= MEDIUM_QUALITY_SCORE:
        return ImageQuality.MEDIUM
    return ImageQuality.LOW


def assess_image_quality(image: RasterImage) -> QualityReport:
    """Assess an image and classify how much preprocessing it needs.

    Args:
        image: Image in any supported format; converted to grayscale internally.

    Returns:
        QualityReport with the individual scores, the composite score and
        the resulting classification.
    """
    start = time.perf_counter()
    gray = grayscale_pixels(image)

    contrast_ratio = calculate_contrast_ratio(gray)
    brightness = calculate_brightness(gray)
    sharpness = calculate_sharpness(gray)
    score = quality_score(contrast_ratio, brightness, sharpness)
    quality = classify_image_quality(contrast_ratio, brightness, sharpness)

    processing_time = elapsed_ms(start)
    logger.debug(
        "Quality assessment completed in %.2fms: quality=%s, contrast=%.3f, "
        "brightness=%.3f, sharpness=%.3f",
        processing_time,
        quality.value,
        contrast_ratio,
        brightness,
        sharpness,
    )

    return QualityReport(
        quality=quality,
        contrast_ratio=contrast_ratio,
        brightness=brightness,
        sharpness=sharpness,
        score=score,
        processing_time_ms=processing_time,
    )
