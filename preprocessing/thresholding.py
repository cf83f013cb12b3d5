"""
Binary thresholding using Otsu's method.

The threshold is the intensity that maximizes the between-class variance of
the two pixel populations it separates. Output is always GRAY8 with values
in {0, 255}.
"""

import logging
import time

import numpy as np

from .normalization import grayscale_pixels
from .types import PixelFormat, RasterImage, StageResult, ThresholdMetrics, elapsed_ms

logger = logging.getLogger(__name__)

FALLBACK_THRESHOLD = 128


def build_histogram(gray: np.ndarray) -> np.ndarray:
    """256-bin intensity histogram of a uint8 array."""
    return np.bincount(gray.ravel(), minlength=256).astype(np.int64)


def find_otsu_threshold(histogram: np.ndarray) -> int:
    """Pick the threshold maximizing between-class variance.

    Candidates 1..254 are scanned in ascending order and the first one
    with a strictly greater variance wins, so ties favor the lower
    threshold. Candidates leaving either class empty are skipped. Returns
    FALLBACK_THRESHOLD when no candidate beats zero variance.
    """
    counts = np.asarray(histogram, dtype=np.float64)
    total = counts.sum()
    if total <= 0:
        return FALLBACK_THRESHOLD

    cumulative = np.cumsum(counts)
    cumulative_weighted = np.cumsum(np.arange(256, dtype=np.float64) * counts)
    total_weighted = cumulative_weighted[255]

    max_variance = 0.0
    threshold = FALLBACK_THRESHOLD

    for t in range(1, 255):
        w0 = cumulative[t] / total
        w1 = 1.0 - w0
        if w0 == 0.0 or w1 == 0.0:
            continue

        background = cumulative[t]
        foreground = total - background
        mu0 = cumulative_weighted[t] / background if background > 0 else 0.0
        mu1 = (total_weighted - cumulative_weighted[t]) / foreground if foreground > 0 else 0.0

        variance = w0 * w1 * (mu0 - mu1) ** 2
        if variance > max_variance:
            max_variance = variance
            threshold = t

    return threshold


def binarize(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Pixels strictly above threshold become 255, the rest 0."""
    return np.where(gray > threshold, 255, 0).astype(np.uint8)


def apply_otsu_threshold(image: RasterImage) -> StageResult[ThresholdMetrics]:
    """Binarize an image with a global Otsu threshold.

    Args:
        image: Image in any supported format; converted to grayscale first.

    Returns:
        StageResult with the GRAY8 binary image and the chosen threshold.
    """
    start = time.perf_counter()
    gray = grayscale_pixels(image)

    threshold = find_otsu_threshold(build_histogram(gray))
    binary = binarize(gray, threshold)

    processing_time = elapsed_ms(start)
    logger.debug(
        "Otsu thresholding completed in %.2fms: threshold=%d, dimensions=%dx%d",
        processing_time,
        threshold,
        image.width,
        image.height,
    )

    return StageResult(
        image=RasterImage(pixels=binary, format=PixelFormat.GRAY8),
        metrics=ThresholdMetrics(threshold=threshold),
        processing_time_ms=processing_time,
    )
