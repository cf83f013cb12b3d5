"""
Skew detection and rotation correction.

Detection binarizes the grayscale image at its median intensity and scores
candidate angles by the variance of a per-row projection profile of dark
samples. A coarse sweep over -10..10 degrees in 0.5 degree steps is refined
by a +/-0.5 degree sweep in 0.1 degree steps around the best coarse angle.
The angle with the LOWEST profile variance wins; ties keep the earlier
angle.

Correction rotates by the negated angle with nearest-neighbour sampling
onto a canvas sized to the rotated corners' bounding box. Canvas pixels
that map outside the source stay 0 (transparent black for alpha formats).
Nearest-neighbour keeps text edges sharp at the cost of some aliasing.
"""

import logging
import math
import time

import numpy as np

from config import (
    DESKEW_COARSE_STEP,
    DESKEW_CONFIDENCE_AREA,
    DESKEW_FINE_SPAN,
    DESKEW_FINE_STEP,
    DESKEW_MAX_ANGLE,
    DESKEW_MIN_CORRECTION,
)
from .errors import ProcessingFailure
from .normalization import grayscale_pixels
from .thresholding import binarize
from .types import DeskewMetrics, PixelFormat, RasterImage, StageResult, elapsed_ms

logger = logging.getLogger(__name__)

ROTATABLE_FORMATS = frozenset({
    PixelFormat.RGB8,
    PixelFormat.RGBA8,
    PixelFormat.GRAY8,
    PixelFormat.GRAY_ALPHA8,
})

# Rows processed per block when sampling rotated coordinates
_ROWS_PER_BLOCK = 256


def median_binarize(gray: np.ndarray) -> np.ndarray:
    """Binarize at the median intensity: above the median -> 255, else 0.

    Raises:
        ProcessingFailure: If the array is empty.
    """
    if gray.size == 0:
        raise ProcessingFailure("Empty image for thresholding")
    median = int(np.sort(gray, axis=None)[gray.size // 2])
    return binarize(gray, median)


def coarse_angles() -> list[float]:
    steps = int(round(DESKEW_MAX_ANGLE / DESKEW_COARSE_STEP))
    return [i * DESKEW_COARSE_STEP for i in range(-steps, steps + 1)]


def fine_angles(center: float) -> list[float]:
    steps = int(round(2 * DESKEW_FINE_SPAN / DESKEW_FINE_STEP))
    return [center - DESKEW_FINE_SPAN + i * DESKEW_FINE_STEP for i in range(steps + 1)]


def projection_variance(binary: np.ndarray, angle_degrees: float) -> float:
    """Variance of the dark-sample row profile after rotating by an angle.

    Each pixel coordinate is rotated about the image centre; when the
    rotated position lands inside the image and the sample there is dark
    (< 128), the pixel's own row is credited.
    """
    height, width = binary.shape
    angle = math.radians(angle_degrees)
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    cx, cy = width / 2.0, height / 2.0

    dark = binary < 128
    dx = (np.arange(width, dtype=np.float64) - cx)[None, :]
    projections = np.zeros(height, dtype=np.int64)

    for y0 in range(0, height, _ROWS_PER_BLOCK):
        rows = np.arange(y0, min(y0 + _ROWS_PER_BLOCK, height))
        dy = (rows.astype(np.float64) - cy)[:, None]

        rotated_x = dx * cos_a - dy * sin_a + cx
        rotated_y = dx * sin_a + dy * cos_a + cy
        inside = (
            (rotated_x >= 0) & (rotated_x < width)
            & (rotated_y >= 0) & (rotated_y < height)
        )

        row_ids = np.broadcast_to(rows[:, None], inside.shape)[inside]
        hits = dark[rotated_y[inside].astype(np.int64), rotated_x[inside].astype(np.int64)]
        projections += np.bincount(row_ids[hits], minlength=height)

    return float(projections.var())


def detect_skew_angle(gray: np.ndarray) -> float:
    """Detect the skew angle of a grayscale image in degrees.

    Raises:
        ProcessingFailure: If the image is empty.
    """
    binary = median_binarize(gray)

    best_angle = 0.0
    min_variance = math.inf
    for angle in coarse_angles():
        variance = projection_variance(binary, angle)
        if variance < min_variance:
            min_variance = variance
            best_angle = angle

    for angle in fine_angles(best_angle):
        variance = projection_variance(binary, angle)
        if variance < min_variance:
            min_variance = variance
            best_angle = angle

    return best_angle


def rotated_canvas_size(width: int, height: int, angle_radians: float) -> tuple[int, int]:
    """(width, height) of the bounding box of the rotated image corners."""
    cos_a, sin_a = math.cos(angle_radians), math.sin(angle_radians)
    half_w, half_h = width / 2.0, height / 2.0

    min_x = max_x = min_y = max_y = 0.0
    for x, y in ((-half_w, -half_h), (half_w, -half_h), (-half_w, half_h), (half_w, half_h)):
        rotated_x = x * cos_a - y * sin_a
        rotated_y = x * sin_a + y * cos_a
        min_x, max_x = min(min_x, rotated_x), max(max_x, rotated_x)
        min_y, max_y = min(min_y, rotated_y), max(max_y, rotated_y)

    # 1e-6 absorbs float noise so an exact fit does not gain a row
    return (
        max(1, math.ceil(max_x - min_x - 1e-6)),
        max(1, math.ceil(max_y - min_y - 1e-6)),
    )


def rotate_image(image: RasterImage, angle_degrees: float) -> RasterImage:
    """Rotate an image by angle_degrees with nearest-neighbour sampling.

    The canvas grows to hold all four rotated corners. Each canvas pixel is
    mapped back through the inverse rotation about the centres of canvas
    and source, and takes the source pixel it lands in.

    Raises:
        ProcessingFailure: If the pixel format cannot be rotated.
    """
    if image.format not in ROTATABLE_FORMATS:
        raise ProcessingFailure(f"Unsupported image format for rotation: {image.format.value}")

    width, height = image.dimensions
    angle = math.radians(angle_degrees)
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    new_width, new_height = rotated_canvas_size(width, height, angle)

    source = image.pixels
    output = np.zeros((new_height, new_width) + source.shape[2:], dtype=source.dtype)

    cx = (np.arange(new_width, dtype=np.float64) - new_width / 2.0)[None, :]
    for y0 in range(0, new_height, _ROWS_PER_BLOCK):
        rows = np.arange(y0, min(y0 + _ROWS_PER_BLOCK, new_height))
        cy = (rows.astype(np.float64) - new_height / 2.0)[:, None]

        orig_x = cx * cos_a + cy * sin_a + width / 2.0
        orig_y = -cx * sin_a + cy * cos_a + height / 2.0
        inside = (orig_x >= 0) & (orig_x < width) & (orig_y >= 0) & (orig_y < height)

        block = output[y0:y0 + len(rows)]
        block[inside] = source[orig_y[inside].astype(np.int64), orig_x[inside].astype(np.int64)]

    return RasterImage(pixels=output, format=image.format)


def skew_confidence(width: int, height: int, angle_degrees: float) -> float:
    """Confidence in a correction: smaller angles and larger images score higher."""
    angle_confidence = 1.0 - min(abs(angle_degrees) / DESKEW_MAX_ANGLE, 1.0)
    size_factor = min(width * height / DESKEW_CONFIDENCE_AREA, 1.0)
    return min(max(angle_confidence * 0.7 + size_factor * 0.3, 0.0), 1.0)


def deskew_image(image: RasterImage) -> StageResult[DeskewMetrics]:
    """Detect and correct text skew.

    Args:
        image: Image in any supported format; the format is preserved.
               Only RGB8, RGBA8, GRAY8 and GRAY_ALPHA8 can be rotated.

    Returns:
        StageResult with the corrected image, the detected angle and a
        confidence. Angles below 0.5 degrees are not corrected: the image
        comes back unchanged with confidence 0.0.

    Raises:
        ProcessingFailure: If a correction is needed and the pixel format
                           cannot be rotated.
    """
    start = time.perf_counter()
    skew_angle = detect_skew_angle(grayscale_pixels(image))

    if abs(skew_angle) < DESKEW_MIN_CORRECTION:
        logger.debug("Skew angle %.2f degrees is below threshold, skipping deskewing", skew_angle)
        return StageResult(
            image=RasterImage(pixels=image.copy_pixels(), format=image.format),
            metrics=DeskewMetrics(skew_angle_degrees=skew_angle, confidence=0.0),
            processing_time_ms=elapsed_ms(start),
        )

    rotated = rotate_image(image, -skew_angle)
    confidence = skew_confidence(image.width, image.height, skew_angle)

    processing_time = elapsed_ms(start)
    logger.debug(
        "Deskewing completed in %.2fms: corrected %.2f degree skew, %dx%d -> %dx%d",
        processing_time,
        skew_angle,
        image.width,
        image.height,
        rotated.width,
        rotated.height,
    )

    return StageResult(
        image=rotated,
        metrics=DeskewMetrics(skew_angle_degrees=skew_angle, confidence=confidence),
        processing_time_ms=processing_time,
    )
