"""
Noise reduction and morphological operations.

reduce_noise() applies a Gaussian blur to every channel and keeps the pixel
format. The morphology functions work on grayscale intensities with a fixed
3x3 square structuring element and always return GRAY8.

Morphology only visits interior pixels, [1, w-2] x [1, h-2]. The one-pixel
border of every output is left at 0 (black) rather than clamped or
replicated; opening and closing inherit this from their two passes, so the
border band grows to two pixels for them. Images narrower or shorter than
3 pixels come back entirely black.
"""

import logging
import math
import time

import numpy as np

from config import MAX_DENOISE_SIGMA
from .errors import InvalidParameter
from .normalization import grayscale_pixels
from .types import (
    DenoiseMetrics,
    MorphologicalOperation,
    MorphologyMetrics,
    PixelFormat,
    RasterImage,
    StageResult,
    elapsed_ms,
)

logger = logging.getLogger(__name__)

KERNEL_SIZE = 3


def gaussian_kernel(sigma: float) -> np.ndarray:
    """Normalized 1D Gaussian kernel with radius ceil(3 * sigma)."""
    radius = max(1, int(math.ceil(3.0 * sigma)))
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(offsets**2) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


def _convolve_axis(data: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    radius = len(kernel) // 2
    pad = [(0, 0)] * data.ndim
    pad[axis] = (radius, radius)
    padded = np.pad(data, pad, mode="edge")

    size = data.shape[axis]
    result = np.zeros_like(data)
    for offset, weight in enumerate(kernel):
        window = [slice(None)] * data.ndim
        window[axis] = slice(offset, offset + size)
        result += weight * padded[tuple(window)]
    return result


def reduce_noise(image: RasterImage, sigma: float) -> StageResult[DenoiseMetrics]:
    """Gaussian blur to suppress sensor noise and JPEG artifacts.

    Args:
        image: Image in any supported format. The format is preserved and
               alpha channels are blurred like color channels.
        sigma: Standard deviation of the Gaussian, in (0, 5].

    Returns:
        StageResult with the blurred image and the sigma used.

    Raises:
        InvalidParameter: If sigma is outside (0, 5].
    """
    if not 0.0 < sigma <= MAX_DENOISE_SIGMA:
        raise InvalidParameter(
            f"Invalid sigma value: {sigma}. Must be greater than 0 and at most {MAX_DENOISE_SIGMA}"
        )

    start = time.perf_counter()
    kernel = gaussian_kernel(sigma)

    data = image.pixels.astype(np.float64)
    data = _convolve_axis(data, kernel, axis=0)
    data = _convolve_axis(data, kernel, axis=1)
    blurred = np.clip(np.rint(data), 0, image.format.max_value).astype(image.format.dtype)

    processing_time = elapsed_ms(start)
    logger.debug(
        "Noise reduction completed in %.2fms: sigma=%.2f, dimensions=%dx%d",
        processing_time,
        sigma,
        image.width,
        image.height,
    )

    return StageResult(
        image=RasterImage(pixels=blurred, format=image.format),
        metrics=DenoiseMetrics(sigma=sigma),
        processing_time_ms=processing_time,
    )


def _neighborhood_extreme(gray: np.ndarray, reducer) -> np.ndarray:
    height, width = gray.shape
    result = np.zeros_like(gray)
    if width < KERNEL_SIZE or height < KERNEL_SIZE:
        return result

    windows = [
        gray[dy:height - 2 + dy, dx:width - 2 + dx]
        for dy in range(KERNEL_SIZE)
        for dx in range(KERNEL_SIZE)
    ]
    result[1:-1, 1:-1] = reducer.reduce(windows)
    return result


def erode(gray: np.ndarray) -> np.ndarray:
    """3x3 neighborhood minimum over interior pixels; border left at 0."""
    return _neighborhood_extreme(gray, np.minimum)


def dilate(gray: np.ndarray) -> np.ndarray:
    """3x3 neighborhood maximum over interior pixels; border left at 0."""
    return _neighborhood_extreme(gray, np.maximum)


def apply_morphological_operation(
    image: RasterImage,
    operation: MorphologicalOperation,
) -> StageResult[MorphologyMetrics]:
    """Apply erosion, dilation, opening or closing with a 3x3 square.

    Opening (erosion then dilation) removes bright specks smaller than the
    kernel; closing (dilation then erosion) fills small dark gaps.

    Args:
        image: Image in any supported format; converted to grayscale first.
        operation: Which operation to run.

    Returns:
        StageResult with a GRAY8 image and the operation applied.
    """
    operation = MorphologicalOperation(operation)
    start = time.perf_counter()
    gray = grayscale_pixels(image)

    if operation == MorphologicalOperation.EROSION:
        processed = erode(gray)
    elif operation == MorphologicalOperation.DILATION:
        processed = dilate(gray)
    elif operation == MorphologicalOperation.OPENING:
        processed = dilate(erode(gray))
    else:
        processed = erode(dilate(gray))

    processing_time = elapsed_ms(start)
    logger.debug(
        "Morphological operation completed in %.2fms: operation=%s, dimensions=%dx%d",
        processing_time,
        operation.value,
        image.width,
        image.height,
    )

    return StageResult(
        image=RasterImage(pixels=processed, format=PixelFormat.GRAY8),
        metrics=MorphologyMetrics(operation=operation, kernel_size=KERNEL_SIZE),
        processing_time_ms=processing_time,
    )
