"""
Image normalization functions shared by the preprocessing stages.

All functions are pure: they take an input and return a new output without
mutating the original array. This ensures predictable behavior and makes
testing straightforward.

Grayscale conversion is the single place where pixel formats are collapsed
to GRAY8; every stage that needs intensities goes through it.
"""

import numpy as np

from .errors import InvalidParameter
from .types import PixelFormat, RasterImage

# Rec. 709 luma weights in integer form (sum to LUMA_DIVISOR)
LUMA_WEIGHTS = (2126, 7152, 722)
LUMA_DIVISOR = 10000


def _reduce_16_to_8(values: np.ndarray) -> np.ndarray:
    return np.rint(values.astype(np.float64) / 257.0).astype(np.uint8)


def grayscale_pixels(image: RasterImage) -> np.ndarray:
    """Return the intensities of an image as a new 2D uint8 array.

    Conversion rules per format:
        - GRAY8: copied as-is
        - GRAY_ALPHA8: alpha dropped
        - RGB8 / RGBA8: alpha dropped, Rec. 709 luma with truncation
        - GRAY16 / RGB16: as above, then reduced to 8 bits by round(v / 257)

    Examples:
        >>> rgb = RasterImage.from_array(np.zeros((100, 200, 3), dtype=np.uint8))
        >>> grayscale_pixels(rgb).shape
        (100, 200)
    """
    fmt = image.format
    pixels = image.pixels

    if fmt == PixelFormat.GRAY8:
        return pixels.copy()
    if fmt == PixelFormat.GRAY_ALPHA8:
        return pixels[:, :, 0].copy()
    if fmt == PixelFormat.GRAY16:
        return _reduce_16_to_8(pixels)

    rgb = pixels[:, :, :3].astype(np.uint32)
    wr, wg, wb = LUMA_WEIGHTS
    luma = (wr * rgb[:, :, 0] + wg * rgb[:, :, 1] + wb * rgb[:, :, 2]) // LUMA_DIVISOR

    if fmt == PixelFormat.RGB16:
        return _reduce_16_to_8(luma)
    return luma.astype(np.uint8)


def to_grayscale(image: RasterImage) -> RasterImage:
    """Convert an image of any supported format to GRAY8.

    Pure function: returns a new image without modifying the input.
    """
    return RasterImage(pixels=grayscale_pixels(image), format=PixelFormat.GRAY8)


def scaled_dimensions(width: int, height: int, factor: float) -> tuple[int, int]:
    """Dimensions after scaling by factor, truncated and at least 1x1."""
    return max(1, int(width * factor)), max(1, int(height * factor))


def _catmull_rom(x: np.ndarray) -> np.ndarray:
    x = np.abs(x)
    near = 1.5 * x**3 - 2.5 * x**2 + 1.0
    far = -0.5 * x**3 + 2.5 * x**2 - 4.0 * x + 2.0
    return np.where(x < 1.0, near, np.where(x < 2.0, far, 0.0))


def _resample_weights(src_size: int, dst_size: int) -> tuple[np.ndarray, np.ndarray]:
    """Source indices and normalized weights for each destination sample.

    When downscaling, the kernel is stretched by the reduction ratio so
    every source pixel contributes.
    """
    ratio = src_size / dst_size
    stretch = max(ratio, 1.0)
    support = 2.0 * stretch

    centers = (np.arange(dst_size) + 0.5) * ratio
    left = np.floor(centers - support).astype(np.int64)
    taps = int(np.ceil(2.0 * support)) + 1

    indices = left[:, None] + np.arange(taps)[None, :]
    weights = _catmull_rom((indices + 0.5 - centers[:, None]) / stretch)
    weights /= weights.sum(axis=1, keepdims=True)
    return np.clip(indices, 0, src_size - 1), weights


def _resample_axis(data: np.ndarray, dst_size: int, axis: int) -> np.ndarray:
    indices, weights = _resample_weights(data.shape[axis], dst_size)
    shape = [1] * data.ndim
    shape[axis] = dst_size

    result = np.zeros(
        data.shape[:axis] + (dst_size,) + data.shape[axis + 1:], dtype=np.float64
    )
    for tap in range(indices.shape[1]):
        samples = np.take(data, indices[:, tap], axis=axis)
        result += samples * weights[:, tap].reshape(shape)
    return result


def resize_cubic(image: RasterImage, width: int, height: int) -> RasterImage:
    """Resize an image with separable Catmull-Rom interpolation.

    Pure function: returns a new image in the same pixel format.

    Args:
        image: Input image.
        width: Output width in pixels.
        height: Output height in pixels.

    Returns:
        Resized image. Overshoot from the cubic kernel is clipped to the
        format's value range.

    Raises:
        InvalidParameter: If width or height is not a positive integer.

    Examples:
        >>> img = RasterImage.from_array(np.zeros((100, 200, 3), dtype=np.uint8))
        >>> resize_cubic(img, 400, 200).dimensions
        (400, 200)
    """
    for name, value in (("width", width), ("height", height)):
        if not isinstance(value, (int, np.integer)) or isinstance(value, bool):
            raise InvalidParameter(f"{name} must be int, got {type(value).__name__}")
        if value <= 0:
            raise InvalidParameter(f"{name} must be positive, got {value}")

    if (width, height) == image.dimensions:
        return RasterImage(pixels=image.copy_pixels(), format=image.format)

    data = image.pixels.astype(np.float64)
    data = _resample_axis(data, height, axis=0)
    data = _resample_axis(data, width, axis=1)

    resized = np.clip(np.rint(data), 0, image.format.max_value).astype(image.format.dtype)
    return RasterImage(pixels=resized, format=image.format)
