"""
Contrast Limited Adaptive Histogram Equalization (CLAHE).

The image is split into tiles and each tile is equalized with its own
clipped histogram. Tiles are written back with hard boundaries; there is no
bilinear blending between neighbouring tiles. Output is always GRAY8.
"""

import logging
import math
import numbers
import time

import numpy as np

from .errors import InvalidParameter
from .normalization import grayscale_pixels
from .thresholding import build_histogram
from .types import ClaheMetrics, PixelFormat, RasterImage, StageResult, elapsed_ms

logger = logging.getLogger(__name__)


def is_valid_tile_size(tile_size) -> bool:
    """True for a pair of positive, finite, whole-number tile dimensions."""
    if not isinstance(tile_size, (tuple, list)) or len(tile_size) != 2:
        return False
    return all(
        isinstance(size, numbers.Real)
        and not isinstance(size, bool)
        and math.isfinite(size)
        and int(size) == size
        and size > 0
        for size in tile_size
    )


def clip_histogram(histogram: np.ndarray, clip_limit_pixels: int) -> np.ndarray:
    """Clip bins at clip_limit_pixels and spread the excess over all bins.

    Every bin receives excess // 256; the first excess % 256 bins receive
    one more.
    """
    clipped = np.minimum(histogram, clip_limit_pixels)
    excess = int((histogram - clipped).sum())

    increment, remainder = divmod(excess, 256)
    clipped = clipped + increment
    clipped[:remainder] += 1
    return clipped


def equalize_tile(tile: np.ndarray, clip_limit: float) -> np.ndarray:
    """Equalize one tile using its contrast-limited histogram."""
    total_pixels = tile.size
    histogram = build_histogram(tile)

    # A limit at or above the tile size clips nothing
    limit = clip_limit * (total_pixels / 256.0)
    if limit >= total_pixels:
        clip_limit_pixels = total_pixels
    else:
        clip_limit_pixels = int(math.floor(limit + 0.5))
    adjusted = clip_histogram(histogram, clip_limit_pixels)

    cdf = np.cumsum(adjusted / total_pixels)
    lookup = np.clip(np.floor(cdf * 255.0 + 0.5), 0, 255).astype(np.uint8)
    return lookup[tile]


def apply_clahe(
    image: RasterImage,
    clip_limit: float,
    tile_size: tuple[int, int],
) -> StageResult[ClaheMetrics]:
    """Apply tiled CLAHE to an image.

    Args:
        image: Image in any supported format; converted to grayscale first.
        clip_limit: Histogram clip limit as a multiple of the mean bin count.
                    Must be positive and finite.
        tile_size: (width, height) of a tile. Both must be positive; each is
                   clamped to the image dimension. Edge tiles may be smaller.

    Returns:
        StageResult with the GRAY8 enhanced image, same dimensions as input.

    Raises:
        InvalidParameter: If clip_limit is not positive and finite, or a tile
                          dimension is not a positive integer.
    """
    if not (clip_limit > 0 and math.isfinite(clip_limit)):
        raise InvalidParameter(
            f"Invalid clip limit: {clip_limit}. Must be a finite value > 0.0"
        )
    if not is_valid_tile_size(tile_size):
        raise InvalidParameter(
            f"Invalid tile size: {tile_size}. Both dimensions must be positive integers"
        )

    start = time.perf_counter()
    gray = grayscale_pixels(image)
    height, width = gray.shape

    tile_width = min(int(tile_size[0]), width)
    tile_height = min(int(tile_size[1]), height)
    tiles_x = -(-width // tile_width)
    tiles_y = -(-height // tile_height)

    output = np.empty_like(gray)
    for ty in range(tiles_y):
        y0 = ty * tile_height
        y1 = min(y0 + tile_height, height)
        for tx in range(tiles_x):
            x0 = tx * tile_width
            x1 = min(x0 + tile_width, width)
            output[y0:y1, x0:x1] = equalize_tile(gray[y0:y1, x0:x1], clip_limit)

    processing_time = elapsed_ms(start)
    logger.debug(
        "CLAHE applied in %.2fms: clip_limit=%s, tile_size=%s, tiles=%dx%d",
        processing_time,
        clip_limit,
        tuple(tile_size),
        tiles_x,
        tiles_y,
    )

    return StageResult(
        image=RasterImage(pixels=output, format=PixelFormat.GRAY8),
        metrics=ClaheMetrics(clip_limit=clip_limit, tile_size=(int(tile_size[0]), int(tile_size[1]))),
        processing_time_ms=processing_time,
    )
