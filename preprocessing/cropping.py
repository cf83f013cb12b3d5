"""
Cropping of measurement regions for targeted OCR.

Given the bounding box of an OCR text line that starts with a quantity,
crop_measurement_region() cuts out the leading part of the line where the
quantity sits, with a little padding, ready for
preprocess_measurement_region().
"""

import logging
import time

from config import MEASUREMENT_CROP_PADDING, MEASUREMENT_CROP_WIDTH_RATIO
from geometry import Rect, clamp_rect, leading_region
from .errors import InvalidParameter
from .types import CropMetrics, RasterImage, StageResult, elapsed_ms

logger = logging.getLogger(__name__)


def measurement_crop_region(bbox: Rect) -> Rect:
    """Crop rectangle for the quantity at the start of a text line."""
    return leading_region(bbox, MEASUREMENT_CROP_WIDTH_RATIO, MEASUREMENT_CROP_PADDING)


def crop_measurement_region(image: RasterImage, bbox: Rect) -> StageResult[CropMetrics]:
    """Crop the measurement region of a text line out of an image.

    Args:
        image: Full recipe card image; the format is preserved.
        bbox: Text line rectangle (x0, y0, x1, y1) in image coordinates.

    Returns:
        StageResult with the cropped image, the requested bbox and the
        rectangle actually cropped after clamping to the image.

    Raises:
        InvalidParameter: If the bbox has negative coordinates or is inverted.
    """
    x0, y0, x1, y1 = (int(v) for v in bbox)
    if min(x0, y0) < 0 or x1 < x0 or y1 < y0:
        raise InvalidParameter(f"Invalid bounding box: {tuple(bbox)}")

    start = time.perf_counter()
    region = clamp_rect(measurement_crop_region((x0, y0, x1, y1)), image.width, image.height)
    rx0, ry0, rx1, ry1 = region
    cropped = RasterImage(
        pixels=image.pixels[ry0:ry1, rx0:rx1].copy(),
        format=image.format,
    )

    processing_time = elapsed_ms(start)
    logger.debug(
        "Cropped measurement region from %dx%d image: bbox %s, crop region %s, result %dx%d",
        image.width,
        image.height,
        (x0, y0, x1, y1),
        region,
        cropped.width,
        cropped.height,
    )

    return StageResult(
        image=cropped,
        metrics=CropMetrics(original_bbox=(x0, y0, x1, y1), cropped_region=region),
        processing_time_ms=processing_time,
    )
