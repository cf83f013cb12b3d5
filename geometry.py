"""Shared geometry utilities for OCR bounding boxes and crop rectangles."""

from __future__ import annotations

# Bounding box as list of 4 [x, y] points defining a quadrilateral
Bbox = list[list[int]]

# Axis-aligned rectangle (x0, y0, x1, y1); x1/y1 are exclusive
Rect = tuple[int, int, int, int]


def bbox_to_rect(bbox: Bbox) -> Rect:
    """Convert a quadrilateral bbox to a bounding rectangle (x0, y0, x1, y1)."""
    x_coords = [p[0] for p in bbox]
    y_coords = [p[1] for p in bbox]
    return min(x_coords), min(y_coords), max(x_coords), max(y_coords)


def rect_width(rect: Rect) -> int:
    return rect[2] - rect[0]


def rect_height(rect: Rect) -> int:
    return rect[3] - rect[1]


def leading_region(rect: Rect, width_ratio: float, padding: int) -> Rect:
    """Padded rectangle over the leading share of a text line.

    Keeps the first width_ratio of the line's width and the full line
    height, then pads every side. Coordinates saturate at 0.
    """
    x0, y0, _, y1 = rect
    crop_width = int(rect_width(rect) * width_ratio)
    return (
        max(0, x0 - padding),
        max(0, y0 - padding),
        x0 + crop_width + padding,
        y1 + padding,
    )


def clamp_rect(rect: Rect, width: int, height: int) -> Rect:
    """Clamp a rectangle into a width x height image, keeping it at least 1x1."""
    x0 = min(rect[0], max(width - 1, 0))
    y0 = min(rect[1], max(height - 1, 0))
    x1 = max(min(rect[2], width), x0 + 1)
    y1 = max(min(rect[3], height), y0 + 1)
    return x0, y0, x1, y1
