"""Pytest configuration - fast-by-default setup.

Slow tests (large images, full deskew sweeps) are skipped unless --slow is passed.
Run the full suite:   pytest --slow
Run fast tests only:  pytest          (default)
"""
import numpy as np
import pytest

from preprocessing import PixelFormat, RasterImage


def pytest_addoption(parser):
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="Run slow tests that process multi-megapixel images",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--slow"):
        return  # run everything
    skip_slow = pytest.mark.skip(reason="slow test skipped - pass --slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def lined_card():
    """White RGB card with dark horizontal text lines."""
    pixels = np.full((90, 120, 3), 255, dtype=np.uint8)
    for y in range(10, 80, 12):
        pixels[y:y + 3, 10:110] = 20
    return RasterImage(pixels=pixels, format=PixelFormat.RGB8)


@pytest.fixture
def checkerboard():
    """Maximum contrast, mid brightness and sharpness: a HIGH quality image."""
    yy, xx = np.indices((40, 40))
    return RasterImage.gray(np.where((xx + yy) % 2 == 0, 0, 255))
