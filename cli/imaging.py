"""Image decoding and encoding for the command-line tool.

Decoding stays out of the preprocessing package: the core only ever sees
RasterImage values.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

from preprocessing import PixelFormat, RasterImage, to_grayscale

# Pillow modes that map straight onto a PixelFormat
_DIRECT_MODES = {
    "L": PixelFormat.GRAY8,
    "LA": PixelFormat.GRAY_ALPHA8,
    "RGB": PixelFormat.RGB8,
    "RGBA": PixelFormat.RGBA8,
}


def load_image(path: str | Path) -> RasterImage:
    """Decode an image file into a RasterImage.

    16-bit grayscale files are reduced to GRAY8; palette, CMYK and other
    modes are converted to RGB8 (or RGBA8 when they carry transparency).

    Raises:
        OSError: If the file cannot be read or decoded.
    """
    with Image.open(path) as img:
        img.load()
        mode = img.mode

        if mode in _DIRECT_MODES:
            return RasterImage(pixels=np.asarray(img).copy(), format=_DIRECT_MODES[mode])

        if mode.startswith("I;16") or mode == "I":
            wide = np.clip(np.asarray(img), 0, 65535).astype(np.uint16)
            return to_grayscale(RasterImage(pixels=wide, format=PixelFormat.GRAY16))

        has_alpha = "A" in mode or "transparency" in img.info
        converted = img.convert("RGBA" if has_alpha else "RGB")
        return RasterImage(
            pixels=np.asarray(converted).copy(),
            format=PixelFormat.RGBA8 if has_alpha else PixelFormat.RGB8,
        )


def check_output_path(path: str | Path) -> None:
    """Fail early when Pillow has no encoder for the path's extension.

    Raises:
        ValueError: If the extension is missing or unknown.
    """
    suffix = Path(path).suffix.lower()
    if suffix not in Image.registered_extensions():
        raise ValueError(f"Unknown image file extension for output: {str(path)!r}")


def write_image(image: RasterImage, path: str | Path) -> None:
    """Encode an image to a file; the format follows the extension.

    Raises:
        ValueError: If the extension is missing or unknown.
    """
    check_output_path(path)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(image.pixels)).save(path)
