"""
Shared image and result types for the preprocessing stages.

Images travel between stages as RasterImage values: an immutable pixel
array tagged with its PixelFormat. Every stage returns a new RasterImage
and never writes to the input array.

Stage outputs share one shape, StageResult[M], where M is the
stage-specific metrics dataclass.
"""

import time
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Generic, TypeVar

import numpy as np

from .errors import InvalidParameter


class PixelFormat(str, Enum):
    """Pixel layouts a decoded image may arrive in."""

    GRAY8 = "gray8"
    GRAY_ALPHA8 = "gray_alpha8"
    RGB8 = "rgb8"
    RGBA8 = "rgba8"
    GRAY16 = "gray16"
    RGB16 = "rgb16"

    @property
    def channels(self) -> int:
        return _CHANNELS[self]

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(np.uint16 if self in (PixelFormat.GRAY16, PixelFormat.RGB16) else np.uint8)

    @property
    def max_value(self) -> int:
        return int(np.iinfo(self.dtype).max)

    @property
    def has_alpha(self) -> bool:
        return self in (PixelFormat.GRAY_ALPHA8, PixelFormat.RGBA8)

    @property
    def is_grayscale(self) -> bool:
        return self in (PixelFormat.GRAY8, PixelFormat.GRAY_ALPHA8, PixelFormat.GRAY16)


_CHANNELS = {
    PixelFormat.GRAY8: 1,
    PixelFormat.GRAY_ALPHA8: 2,
    PixelFormat.RGB8: 3,
    PixelFormat.RGBA8: 4,
    PixelFormat.GRAY16: 1,
    PixelFormat.RGB16: 3,
}

_FORMATS_BY_LAYOUT = {
    (np.dtype(np.uint8), 1): PixelFormat.GRAY8,
    (np.dtype(np.uint8), 2): PixelFormat.GRAY_ALPHA8,
    (np.dtype(np.uint8), 3): PixelFormat.RGB8,
    (np.dtype(np.uint8), 4): PixelFormat.RGBA8,
    (np.dtype(np.uint16), 1): PixelFormat.GRAY16,
    (np.dtype(np.uint16), 3): PixelFormat.RGB16,
}


def infer_pixel_format(arr: np.ndarray) -> PixelFormat:
    """Infer the PixelFormat of a numpy array from its dtype and shape.

    Raises:
        InvalidParameter: If the array does not match any supported layout.
    """
    if arr.ndim == 2:
        channels = 1
    elif arr.ndim == 3:
        channels = arr.shape[2]
    else:
        raise InvalidParameter(
            f"Image must be 2D or 3D array, got {arr.ndim}D array with shape {arr.shape}"
        )
    try:
        return _FORMATS_BY_LAYOUT[(arr.dtype, channels)]
    except KeyError:
        raise InvalidParameter(
            f"Unsupported pixel layout: dtype={arr.dtype}, channels={channels}"
        ) from None


@dataclass(frozen=True, eq=False)
class RasterImage:
    """A decoded image: pixel array plus its pixel format.

    Single-channel formats are stored as 2D arrays (h, w); all others as
    (h, w, c). The stored array is a read-only view, so stages must copy
    before writing.

    Attributes:
        pixels: Pixel data as a numpy array.
        format: Layout of the pixel data.
    """

    pixels: np.ndarray
    format: PixelFormat

    def __post_init__(self):
        if not isinstance(self.pixels, np.ndarray):
            raise TypeError(f"Expected numpy.ndarray, got {type(self.pixels).__name__}")

        pixels = self.pixels
        if pixels.ndim == 3 and pixels.shape[2] == 1:
            pixels = pixels[:, :, 0]

        if pixels.size == 0 or pixels.ndim < 2 or 0 in pixels.shape[:2]:
            raise InvalidParameter(f"Image dimensions must be non-zero, got shape {pixels.shape}")

        expected_ndim = 2 if self.format.channels == 1 else 3
        if (
            pixels.ndim != expected_ndim
            or (expected_ndim == 3 and pixels.shape[2] != self.format.channels)
            or pixels.dtype != self.format.dtype
        ):
            raise InvalidParameter(
                f"Pixel array with shape {pixels.shape} and dtype {pixels.dtype} "
                f"does not match format {self.format.value}"
            )

        view = pixels.view()
        view.flags.writeable = False
        object.__setattr__(self, "pixels", view)

    @classmethod
    def from_array(cls, arr: np.ndarray, format: PixelFormat | None = None) -> "RasterImage":
        """Wrap a numpy array, inferring the format when not given."""
        if not isinstance(arr, np.ndarray):
            raise TypeError(f"Expected numpy.ndarray, got {type(arr).__name__}")
        if arr.size == 0:
            raise InvalidParameter("Image array is empty")
        if format is None:
            format = infer_pixel_format(arr)
        return cls(pixels=arr, format=format)

    @classmethod
    def gray(cls, arr: np.ndarray) -> "RasterImage":
        """Wrap a 2D array as GRAY8, casting to uint8."""
        return cls(pixels=np.asarray(arr, dtype=np.uint8), format=PixelFormat.GRAY8)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def dimensions(self) -> tuple[int, int]:
        """(width, height) of the image."""
        return self.width, self.height

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def copy_pixels(self) -> np.ndarray:
        """Return a writable copy of the pixel array."""
        return self.pixels.copy()


class ImageQuality(str, Enum):
    """Quality classes used to pick how much preprocessing to run."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MorphologicalOperation(str, Enum):
    """3x3 morphological operations on grayscale images."""

    EROSION = "erosion"
    DILATION = "dilation"
    OPENING = "opening"
    CLOSING = "closing"


class _Metrics:
    def to_dict(self) -> dict[str, Any]:
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            result[f.name] = value
        return result


@dataclass(frozen=True)
class ThresholdMetrics(_Metrics):
    threshold: int


@dataclass(frozen=True)
class DenoiseMetrics(_Metrics):
    sigma: float


@dataclass(frozen=True)
class MorphologyMetrics(_Metrics):
    operation: MorphologicalOperation
    kernel_size: int = 3


@dataclass(frozen=True)
class ClaheMetrics(_Metrics):
    clip_limit: float
    tile_size: tuple[int, int]


@dataclass(frozen=True)
class DeskewMetrics(_Metrics):
    skew_angle_degrees: float
    confidence: float


@dataclass(frozen=True)
class ScaleMetrics(_Metrics):
    original_dimensions: tuple[int, int]
    new_dimensions: tuple[int, int]
    scale_factor: float
    estimated_text_height: int


@dataclass(frozen=True)
class TargetedMetrics(_Metrics):
    original_dimensions: tuple[int, int]
    final_dimensions: tuple[int, int]
    scale_factor: float
    threshold: int


@dataclass(frozen=True)
class CropMetrics(_Metrics):
    original_bbox: tuple[int, int, int, int]
    cropped_region: tuple[int, int, int, int]


M = TypeVar("M")


@dataclass
class StageResult(Generic[M]):
    """Output of one preprocessing stage.

    Attributes:
        image: The transformed image.
        metrics: Stage-specific measurements and the parameters used.
        processing_time_ms: Wall-clock time spent in the stage.
    """

    image: RasterImage
    metrics: M
    processing_time_ms: float

    def to_dict(self) -> dict[str, Any]:
        """Metrics plus timing, for logging and telemetry."""
        data = self.metrics.to_dict() if hasattr(self.metrics, "to_dict") else {}
        data["processing_time_ms"] = round(self.processing_time_ms, 3)
        return data


@dataclass(frozen=True)
class QualityReport:
    """Result of image quality assessment.

    Attributes:
        quality: Overall classification.
        contrast_ratio: p90 - p10 intensity spread in [0, 1].
        brightness: Mean intensity in [0, 1]; 0.5 is ideal.
        sharpness: Normalized Laplacian energy in [0, 1].
        score: Weighted composite the classification is based on.
        processing_time_ms: Wall-clock time spent assessing.
    """

    quality: ImageQuality
    contrast_ratio: float
    brightness: float
    sharpness: float
    score: float
    processing_time_ms: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "quality": self.quality.value,
            "contrast_ratio": round(self.contrast_ratio, 4),
            "brightness": round(self.brightness, 4),
            "sharpness": round(self.sharpness, 4),
            "score": round(self.score, 4),
            "processing_time_ms": round(self.processing_time_ms, 3),
        }


def elapsed_ms(start: float) -> float:
    """Milliseconds elapsed since a time.perf_counter() reading."""
    return (time.perf_counter() - start) * 1000.0
