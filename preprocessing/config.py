"""
Configuration for the preprocessing pipeline.

All preprocessing steps are parameterized through PreprocessConfig to ensure
reproducibility and easy experimentation with different settings.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from config import (
    DEFAULT_TARGET_CHAR_HEIGHT,
    MIN_TARGET_CHAR_HEIGHT,
    MAX_TARGET_CHAR_HEIGHT,
    DENOISE_SIGMA,
    MAX_DENOISE_SIGMA,
    CLAHE_CLIP_LIMIT,
    CLAHE_TILE_SIZE,
)
from .contrast import is_valid_tile_size
from .errors import InvalidParameter, InvalidTargetHeight
from .types import ImageQuality, MorphologicalOperation, QualityReport, RasterImage


@dataclass(frozen=True)
class PreprocessConfig:
    """Configuration for all preprocessing steps.

    This immutable configuration object parameterizes every step of the
    adaptive pipeline. Default values are tuned for photographed recipe
    cards read by a Tesseract-style OCR engine.

    Attributes:
        target_char_height: Character height (pixels) the scaler aims for.
        scale_enabled: Whether to resize for OCR.
        denoise_enabled: Whether LOW quality images get a Gaussian blur.
        denoise_sigma: Sigma for the Gaussian blur, in (0, 5].
        clahe_enabled: Whether MEDIUM and LOW quality images get CLAHE.
        clahe_clip_limit: Contrast limit for CLAHE.
        clahe_tile_size: (width, height) of CLAHE tiles.
        deskew_enabled: Whether to detect and correct skew.
        threshold_enabled: Whether LOW quality images are binarized last.
        morphology_operation: Optional cleanup after binarization
                              (e.g. opening to drop specks). None skips it.
        force_quality: Use this quality class instead of assessing.
    """

    # Scaling
    target_char_height: int = DEFAULT_TARGET_CHAR_HEIGHT
    scale_enabled: bool = True

    # Noise reduction
    denoise_enabled: bool = True
    denoise_sigma: float = DENOISE_SIGMA

    # CLAHE settings (contrast enhancement)
    clahe_enabled: bool = True
    clahe_clip_limit: float = CLAHE_CLIP_LIMIT
    clahe_tile_size: tuple[int, int] = CLAHE_TILE_SIZE

    # Geometry
    deskew_enabled: bool = True

    # Binarization
    threshold_enabled: bool = True
    morphology_operation: MorphologicalOperation | None = None

    force_quality: ImageQuality | None = None

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            InvalidTargetHeight: If target_char_height is outside 20-35.
            InvalidParameter: If any other parameter is invalid.
        """
        if (
            isinstance(self.target_char_height, bool)
            or not isinstance(self.target_char_height, int)
            or not MIN_TARGET_CHAR_HEIGHT <= self.target_char_height <= MAX_TARGET_CHAR_HEIGHT
        ):
            raise InvalidTargetHeight(
                self.target_char_height, MIN_TARGET_CHAR_HEIGHT, MAX_TARGET_CHAR_HEIGHT
            )

        if not 0.0 < self.denoise_sigma <= MAX_DENOISE_SIGMA:
            raise InvalidParameter(
                f"denoise_sigma must be in (0, {MAX_DENOISE_SIGMA}], got {self.denoise_sigma}"
            )

        if not (self.clahe_clip_limit > 0 and math.isfinite(self.clahe_clip_limit)):
            raise InvalidParameter(
                f"clahe_clip_limit must be positive and finite, got {self.clahe_clip_limit}"
            )

        if not is_valid_tile_size(self.clahe_tile_size):
            raise InvalidParameter(
                "clahe_tile_size must be a tuple of two positive integers, "
                f"got {self.clahe_tile_size}"
            )

        if self.morphology_operation is not None:
            try:
                MorphologicalOperation(self.morphology_operation)
            except ValueError:
                raise InvalidParameter(
                    f"Unknown morphology_operation: {self.morphology_operation!r}"
                ) from None

        if self.force_quality is not None:
            try:
                ImageQuality(self.force_quality)
            except ValueError:
                raise InvalidParameter(
                    f"Unknown force_quality: {self.force_quality!r}"
                ) from None


@dataclass
class PreprocessResult:
    """Result of the adaptive preprocessing pipeline.

    Attributes:
        original: Input image, preserved for reference.
        processed: Final image handed to the OCR engine.
        quality: Quality report the step plan was chosen from.
        scale_factor: Factor applied by the scaling step (1.0 if skipped).
        config: The configuration used for preprocessing.
        step_metadata: Per-step metrics keyed by step name, in run order.
        artifact_paths: Dict mapping step names to saved file paths (if artifact saving enabled).
    """

    original: RasterImage
    processed: RasterImage
    quality: QualityReport
    scale_factor: float
    config: PreprocessConfig
    step_metadata: dict[str, dict[str, Any]] = field(default_factory=dict)
    artifact_paths: dict[str, str] = field(default_factory=dict)

    @property
    def steps_applied(self) -> list[str]:
        return list(self.step_metadata)

    @property
    def ocr_dimensions(self) -> tuple[int, int]:
        """Get (width, height) of the processed image."""
        return self.processed.dimensions

    def to_dict(self) -> dict[str, Any]:
        """Summary for logging and telemetry; excludes pixel data."""
        return {
            "quality": self.quality.to_dict(),
            "original_dimensions": list(self.original.dimensions),
            "processed_dimensions": list(self.processed.dimensions),
            "processed_format": self.processed.format.value,
            "scale_factor": round(self.scale_factor, 4),
            "steps": self.step_metadata,
            "artifact_paths": self.artifact_paths,
        }
