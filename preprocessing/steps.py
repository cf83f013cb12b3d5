"""
Preprocessing step classes with a common interface.

Each step is a frozen dataclass that implements the PreprocessStep interface
by delegating to one stage function. Steps are pure: they take an input
image and return a StageResult without mutating the original.

Usage:
    from preprocessing.steps import ClaheStep, ScaleStep, Pipeline

    pipeline = Pipeline(steps=[
        ClaheStep(clip_limit=2.0),
        ScaleStep(target_char_height=28),
    ])
    result = pipeline.run(image)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import cv2
import numpy as np

from config import CLAHE_CLIP_LIMIT, CLAHE_TILE_SIZE, DEFAULT_TARGET_CHAR_HEIGHT, DENOISE_SIGMA
from .contrast import apply_clahe
from .deskewing import deskew_image
from .filtering import apply_morphological_operation, reduce_noise
from .normalization import to_grayscale
from .scaling import ImageScaler
from .thresholding import apply_otsu_threshold
from .types import MorphologicalOperation, PixelFormat, RasterImage, StageResult

logger = logging.getLogger(__name__)


class PreprocessStep(ABC):
    """Base class for preprocessing steps.

    All preprocessing steps must implement this interface. Steps should be
    pure functions: they take an input image and return a new output without
    mutating the original.
    """

    @abstractmethod
    def run(self, image: RasterImage) -> StageResult:
        """Run this step on an image.

        Args:
            image: Input image.

        Returns:
            StageResult holding the output image and the step's metrics.
        """

    def apply(self, image: RasterImage) -> RasterImage:
        """Run the step and return only the output image."""
        return self.run(image).image

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for logging and debugging."""


@dataclass(frozen=True)
class GrayscaleStep(PreprocessStep):
    """Convert image to GRAY8."""

    def run(self, image: RasterImage) -> StageResult:
        return StageResult(image=to_grayscale(image), metrics=None, processing_time_ms=0.0)

    @property
    def name(self) -> str:
        return "grayscale"


@dataclass(frozen=True)
class DenoiseStep(PreprocessStep):
    """Gaussian blur; keeps the pixel format."""

    sigma: float = DENOISE_SIGMA

    def run(self, image: RasterImage) -> StageResult:
        return reduce_noise(image, self.sigma)

    @property
    def name(self) -> str:
        return f"denoise(sigma={self.sigma})"


@dataclass(frozen=True)
class ClaheStep(PreprocessStep):
    """Apply Contrast Limited Adaptive Histogram Equalization.

    Evens out lighting across a card photographed under a kitchen lamp, at
    the cost of converting to grayscale.

    Attributes:
        clip_limit: Threshold for contrast limiting. Higher values give
                   more contrast but may amplify noise. Default is 2.0.
        tile_size: (width, height) of a tile. Smaller tiles give more local
                  adaptation. Default is (8, 8).
    """

    clip_limit: float = CLAHE_CLIP_LIMIT
    tile_size: tuple[int, int] = CLAHE_TILE_SIZE

    def run(self, image: RasterImage) -> StageResult:
        return apply_clahe(image, self.clip_limit, self.tile_size)

    @property
    def name(self) -> str:
        return f"clahe(clip={self.clip_limit})"


@dataclass(frozen=True)
class DeskewStep(PreprocessStep):
    """Detect and correct skew; may change dimensions."""

    def run(self, image: RasterImage) -> StageResult:
        return deskew_image(image)

    @property
    def name(self) -> str:
        return "deskew"


@dataclass(frozen=True)
class ScaleStep(PreprocessStep):
    """Resize so text reaches the target character height."""

    target_char_height: int = DEFAULT_TARGET_CHAR_HEIGHT

    def run(self, image: RasterImage) -> StageResult:
        return ImageScaler(self.target_char_height).scale_for_ocr(image)

    @property
    def name(self) -> str:
        return f"scale(target={self.target_char_height})"


@dataclass(frozen=True)
class ThresholdStep(PreprocessStep):
    """Otsu binarization; output is GRAY8 with values 0 and 255."""

    def run(self, image: RasterImage) -> StageResult:
        return apply_otsu_threshold(image)

    @property
    def name(self) -> str:
        return "threshold"


@dataclass(frozen=True)
class MorphologyStep(PreprocessStep):
    """3x3 morphological cleanup; output is GRAY8."""

    operation: MorphologicalOperation = MorphologicalOperation.OPENING

    def run(self, image: RasterImage) -> StageResult:
        return apply_morphological_operation(image, self.operation)

    @property
    def name(self) -> str:
        return f"morphology({MorphologicalOperation(self.operation).value})"


@dataclass
class StepResult:
    """Result of applying a single preprocessing step.

    Attributes:
        name: Name of the step that produced this result.
        image: Output image from the step.
        metadata: Metrics and timing reported by the step.
        artifact_path: Path where the image was saved (if artifact saving enabled).
    """

    name: str
    image: RasterImage
    metadata: dict[str, Any] = field(default_factory=dict)
    artifact_path: str | None = None


@dataclass
class PipelineStepResults:
    """Results from running a preprocessing pipeline.

    Provides access to all intermediate images and aggregated metadata.

    Attributes:
        original: The original input image.
        steps: List of StepResult for each step in order.
        original_artifact_path: Path where original image was saved (if artifact saving enabled).
    """

    original: RasterImage
    steps: list[StepResult] = field(default_factory=list)
    original_artifact_path: str | None = None

    @property
    def final(self) -> RasterImage:
        """Get the final processed image."""
        if not self.steps:
            return self.original
        return self.steps[-1].image

    def get_intermediate(self, step_name: str) -> RasterImage | None:
        """Get intermediate image by step name, or None if not found."""
        for step in self.steps:
            if step.name == step_name:
                return step.image
        return None

    def get_metadata(self, key: str) -> Any | None:
        """Get metadata value from any step.

        Searches steps in order and returns the first match.
        """
        for step in self.steps:
            if key in step.metadata:
                return step.metadata[key]
        return None

    @property
    def scale_factor(self) -> float:
        """Convenience property for the common scale_factor metadata."""
        return self.get_metadata("scale_factor") or 1.0

    @property
    def step_metadata(self) -> dict[str, dict[str, Any]]:
        """Metadata per step, keyed by step name without parameters."""
        return {step.name.split("(")[0]: step.metadata for step in self.steps}

    @property
    def artifact_paths(self) -> dict[str, str]:
        """Get all artifact paths as a dict mapping step name to path.

        Only includes steps that have artifact_path set.
        """
        paths = {}
        if self.original_artifact_path:
            paths["original"] = self.original_artifact_path
        for step in self.steps:
            if step.artifact_path:
                # Normalize step name for use as key (e.g., "scale(target=28)" -> "scale")
                key = step.name.split("(")[0]
                paths[key] = step.artifact_path
        return paths


def _to_cv2_layout(image: RasterImage) -> np.ndarray:
    pixels = image.pixels
    if image.format in (PixelFormat.RGB8, PixelFormat.RGB16):
        return cv2.cvtColor(np.ascontiguousarray(pixels), cv2.COLOR_RGB2BGR)
    if image.format == PixelFormat.RGBA8:
        return cv2.cvtColor(np.ascontiguousarray(pixels), cv2.COLOR_RGBA2BGRA)
    if image.format == PixelFormat.GRAY_ALPHA8:
        gray, alpha = pixels[:, :, 0], pixels[:, :, 1]
        return np.dstack([gray, gray, gray, alpha])
    return np.ascontiguousarray(pixels)


def save_image(image: RasterImage, path: str) -> None:
    """Save an image to disk; the encoding follows the file extension.

    Args:
        image: Image to save.
        path: Output file path.
    """
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(path, _to_cv2_layout(image)):
        raise OSError(f"Could not write image to {path}")


@dataclass
class Pipeline:
    """A sequence of preprocessing steps to apply to images.

    The pipeline runs each step in order, passing the output of one step
    as the input to the next. All intermediate results are preserved.

    Attributes:
        steps: List of PreprocessStep instances to apply in order.
    """

    steps: list[PreprocessStep]

    def run(
        self,
        image: RasterImage,
        artifact_dir: str | None = None,
    ) -> PipelineStepResults:
        """Run the pipeline on an image.

        Args:
            image: Input image.
            artifact_dir: Optional directory to save intermediate images.
                         If provided, saves original.png and each step's output.

        Returns:
            PipelineStepResults containing all intermediate images and metadata.
        """
        result = PipelineStepResults(original=image)
        current = image

        if artifact_dir:
            original_path = f"{artifact_dir}/original.png"
            save_image(image, original_path)
            result.original_artifact_path = original_path

        for index, step in enumerate(self.steps):
            stage = step.run(current)
            metadata = stage.to_dict()
            logger.debug("Step %s finished: %s", step.name, metadata)

            artifact_path = None
            if artifact_dir:
                step_key = step.name.split("(")[0]
                artifact_path = f"{artifact_dir}/{index + 1:02d}_{step_key}.png"
                save_image(stage.image, artifact_path)

            result.steps.append(
                StepResult(
                    name=step.name,
                    image=stage.image,
                    metadata=metadata,
                    artifact_path=artifact_path,
                )
            )
            current = stage.image

        return result

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)
