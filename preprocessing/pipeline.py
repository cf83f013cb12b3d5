"""
Quality-adaptive preprocessing pipeline.

The pipeline is the main entry point for preparing a recipe card photo for
OCR. It assesses image quality first and only runs the stages the image
needs:

- HIGH:   Deskew → Scale
- MEDIUM: CLAHE → Deskew → Scale
- LOW:    Denoise → CLAHE → Deskew → Scale → Threshold (→ Morphology)

Every stage can be switched off in PreprocessConfig. All stages are
synchronous and CPU-bound; run_batch() spreads independent images over a
thread pool, and run_pipeline_async() moves a single run off an asyncio
event loop.
"""

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

import numpy as np

from config import MAX_BATCH_WORKERS
from .config import PreprocessConfig, PreprocessResult
from .quality import assess_image_quality
from .steps import (
    ClaheStep,
    DenoiseStep,
    DeskewStep,
    MorphologyStep,
    Pipeline,
    PreprocessStep,
    ScaleStep,
    ThresholdStep,
)
from .types import ImageQuality, QualityReport, RasterImage

logger = logging.getLogger(__name__)


def _coerce_input(image: RasterImage | np.ndarray) -> RasterImage:
    """Accept a RasterImage or a raw numpy array.

    Raises:
        TypeError: If image is neither.
        InvalidParameter: If the array has no supported pixel layout.
    """
    if isinstance(image, RasterImage):
        return image
    if isinstance(image, np.ndarray):
        return RasterImage.from_array(image)
    raise TypeError(f"Expected RasterImage or numpy.ndarray, got {type(image).__name__}")


def build_pipeline(config: PreprocessConfig, quality: ImageQuality) -> Pipeline:
    """Build the step plan for an image of the given quality.

    Args:
        config: Preprocessing configuration.
        quality: Quality class of the input image.

    Returns:
        Pipeline configured according to the config and quality.
    """
    quality = ImageQuality(quality)
    steps: list[PreprocessStep] = []

    if quality == ImageQuality.LOW and config.denoise_enabled:
        steps.append(DenoiseStep(sigma=config.denoise_sigma))

    if quality != ImageQuality.HIGH and config.clahe_enabled:
        steps.append(
            ClaheStep(clip_limit=config.clahe_clip_limit, tile_size=config.clahe_tile_size)
        )

    if config.deskew_enabled:
        steps.append(DeskewStep())

    if config.scale_enabled:
        steps.append(ScaleStep(target_char_height=config.target_char_height))

    if quality == ImageQuality.LOW and config.threshold_enabled:
        steps.append(ThresholdStep())
        if config.morphology_operation is not None:
            steps.append(MorphologyStep(operation=config.morphology_operation))

    return Pipeline(steps=steps)


def run_pipeline(
    image: RasterImage | np.ndarray,
    config: PreprocessConfig | None = None,
    artifact_dir: str | None = None,
) -> PreprocessResult:
    """Assess an image and run the matching preprocessing steps.

    All operations are pure and non-mutating. The original image is preserved.

    Args:
        image: Decoded image, as a RasterImage or a numpy array whose layout
               maps to a PixelFormat.
        config: Preprocessing configuration. If None, uses default settings.
        artifact_dir: Optional directory to save intermediate images.

    Returns:
        PreprocessResult with the processed image, the quality report and
        per-step metrics.

    Raises:
        InvalidParameter: If configuration or input is invalid. Raised
                          before any pixel work.
        ProcessingFailure: If a stage cannot process the image.
        TypeError: If inputs are of wrong type.
    """
    if config is None:
        config = PreprocessConfig()

    config.validate()
    original = _coerce_input(image)

    if config.force_quality is not None:
        forced = ImageQuality(config.force_quality)
        report = QualityReport(
            quality=forced,
            contrast_ratio=0.0,
            brightness=0.0,
            sharpness=0.0,
            score=0.0,
            processing_time_ms=0.0,
        )
    else:
        report = assess_image_quality(original)

    pipeline = build_pipeline(config, report.quality)
    logger.info(
        "Preprocessing %dx%d %s image: quality=%s, steps=%s",
        original.width,
        original.height,
        original.format.value,
        report.quality.value,
        [step.name for step in pipeline],
    )

    pipeline_result = pipeline.run(original, artifact_dir=artifact_dir)

    return PreprocessResult(
        original=original,
        processed=pipeline_result.final,
        quality=report,
        scale_factor=pipeline_result.scale_factor,
        config=config,
        step_metadata=pipeline_result.step_metadata,
        artifact_paths=pipeline_result.artifact_paths,
    )


def run_batch(
    images: Sequence[RasterImage | np.ndarray],
    config: PreprocessConfig | None = None,
    max_workers: int | None = None,
) -> list[PreprocessResult]:
    """Run the pipeline over independent images on a thread pool.

    Results come back in input order. Every image is attempted; if any
    failed, the first failure (in input order) is re-raised afterwards.
    """
    if config is None:
        config = PreprocessConfig()
    config.validate()

    if not images:
        return []

    if max_workers is None:
        max_workers = min(os.cpu_count() or 4, MAX_BATCH_WORKERS)
    max_workers = max(1, min(max_workers, len(images)))

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(run_pipeline, image, config) for image in images]

    results = []
    first_error = None
    for index, future in enumerate(futures):
        error = future.exception()
        if error is not None:
            logger.error("Preprocessing failed for image %d: %s", index, error)
            if first_error is None:
                first_error = error
            continue
        results.append(future.result())

    if first_error is not None:
        raise first_error
    return results


async def run_pipeline_async(
    image: RasterImage | np.ndarray,
    config: PreprocessConfig | None = None,
) -> PreprocessResult:
    """Run the pipeline in a worker thread so the event loop stays responsive."""
    return await asyncio.to_thread(run_pipeline, image, config)
