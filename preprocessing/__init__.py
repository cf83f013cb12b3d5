"""
Image preprocessing module for recipe card OCR.

This module provides pure, deterministic functions for preprocessing images
before OCR. All functions follow the pattern: input -> output with no mutation
of the original arrays. Every algorithm is implemented directly on numpy
arrays.

Key components:
- types: RasterImage, PixelFormat, StageResult and per-stage metrics
- quality: assess_image_quality() scores and classifies an image
- thresholding: apply_otsu_threshold() binarization
- filtering: reduce_noise() and 3x3 morphology
- contrast: apply_clahe() tiled contrast enhancement
- deskewing: deskew_image() skew detection and correction
- scaling: ImageScaler for OCR-friendly text height
- cropping / targeted: measurement region crop and micro-pipeline
- config / pipeline / steps: quality-adaptive orchestration

Two APIs are available:
1. Function-based: run_pipeline(img, config) -> PreprocessResult
2. Class-based: Pipeline(steps=[...]).run(img) -> PipelineStepResults
"""

from .errors import (
    PreprocessingError,
    InvalidParameter,
    InvalidTargetHeight,
    ProcessingFailure,
)
from .types import (
    PixelFormat,
    RasterImage,
    StageResult,
    ImageQuality,
    MorphologicalOperation,
    QualityReport,
    ThresholdMetrics,
    DenoiseMetrics,
    MorphologyMetrics,
    ClaheMetrics,
    DeskewMetrics,
    ScaleMetrics,
    TargetedMetrics,
    CropMetrics,
)
from .normalization import to_grayscale, grayscale_pixels, resize_cubic
from .quality import assess_image_quality
from .thresholding import apply_otsu_threshold, find_otsu_threshold
from .filtering import reduce_noise, apply_morphological_operation
from .contrast import apply_clahe
from .deskewing import deskew_image
from .scaling import ImageScaler
from .cropping import crop_measurement_region
from .targeted import preprocess_measurement_region
from .config import PreprocessConfig, PreprocessResult
from .pipeline import run_pipeline, build_pipeline, run_batch, run_pipeline_async
from .steps import (
    PreprocessStep,
    GrayscaleStep,
    DenoiseStep,
    ClaheStep,
    DeskewStep,
    ScaleStep,
    ThresholdStep,
    MorphologyStep,
    Pipeline,
    PipelineStepResults,
    StepResult,
)

__all__ = [
    # Errors
    "PreprocessingError",
    "InvalidParameter",
    "InvalidTargetHeight",
    "ProcessingFailure",
    # Types
    "PixelFormat",
    "RasterImage",
    "StageResult",
    "ImageQuality",
    "MorphologicalOperation",
    "QualityReport",
    "ThresholdMetrics",
    "DenoiseMetrics",
    "MorphologyMetrics",
    "ClaheMetrics",
    "DeskewMetrics",
    "ScaleMetrics",
    "TargetedMetrics",
    "CropMetrics",
    # Stages
    "to_grayscale",
    "grayscale_pixels",
    "resize_cubic",
    "assess_image_quality",
    "apply_otsu_threshold",
    "find_otsu_threshold",
    "reduce_noise",
    "apply_morphological_operation",
    "apply_clahe",
    "deskew_image",
    "ImageScaler",
    "crop_measurement_region",
    "preprocess_measurement_region",
    # Config and results
    "PreprocessConfig",
    "PreprocessResult",
    # Function API
    "run_pipeline",
    "build_pipeline",
    "run_batch",
    "run_pipeline_async",
    # Class-based API
    "PreprocessStep",
    "GrayscaleStep",
    "DenoiseStep",
    "ClaheStep",
    "DeskewStep",
    "ScaleStep",
    "ThresholdStep",
    "MorphologyStep",
    "Pipeline",
    "PipelineStepResults",
    "StepResult",
]
