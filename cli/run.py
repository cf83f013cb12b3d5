"""Run command CLI parsing and control flow."""

from __future__ import annotations

import argparse
import json
import logging

from config import CLAHE_CLIP_LIMIT, DEFAULT_TARGET_CHAR_HEIGHT, DENOISE_SIGMA
from preprocessing import (
    ImageQuality,
    MorphologicalOperation,
    PreprocessConfig,
    PreprocessingError,
    run_pipeline,
)
from cli.imaging import check_output_path, load_image, write_image

logger = logging.getLogger(__name__)


def add_run_subparser(subparsers: argparse._SubParsersAction) -> None:
    run_parser = subparsers.add_parser(
        "run",
        help="Run the quality-adaptive preprocessing pipeline on an image",
    )
    run_parser.add_argument(
        "image",
        help="Image file to preprocess",
    )
    run_parser.add_argument(
        "-o", "--output",
        help="Where to write the processed image (default: don't write)",
    )
    run_parser.add_argument(
        "--artifact-dir",
        help="Directory for intermediate images of every step",
    )
    run_parser.add_argument(
        "--target-height",
        type=int,
        default=DEFAULT_TARGET_CHAR_HEIGHT,
        help=f"Target character height in pixels, 20-35 (default: {DEFAULT_TARGET_CHAR_HEIGHT})",
    )
    run_parser.add_argument(
        "--sigma",
        type=float,
        default=DENOISE_SIGMA,
        help=f"Gaussian sigma for noise reduction (default: {DENOISE_SIGMA})",
    )
    run_parser.add_argument(
        "--clip-limit",
        type=float,
        default=CLAHE_CLIP_LIMIT,
        help=f"CLAHE clip limit (default: {CLAHE_CLIP_LIMIT})",
    )
    run_parser.add_argument(
        "--quality",
        choices=[q.value for q in ImageQuality],
        help="Skip assessment and treat the image as this quality",
    )
    run_parser.add_argument(
        "--morphology",
        choices=[op.value for op in MorphologicalOperation],
        help="Morphological cleanup after binarization of low quality images",
    )
    run_parser.add_argument(
        "--no-deskew",
        action="store_true",
        help="Skip skew detection and correction",
    )
    run_parser.add_argument(
        "--no-scale",
        action="store_true",
        help="Keep the original resolution",
    )
    run_parser.set_defaults(_cmd=cmd_run)


def config_from_args(args: argparse.Namespace) -> PreprocessConfig:
    return PreprocessConfig(
        target_char_height=args.target_height,
        denoise_sigma=args.sigma,
        clahe_clip_limit=args.clip_limit,
        deskew_enabled=not args.no_deskew,
        scale_enabled=not args.no_scale,
        morphology_operation=MorphologicalOperation(args.morphology) if args.morphology else None,
        force_quality=ImageQuality(args.quality) if args.quality else None,
    )


def cmd_run(args: argparse.Namespace) -> int:
    try:
        if args.output:
            check_output_path(args.output)
        config = config_from_args(args)
        image = load_image(args.image)
        result = run_pipeline(image, config, artifact_dir=args.artifact_dir)
        if args.output:
            write_image(result.processed, args.output)
    except (OSError, ValueError, PreprocessingError) as exc:
        logger.error("%s", exc)
        return 1

    summary = result.to_dict()
    if args.output:
        summary["output"] = args.output
    print(json.dumps(summary, indent=2))
    return 0
