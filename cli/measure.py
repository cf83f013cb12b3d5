"""Measure command: crop a quantity region and prepare it for OCR."""

from __future__ import annotations

import argparse
import json
import logging

from preprocessing import (
    PreprocessingError,
    crop_measurement_region,
    preprocess_measurement_region,
)
from cli.imaging import check_output_path, load_image, write_image

logger = logging.getLogger(__name__)


def add_measure_subparser(subparsers: argparse._SubParsersAction) -> None:
    measure_parser = subparsers.add_parser(
        "measure",
        help="Crop the quantity at the start of a text line and binarize it",
    )
    measure_parser.add_argument(
        "image",
        help="Full recipe card image",
    )
    measure_parser.add_argument(
        "--bbox",
        nargs=4,
        type=int,
        required=True,
        metavar=("X0", "Y0", "X1", "Y1"),
        help="Bounding box of the text line in image coordinates",
    )
    measure_parser.add_argument(
        "-o", "--output",
        help="Where to write the preprocessed region",
    )
    measure_parser.set_defaults(_cmd=cmd_measure)


def cmd_measure(args: argparse.Namespace) -> int:
    try:
        if args.output:
            check_output_path(args.output)
        image = load_image(args.image)
        crop = crop_measurement_region(image, tuple(args.bbox))
        region = preprocess_measurement_region(crop.image)
        if args.output:
            write_image(region.image, args.output)
    except (OSError, ValueError, PreprocessingError) as exc:
        logger.error("%s", exc)
        return 1

    summary = {
        "crop": crop.to_dict(),
        "targeted": region.to_dict(),
    }
    if args.output:
        summary["output"] = args.output
    print(json.dumps(summary, indent=2))
    return 0
