"""Assess command CLI parsing and control flow."""

from __future__ import annotations

import argparse
import json
import logging

from preprocessing import PreprocessingError, assess_image_quality
from cli.imaging import load_image

logger = logging.getLogger(__name__)


def add_assess_subparser(subparsers: argparse._SubParsersAction) -> None:
    assess_parser = subparsers.add_parser(
        "assess",
        help="Score contrast, brightness and sharpness of an image",
    )
    assess_parser.add_argument(
        "image",
        help="Image file to assess",
    )
    assess_parser.set_defaults(_cmd=cmd_assess)


def cmd_assess(args: argparse.Namespace) -> int:
    try:
        image = load_image(args.image)
        report = assess_image_quality(image)
    except (OSError, PreprocessingError) as exc:
        logger.error("%s", exc)
        return 1

    print(json.dumps(report.to_dict(), indent=2))
    return 0
