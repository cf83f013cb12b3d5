#!/usr/bin/env python3
"""
Command-line tool for recipe card image preprocessing.

Usage:
    cardprep assess <image>                      # Print quality scores as JSON
    cardprep run <image> -o out.png              # Run the adaptive pipeline
    cardprep run <image> --artifact-dir debug/   # Also save every intermediate step
    cardprep measure <image> --bbox X0 Y0 X1 Y1  # Crop and binarize a quantity
"""

import argparse
import logging
import sys

from logging_utils import configure_logging, add_logging_args
from cli.assess import add_assess_subparser
from cli.run import add_run_subparser
from cli.measure import add_measure_subparser

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cardprep",
        description="Recipe card preprocessing - condition photos for OCR",
    )
    add_logging_args(parser)
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    add_assess_subparser(subparsers)
    add_run_subparser(subparsers)
    add_measure_subparser(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.verbose, args.quiet)

    cmd = getattr(args, "_cmd", None)
    if args.command is None or cmd is None:
        parser.print_help()
        return 1
    return cmd(args)


if __name__ == "__main__":
    sys.exit(main())
