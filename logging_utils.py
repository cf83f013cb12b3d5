"""Logging setup for the cardprep command-line tool.

Commands print their results to stdout as JSON, so log records always go
to stderr. Verbosity ladder:

    -q      ERROR
    (none)  WARNING
    -v      INFO   (quality class and chosen step plan)
    -vv     DEBUG  (per-stage timings and measurements)
"""

from __future__ import annotations

import argparse
import logging
import sys

LOG_LEVEL_CHOICES = ("debug", "info", "warning", "error", "critical")

VERBOSITY_LADDER = (logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG)
DEFAULT_RUNG = 1

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Pillow logs every decoded PNG chunk at DEBUG
NOISY_LOGGERS = ("PIL",)


def add_logging_args(parser: argparse.ArgumentParser) -> None:
    """Add --log-level, -v and -q to a parser."""
    group = parser.add_argument_group("logging")
    group.add_argument(
        "--log-level",
        choices=LOG_LEVEL_CHOICES,
        help="Set log level explicitly; overrides -v and -q",
    )
    group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="More logging on stderr (-v step plan, -vv per-stage timings)",
    )
    group.add_argument(
        "-q", "--quiet",
        action="count",
        default=0,
        help="Only log errors",
    )


def resolve_log_level(
    log_level: str | None = None,
    verbose: int = 0,
    quiet: int = 0,
) -> int:
    if log_level:
        return logging.getLevelName(log_level.upper())

    rung = DEFAULT_RUNG + verbose - quiet
    rung = min(max(rung, 0), len(VERBOSITY_LADDER) - 1)
    return VERBOSITY_LADDER[rung]


def configure_logging(
    log_level: str | None = None,
    verbose: int = 0,
    quiet: int = 0,
) -> int:
    """Point root logging at stderr and return the active level.

    When the root logger already has handlers (an embedding application or
    the test runner), only levels are adjusted.
    """
    level = resolve_log_level(log_level=log_level, verbose=verbose, quiet=quiet)
    root = logging.getLogger()

    if root.handlers:
        root.setLevel(level)
        for handler in root.handlers:
            handler.setLevel(level)
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        root.addHandler(handler)
        root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
    return level
