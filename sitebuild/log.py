"""Console logging setup and section banners for build output."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "sitebuild"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

logger = logging.getLogger(LOGGER_NAME)


def configure_logging(verbose: bool = False, stream=None) -> logging.Logger:
    """Attach one console handler to the package logger.

    Calling this again replaces the previous handler instead of stacking
    duplicates, so tests and repeated CLI invocations stay quiet.
    """
    root = logging.getLogger(LOGGER_NAME)
    for handler in list(root.handlers):
        if getattr(handler, "_sitebuild_console", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._sitebuild_console = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
    return root


def section_banner(title: str) -> str:
    bar = "-" * max(10, len(title))
    return f"\n{bar}\n{title}\n{bar}"


def log_section(title: str) -> None:
    """Log a dashed banner marking the start of a build phase."""
    logger.info(section_banner(title))


__all__ = [
    "LOGGER_NAME",
    "configure_logging",
    "section_banner",
    "log_section",
]
