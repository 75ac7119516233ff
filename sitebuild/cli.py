"""Command-line front door for sitebuild.

Parses CLI options, merges them over config/env settings, and runs the
build. Fatal build errors exit non-zero with the error message.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from .build import run_build
from .config import load_settings
from .errors import SitebuildError
from .log import configure_logging

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _seconds(value: str) -> float:
    """argparse type for a timeout in seconds; ``0`` disables it."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number of seconds: {value!r}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("value must be >= 0")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitebuild",
        description="Build site assets and the git-enriched sitemap data file.",
    )
    parser.add_argument(
        "--skip-submodules",
        action="store_true",
        default=None,
        help="Skip building external submodules (env SKIP_SUBMODULES=1).",
    )
    parser.add_argument("--env", metavar="NAME", default=None, help="Set environment mode (e.g. --env=debug).")
    parser.add_argument("--skip-assets", action="store_true", default=None, help="Skip image/vector conversion.")
    parser.add_argument(
        "--sitemap-only",
        action="store_true",
        help="Only generate sitemap data (implies --skip-submodules --skip-assets).",
    )
    parser.add_argument(
        "--project-dir",
        metavar="PATH",
        default=None,
        help="Project directory holding public/ and inputs. Defaults to current directory.",
    )
    parser.add_argument("--site-dir", metavar="PATH", default=None, help="Built site directory to crawl (default: public).")
    parser.add_argument("--output", metavar="PATH", default=None, help="Sitemap data file (default: .sitemap-base.json).")
    parser.add_argument("--batch-size", type=_positive_int, default=None, help="Files enriched per batch (default: 20).")
    parser.add_argument(
        "--concurrency",
        type=_positive_int,
        default=None,
        help="Maximum concurrent history lookups (default: 40).",
    )
    parser.add_argument(
        "--lookup-timeout",
        type=_seconds,
        default=None,
        help="Per-query git timeout in seconds; 0 disables (default: 30).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="Enable debug logging.")
    return parser


def _overrides_from_args(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {
        "skip_submodules": args.skip_submodules,
        "skip_assets": args.skip_assets,
        "env": args.env,
        "site_dir": args.site_dir,
        "output_path": args.output,
        "batch_size": args.batch_size,
        "concurrency": args.concurrency,
        "lookup_timeout_seconds": args.lookup_timeout,
        "verbose": args.verbose,
    }
    if args.sitemap_only:
        overrides["skip_submodules"] = True
        overrides["skip_assets"] = True
    return {key: value for key, value in overrides.items() if value is not None}


def main(argv: Sequence[str] | None = None, default_project_dir: Path | None = None) -> None:
    """Parse CLI arguments and run the build.

    ``default_project_dir`` is primarily for tests; when omitted the current
    working directory is used.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if default_project_dir is None:
        default_project_dir = Path.cwd()
    project_dir = Path(args.project_dir) if args.project_dir is not None else default_project_dir
    if not project_dir.is_dir():
        raise SystemExit(f"Project directory not found: {project_dir}")

    settings = load_settings(project_dir, _overrides_from_args(args))
    configure_logging(verbose=settings.verbose)

    try:
        asyncio.run(run_build(settings))
    except (SitebuildError, OSError) as exc:
        logger.error("Build failed: %s", exc)
        raise SystemExit(f"Build failed: {exc}") from exc


if __name__ == "__main__":
    main()
