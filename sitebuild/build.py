"""Top-level build sequence: submodules, assets, then sitemap data."""

from __future__ import annotations

import asyncio
import logging
import platform
import sys
import time
from dataclasses import dataclass
from datetime import datetime

from .assets import ConversionReport, process_input_images, process_input_vectors
from .config import BuildSettings
from .log import log_section
from .sitemap import GitHistoryStore, NullHistoryStore, SitemapOptions, SitemapPipeline, SitemapResult
from .sitemap.history import HistoryLookup
from .submodules import build_submodules, ensure_submodules

logger = logging.getLogger(__name__)


@dataclass
class BuildReport:
    sitemap: SitemapResult
    assets: ConversionReport
    submodules_built: list[str]
    duration_seconds: float


def format_duration(seconds: float) -> str:
    """Render elapsed seconds as ``1h 2m 3s``; hours and minutes only when leading."""
    remaining = int(seconds)
    hours, remaining = divmod(remaining, 3600)
    minutes, secs = divmod(remaining, 60)
    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or hours > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def history_for(settings: BuildSettings) -> HistoryLookup:
    """Return a git-backed history store for the project, or a null store."""
    store = GitHistoryStore.discover(settings.project_dir, timeout_seconds=settings.lookup_timeout_seconds)
    if store is None:
        logger.warning("No git repository at %s; commit counts will be 0.", settings.project_dir)
        return NullHistoryStore()
    return store


async def run_sitemap(settings: BuildSettings, history: HistoryLookup | None = None) -> SitemapResult:
    if history is None:
        # Repository discovery blocks on a git child; keep it off the loop.
        history = await asyncio.to_thread(history_for, settings)
    pipeline = SitemapPipeline(
        history,
        SitemapOptions(batch_size=settings.batch_size, concurrency=settings.concurrency),
    )
    result = await pipeline.run(settings.site_root, settings.sitemap_output)
    if result.output_path is not None:
        logger.info("Sitemap base built with %d entries", result.written)
    return result


async def run_build(settings: BuildSettings, history: HistoryLookup | None = None) -> BuildReport:
    """Run every enabled build phase in order and report what happened."""
    started = time.monotonic()
    log_section(
        f"Build start ({datetime.now():%Y-%m-%d %H:%M:%S}) on {sys.platform} "
        f"python {platform.python_version()}"
    )

    built: list[str] = []
    if settings.skip_submodules:
        logger.info("Skipping submodule builds due to SKIP_SUBMODULES flag")
    else:
        await ensure_submodules(settings.project_dir, list(settings.submodules))
        built = await build_submodules(settings.project_dir, settings.submodules, env_mode=settings.env)

    assets = ConversionReport()
    if settings.skip_assets:
        logger.info("Skipping asset conversion")
    else:
        assets = await asyncio.to_thread(
            process_input_images,
            settings.resolve(settings.input_images),
            settings.resolve(settings.output_images),
        )
        vectors = await asyncio.to_thread(
            process_input_vectors,
            settings.resolve(settings.input_vectors),
            settings.resolve(settings.output_vectors),
        )
        assets = assets.merge(vectors)

    sitemap = await run_sitemap(settings, history)

    duration = time.monotonic() - started
    log_section(f"Done in {format_duration(duration)}")
    return BuildReport(sitemap=sitemap, assets=assets, submodules_built=built, duration_seconds=duration)


__all__ = [
    "BuildReport",
    "format_duration",
    "history_for",
    "run_sitemap",
    "run_build",
]
