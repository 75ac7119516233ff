"""Sitemap pipeline: walk, enrich in bounded batches, score, and stream out.

State machine::

    IDLE -> WALKING -> ENRICHING (per batch) -> FINALIZING -> DONE
    any non-DONE state -> FAILED on an unrecoverable error
    WALKING -> SKIPPED when the site root does not exist

Batches are processed strictly in discovery order. Within a batch lookups
complete in any order, but records are written in the batch's own order.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .history import HistoryLookup
from .limiter import for_each_bounded
from .scoring import advance_running_max, compute_changefreq, compute_priority
from .types import EnrichedRecord, FileEntry, HistoryInfo
from .walker import collect_file_entries
from .writer import RecordSink, open_json_array_writer

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20
DEFAULT_CONCURRENCY = 40
PROGRESS_EVERY_BATCHES = 5


class PipelineState(enum.Enum):
    IDLE = "idle"
    WALKING = "walking"
    ENRICHING = "enriching"
    FINALIZING = "finalizing"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class SitemapOptions:
    batch_size: int = DEFAULT_BATCH_SIZE
    concurrency: int = DEFAULT_CONCURRENCY
    progress_every_batches: int = PROGRESS_EVERY_BATCHES

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.progress_every_batches < 1:
            raise ValueError("progress_every_batches must be >= 1")


@dataclass
class SitemapResult:
    state: PipelineState
    discovered: int = 0
    written: int = 0
    max_commits: int = 0
    output_path: Path | None = None
    batches: int = 0
    failed_lookups: int = 0


def split_batches(entries: Sequence[FileEntry], batch_size: int) -> list[Sequence[FileEntry]]:
    """Split ``entries`` into order-preserving slices of ``batch_size``."""
    return [entries[start : start + batch_size] for start in range(0, len(entries), batch_size)]


class SitemapPipeline:
    """Drive one sitemap run over a site tree.

    The running maximum commit count lives on the pipeline and is handed to
    ``compute_priority`` explicitly, so each record's priority is relative to
    the maximum seen up to and including its own batch.
    """

    def __init__(
        self,
        history: HistoryLookup,
        options: SitemapOptions | None = None,
        progress: ProgressCallback | None = None,
        walk: Callable[[Path], list[FileEntry]] = collect_file_entries,
    ) -> None:
        self.history = history
        self.options = options or SitemapOptions()
        self.progress = progress
        self._walk = walk
        self.state = PipelineState.IDLE
        self.running_max_commits = 0
        self.failed_lookups = 0

    def _transition(self, state: PipelineState) -> None:
        logger.debug("sitemap pipeline %s -> %s", self.state.value, state.value)
        self.state = state

    async def _enrich_one(self, entry: FileEntry, _index: int) -> HistoryInfo:
        return await self.history.lookup(entry.absolute_path)

    async def enrich_batch(self, batch: Sequence[FileEntry]) -> list[HistoryInfo]:
        """Look up history for ``batch`` and return infos aligned with it."""
        infos = await for_each_bounded(batch, self.options.concurrency, self._enrich_one)
        aligned: list[HistoryInfo] = []
        for entry, info in zip(batch, infos):
            if info is None:
                self.failed_lookups += 1
                logger.debug("history lookup failed for %s", entry.absolute_path)
                info = HistoryInfo()
            aligned.append(info)
        return aligned

    def score_batch(self, batch: Sequence[FileEntry], infos: Sequence[HistoryInfo]) -> list[EnrichedRecord]:
        """Advance the running maximum with ``infos`` and build records."""
        self.running_max_commits = advance_running_max(
            self.running_max_commits,
            (info.commit_count for info in infos),
        )
        records: list[EnrichedRecord] = []
        for entry, info in zip(batch, infos):
            lastmod = info.last_modified or entry.fallback_modified_time
            records.append(
                EnrichedRecord(
                    loc=entry.url_path,
                    lastmod=lastmod,
                    ext=entry.extension,
                    commit_count=info.commit_count,
                    priority=compute_priority(info.commit_count, self.running_max_commits),
                    changefreq=compute_changefreq(lastmod),
                )
            )
        return records

    async def process_entries(self, entries: Sequence[FileEntry], sink: RecordSink) -> int:
        """Enrich, score and write ``entries`` batch by batch; return count written."""
        total = len(entries)
        batches = split_batches(entries, self.options.batch_size)
        processed = 0
        self._transition(PipelineState.ENRICHING)
        for batch_index, batch in enumerate(batches):
            infos = await self.enrich_batch(batch)
            for record in self.score_batch(batch, infos):
                sink.write(record)
                processed += 1

            is_last = batch_index == len(batches) - 1
            if (batch_index + 1) % self.options.progress_every_batches == 0 or is_last:
                logger.info("Processed %d/%d files...", processed, total)
                if self.progress is not None:
                    self.progress(processed, total)
        return processed

    async def run(self, root: Path, output_path: Path) -> SitemapResult:
        """Crawl ``root`` and stream records to ``output_path``.

        A missing ``root`` ends the run as ``SKIPPED`` without touching
        ``output_path``. Any other error marks the run ``FAILED`` and
        propagates.
        """
        root = Path(root)
        output_path = Path(output_path)
        try:
            self._transition(PipelineState.WALKING)
            if not root.is_dir():
                logger.warning("Site directory %s not found; skipping sitemap generation.", root)
                self._transition(PipelineState.SKIPPED)
                return SitemapResult(state=self.state)

            entries = await asyncio.to_thread(self._walk, root)
            logger.info("Crawled %d files, fetching git metadata in parallel...", len(entries))

            with open_json_array_writer(output_path) as writer:
                await self.process_entries(entries, writer)
                self._transition(PipelineState.FINALIZING)
                written = writer.end()
        except BaseException:
            self._transition(PipelineState.FAILED)
            raise

        self._transition(PipelineState.DONE)
        return SitemapResult(
            state=self.state,
            discovered=len(entries),
            written=written,
            max_commits=self.running_max_commits,
            output_path=output_path,
            batches=len(split_batches(entries, self.options.batch_size)),
            failed_lookups=self.failed_lookups,
        )


async def build_sitemap(
    root: Path,
    output_path: Path,
    history: HistoryLookup,
    batch_size: int = DEFAULT_BATCH_SIZE,
    concurrency: int = DEFAULT_CONCURRENCY,
    progress: ProgressCallback | None = None,
) -> SitemapResult:
    """Run one sitemap pipeline with the given tuning and history store."""
    pipeline = SitemapPipeline(
        history,
        SitemapOptions(batch_size=batch_size, concurrency=concurrency),
        progress=progress,
    )
    return await pipeline.run(root, output_path)


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_CONCURRENCY",
    "PipelineState",
    "SitemapOptions",
    "SitemapResult",
    "split_batches",
    "SitemapPipeline",
    "build_sitemap",
]
