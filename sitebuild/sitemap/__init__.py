"""Sitemap data generation for a built static site.

This package contains the sitemap pipeline primitives:
- tree walker producing file entries with canonical URLs
- best-effort git history lookups
- bounded-parallelism combinator with per-item isolation
- priority/change-frequency scoring
- streaming JSON-array record writer
- the batch orchestrator tying them together
"""

from __future__ import annotations

from .history import DEFAULT_LOOKUP_TIMEOUT_SECONDS, GitHistoryStore, HistoryLookup, NullHistoryStore, resolve_repo_root
from .limiter import for_each_bounded
from .pipeline import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CONCURRENCY,
    PipelineState,
    SitemapOptions,
    SitemapPipeline,
    SitemapResult,
    build_sitemap,
    split_batches,
)
from .scoring import advance_running_max, compute_changefreq, compute_priority
from .types import EnrichedRecord, FileEntry, HistoryInfo, format_epoch_seconds, format_timestamp
from .walker import RECOGNIZED_EXTENSIONS, collect_file_entries, iter_file_entries, url_path_for
from .writer import JsonArrayWriter, RecordSink, open_json_array_writer

__all__ = [
    "DEFAULT_LOOKUP_TIMEOUT_SECONDS",
    "GitHistoryStore",
    "HistoryLookup",
    "NullHistoryStore",
    "resolve_repo_root",
    "for_each_bounded",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_CONCURRENCY",
    "PipelineState",
    "SitemapOptions",
    "SitemapPipeline",
    "SitemapResult",
    "build_sitemap",
    "split_batches",
    "advance_running_max",
    "compute_changefreq",
    "compute_priority",
    "EnrichedRecord",
    "FileEntry",
    "HistoryInfo",
    "format_epoch_seconds",
    "format_timestamp",
    "RECOGNIZED_EXTENSIONS",
    "collect_file_entries",
    "iter_file_entries",
    "url_path_for",
    "JsonArrayWriter",
    "RecordSink",
    "open_json_array_writer",
]
