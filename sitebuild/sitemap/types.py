"""Domain datatypes for sitemap discovery and enrichment."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

CHANGEFREQ_VALUES = ("daily", "weekly", "monthly", "yearly")


def format_timestamp(moment: datetime) -> str:
    """Render ``moment`` as UTC ISO-8601 with millisecond precision and ``Z``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def format_epoch_seconds(seconds: float) -> str:
    return format_timestamp(datetime.fromtimestamp(seconds, tz=timezone.utc))


@dataclass(frozen=True)
class FileEntry:
    """One crawlable file observed on disk, before history enrichment."""

    absolute_path: Path
    url_path: str
    extension: str
    fallback_modified_time: str


@dataclass(frozen=True)
class HistoryInfo:
    """Result of one history lookup; ``None``/``0`` mean nothing was found."""

    last_modified: str | None = None
    commit_count: int = 0


@dataclass(frozen=True)
class EnrichedRecord:
    """Final sitemap record written exactly once to the output sink."""

    loc: str
    lastmod: str
    ext: str
    commit_count: int
    priority: float
    changefreq: str

    def to_json_dict(self) -> dict[str, object]:
        """Return the record keyed by the field names downstream renderers expect."""
        return {
            "loc": self.loc,
            "lastmod": self.lastmod,
            "ext": self.ext,
            "commitCount": self.commit_count,
            "priority": self.priority,
            "changefreq": self.changefreq,
        }


__all__ = [
    "CHANGEFREQ_VALUES",
    "format_timestamp",
    "format_epoch_seconds",
    "FileEntry",
    "HistoryInfo",
    "EnrichedRecord",
]
