"""Priority and change-frequency heuristics for sitemap records."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

NEUTRAL_PRIORITY = 0.5
MIN_PRIORITY = 0.1
MAX_PRIORITY = 1.0
DEFAULT_CHANGEFREQ = "monthly"

# (inclusive upper bound in days, bucket)
_CHANGEFREQ_BUCKETS = (
    (7.0, "daily"),
    (30.0, "weekly"),
    (180.0, "monthly"),
)


def compute_priority(commit_count: int, running_max_commits: int) -> float:
    """Normalize ``commit_count`` against the running maximum, clamped to [0.1, 1.0].

    A zero running maximum means no file so far has tracked history, which
    yields the neutral ``0.5`` instead of a division by zero.
    """
    if running_max_commits == 0:
        return NEUTRAL_PRIORITY
    normalized = commit_count / running_max_commits
    return max(MIN_PRIORITY, min(MAX_PRIORITY, normalized))


def advance_running_max(running_max_commits: int, commit_counts: Iterable[int]) -> int:
    """Return the running maximum after observing ``commit_counts``."""
    return max([running_max_commits, *commit_counts])


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compute_changefreq(lastmod: object, now: datetime | None = None) -> str:
    """Bucket the age of ``lastmod`` into a sitemap change frequency.

    Boundaries are inclusive on the lower bucket (exactly 7 days is
    ``daily``). Unparseable timestamps fall back to ``monthly``.
    """
    last = _parse_timestamp(lastmod)
    if last is None:
        return DEFAULT_CHANGEFREQ
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    days = (now - last).total_seconds() / 86400.0
    for upper_bound, bucket in _CHANGEFREQ_BUCKETS:
        if days <= upper_bound:
            return bucket
    return "yearly"


__all__ = [
    "NEUTRAL_PRIORITY",
    "MIN_PRIORITY",
    "MAX_PRIORITY",
    "DEFAULT_CHANGEFREQ",
    "compute_priority",
    "advance_running_max",
    "compute_changefreq",
]
