"""Recursive discovery of crawlable site files and their canonical URLs."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterator
from pathlib import Path

from .types import FileEntry, format_epoch_seconds

logger = logging.getLogger(__name__)

HTML_EXTENSION = ".html"
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".avif"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".mov"})
RECOGNIZED_EXTENSIONS = frozenset({HTML_EXTENSION}) | IMAGE_EXTENSIONS | VIDEO_EXTENSIONS
INDEX_FILENAME = "index.html"

_REPEATED_SLASHES_RE = re.compile(r"/{2,}")


def _normalize_url(text: str) -> str:
    url = _REPEATED_SLASHES_RE.sub("/", text.replace("\\", "/"))
    if not url.startswith("/"):
        url = "/" + url
    return url


def url_path_for(root: Path, path: Path) -> str:
    """Return the site-relative URL for ``path`` under ``root``.

    ``index.html`` (any case) collapses to its directory, so the root index
    maps to ``/`` and ``foo/bar/index.html`` maps to ``/foo/bar``.
    """
    relative = os.path.relpath(path, root)
    parent, name = os.path.split(relative)
    if name.lower() == INDEX_FILENAME:
        if not parent or parent == os.curdir:
            return "/"
        return _normalize_url(parent).rstrip("/") or "/"
    return _normalize_url(relative)


def _safe_mtime(path: Path, stat_result: os.stat_result | None) -> float:
    if stat_result is not None:
        return stat_result.st_mtime
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


def iter_file_entries(root: Path) -> Iterator[FileEntry]:
    """Yield a ``FileEntry`` for every recognized regular file under ``root``.

    Directory symlinks are never followed, and files are tracked by real path
    so one file reachable through several links is yielded once. Unreadable
    subdirectories are skipped with a warning; an unreadable ``root`` raises.
    """
    root = Path(root)
    seen_real_paths: set[str] = set()
    stack: list[Path] = [root]

    while stack:
        directory = stack.pop()
        try:
            with os.scandir(directory) as entries:
                children = sorted(entries, key=lambda item: item.name)
        except OSError as exc:
            if directory == root:
                raise
            logger.warning("Skipping unreadable directory %s: %s", directory, exc)
            continue

        subdirectories: list[Path] = []
        for child in children:
            child_path = Path(child.path)
            try:
                if child.is_dir(follow_symlinks=False):
                    subdirectories.append(child_path)
                    continue
                if not child.is_file():
                    continue
            except OSError:
                continue

            extension = os.path.splitext(child.name)[1].lower()
            if extension not in RECOGNIZED_EXTENSIONS:
                continue

            real_path = os.path.realpath(child_path)
            if real_path in seen_real_paths:
                continue
            seen_real_paths.add(real_path)

            try:
                stat_result: os.stat_result | None = child.stat()
            except OSError:
                stat_result = None

            yield FileEntry(
                absolute_path=child_path.absolute(),
                url_path=url_path_for(root, child_path),
                extension=extension,
                fallback_modified_time=format_epoch_seconds(_safe_mtime(child_path, stat_result)),
            )

        # Reverse so the stack pops subdirectories in name order.
        stack.extend(reversed(subdirectories))


def collect_file_entries(root: Path) -> list[FileEntry]:
    """Return all entries under ``root`` in discovery order."""
    return list(iter_file_entries(root))


__all__ = [
    "HTML_EXTENSION",
    "IMAGE_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "RECOGNIZED_EXTENSIONS",
    "url_path_for",
    "iter_file_entries",
    "collect_file_entries",
]
