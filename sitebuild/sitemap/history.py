"""Best-effort git history lookups for sitemap enrichment.

Each file gets two independent queries: the most recent commit timestamp
(bounded to one record) and the total number of commits touching the path.
Every failure mode degrades to ``None``/``0`` and never propagates.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from .types import HistoryInfo, format_epoch_seconds

logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_TIMEOUT_SECONDS = 30.0


class HistoryLookup(Protocol):
    """Anything able to enrich one file path with history metadata."""

    async def lookup(self, path: Path) -> HistoryInfo: ...


class NullHistoryStore:
    """History store used when no repository is available."""

    async def lookup(self, path: Path) -> HistoryInfo:
        return HistoryInfo()


def resolve_repo_root(path: Path, timeout_seconds: float = 5.0) -> Path | None:
    """Return the git top-level directory containing ``path`` or ``None``."""
    if shutil.which("git") is None:
        return None
    try:
        proc = subprocess.run(
            ["git", "-C", str(path), "rev-parse", "--show-toplevel"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if proc.returncode != 0:
        return None
    lines = [line.strip() for line in proc.stdout.splitlines() if line.strip()]
    if not lines:
        return None
    return Path(lines[0]).resolve()


class GitHistoryStore:
    """Query a git working tree for per-file commit history.

    Queries run as independent ``git`` child processes and are safe to issue
    concurrently. ``timeout_seconds`` bounds each query; ``None`` or a
    non-positive value disables the bound.
    """

    def __init__(
        self,
        repo_root: Path,
        timeout_seconds: float | None = DEFAULT_LOOKUP_TIMEOUT_SECONDS,
        git_executable: str = "git",
    ) -> None:
        self.repo_root = Path(repo_root).resolve()
        self.timeout_seconds = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None
        self.git_executable = git_executable

    @classmethod
    def discover(cls, path: Path, timeout_seconds: float | None = DEFAULT_LOOKUP_TIMEOUT_SECONDS) -> GitHistoryStore | None:
        """Build a store for the repository containing ``path``, if any."""
        repo_root = resolve_repo_root(path)
        if repo_root is None:
            return None
        return cls(repo_root, timeout_seconds=timeout_seconds)

    def relative_path(self, path: Path) -> str | None:
        """Return ``path`` relative to the repo root with forward slashes."""
        try:
            relative = Path(path).resolve().relative_to(self.repo_root)
        except (OSError, ValueError):
            return None
        return relative.as_posix()

    async def _run_git(self, args: list[str]) -> str | None:
        """Run one git query and return stdout, or ``None`` on any failure.

        Paths are matched literally: ``[``, ``*`` and a leading ``:`` in a
        file name carry no pathspec meaning.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                self.git_executable,
                "-C",
                str(self.repo_root),
                "--literal-pathspecs",
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            logger.debug("git %s could not start: %s", args[0], exc)
            return None

        try:
            if self.timeout_seconds is None:
                stdout, _stderr = await proc.communicate()
            else:
                stdout, _stderr = await asyncio.wait_for(proc.communicate(), self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.debug("git %s timed out after %ss", args[0], self.timeout_seconds)
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            return None

        if proc.returncode != 0:
            return None
        return stdout.decode("utf-8", errors="replace").strip()

    async def last_modified(self, path: Path) -> str | None:
        """Return the committer time of the newest commit touching ``path``."""
        relative = self.relative_path(path)
        if relative is None:
            return None
        output = await self._run_git(["log", "-1", "--format=%ct", "--", relative])
        if not output:
            return None
        try:
            seconds = int(output.splitlines()[0].strip())
        except ValueError:
            return None
        return format_epoch_seconds(seconds)

    async def commit_count(self, path: Path) -> int:
        """Return the number of commits reachable from HEAD touching ``path``."""
        relative = self.relative_path(path)
        if relative is None:
            return 0
        output = await self._run_git(["rev-list", "--count", "HEAD", "--", relative])
        if not output:
            return 0
        try:
            return max(0, int(output.splitlines()[0].strip()))
        except ValueError:
            return 0

    async def lookup(self, path: Path) -> HistoryInfo:
        """Run both queries concurrently and combine them."""
        last_modified, commit_count = await asyncio.gather(
            self.last_modified(path),
            self.commit_count(path),
            return_exceptions=True,
        )
        if isinstance(last_modified, BaseException):
            logger.debug("last-modified lookup failed for %s: %s", path, last_modified)
            last_modified = None
        if isinstance(commit_count, BaseException):
            logger.debug("commit-count lookup failed for %s: %s", path, commit_count)
            commit_count = 0
        return HistoryInfo(last_modified=last_modified, commit_count=commit_count)


__all__ = [
    "DEFAULT_LOOKUP_TIMEOUT_SECONDS",
    "HistoryLookup",
    "NullHistoryStore",
    "resolve_repo_root",
    "GitHistoryStore",
]
