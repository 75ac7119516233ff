"""Exception types raised by the build pipeline."""

from __future__ import annotations


class SitebuildError(Exception):
    """Base class for fatal build errors reported by the CLI."""


class WriterStateError(SitebuildError):
    """Raised when a record sink is used after it was finalized."""


class SubmoduleBuildError(SitebuildError):
    """Raised when a submodule checkout or build command fails."""


class WslUnavailableError(SitebuildError):
    """Raised on Windows when WSL is missing or has no distributions."""


__all__ = [
    "SitebuildError",
    "WriterStateError",
    "SubmoduleBuildError",
    "WslUnavailableError",
]
