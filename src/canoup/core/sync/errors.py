"""
Exceptions raised while synchronizing the mirror.

Every error wraps the underlying GitPython failure; ``detail`` carries git's
own stderr (or the exception text) so the CLI can show it verbatim.
"""

from __future__ import annotations

from git import GitCommandError

from canoup.core.errors import CanoupError


def git_detail(error: Exception) -> str:
    """Best human-readable detail for a GitPython exception."""
    if isinstance(error, GitCommandError) and error.stderr:
        return str(error.stderr).strip()
    return str(error)


class SyncError(CanoupError):
    """Base exception for repository operations."""

    @classmethod
    def wrap(cls, message: str, error: Exception) -> SyncError:
        return cls(message, detail=git_detail(error))


class CloneError(SyncError):
    """Raised when the mirror cannot be cloned."""

    pass


class RemoteNotFoundError(SyncError):
    """Raised when the configured remote is missing from the mirror."""

    pass


class FetchError(SyncError):
    """Raised when fetching the branch fails."""

    pass


class ResolutionError(SyncError):
    """Raised when HEAD, a branch or the fetched commit cannot be resolved."""

    pass


class ApplyError(SyncError):
    """Raised when moving a ref or checking out the working tree fails."""

    pass


class MergeError(SyncError):
    """Raised when the three-way merge cannot be computed or written."""

    pass
