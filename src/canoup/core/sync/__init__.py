"""
Mirror synchronization.

Keeps the local mirror in step with the upstream branch: fetch, classify the
fetched commit against the local tip, then fast-forward, three-way merge or
do nothing.

Example:
    >>> from canoup.core.sync import SyncService
    >>> sync = SyncService(mirror_dir=Path.home() / "cano")
    >>> result = sync.sync()
    >>> if result.has_conflicts:
    ...     print(f"{len(result.merge.conflicts)} files need manual resolution")
"""

from canoup.core.sync.errors import (
    ApplyError,
    CloneError,
    FetchError,
    MergeError,
    RemoteNotFoundError,
    ResolutionError,
    SyncError,
)
from canoup.core.sync.models import (
    FetchSummary,
    MergeClassification,
    MergeOutcome,
    MirrorStatus,
    SyncResult,
)
from canoup.core.sync.service import SyncService

__all__ = [
    "SyncService",
    "SyncResult",
    "MergeClassification",
    "MergeOutcome",
    "FetchSummary",
    "MirrorStatus",
    "SyncError",
    "CloneError",
    "RemoteNotFoundError",
    "FetchError",
    "ResolutionError",
    "ApplyError",
    "MergeError",
]
