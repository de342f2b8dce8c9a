"""
Data models for the sync service.

Defines the merge classification and Pydantic models describing what a
sync run fetched, decided and changed.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class MergeClassification(str, Enum):
    """Relationship between the local branch tip and a fetched commit."""

    UP_TO_DATE = "up_to_date"
    FAST_FORWARD = "fast_forward"
    FAST_FORWARD_FROM_EMPTY = "fast_forward_from_empty"
    NORMAL = "normal"
    NONE = "none"

    @property
    def is_fast_forward(self) -> bool:
        return self in (
            MergeClassification.FAST_FORWARD,
            MergeClassification.FAST_FORWARD_FROM_EMPTY,
        )


class FetchSummary(BaseModel):
    """
    What a fetch changed on the remote-tracking ref.

    ``before``/``after`` are the commits the tracking ref pointed at around
    the fetch; if they differ, new objects arrived.
    """

    refspec: str = Field(description="Refspec passed to git fetch")

    before: str | None = Field(
        default=None,
        description="Remote-tracking commit before the fetch",
    )

    after: str | None = Field(
        default=None,
        description="Remote-tracking commit after the fetch",
    )

    failed: bool = Field(
        default=False,
        description="Fetch failed and the failure was tolerated",
    )

    @property
    def objects_transferred(self) -> bool:
        return not self.failed and self.after is not None and self.after != self.before


class MergeOutcome(BaseModel):
    """
    Result of a three-way merge.

    Exactly one of ``commit`` and ``conflicts`` is populated.
    """

    base: str = Field(description="Merge base commit")

    commit: str | None = Field(
        default=None,
        description="New two-parent merge commit (clean merge only)",
    )

    conflicts: list[str] = Field(
        default_factory=list,
        description="Paths left with conflict markers in the working tree",
    )

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


class SyncResult(BaseModel):
    """
    Result of one synchronization run.

    Provides detailed feedback about what happened and whether the build
    pipeline should run afterwards.
    """

    mirror_dir: Path = Field(description="Location of the mirror")

    cloned: bool = Field(
        default=False,
        description="The mirror did not exist and was cloned fresh",
    )

    fetch: FetchSummary | None = Field(
        default=None,
        description="Fetch summary (None for fresh clones)",
    )

    classification: MergeClassification | None = Field(
        default=None,
        description="How the fetched commit relates to the local tip",
    )

    previous_tip: str | None = Field(default=None)
    current_tip: str | None = Field(default=None)

    merge: MergeOutcome | None = Field(
        default=None,
        description="Three-way merge details (normal merges only)",
    )

    needs_build: bool = Field(
        default=False,
        description="The build/install pipeline should run",
    )

    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def has_conflicts(self) -> bool:
        return self.merge is not None and self.merge.has_conflicts

    @property
    def tip_changed(self) -> bool:
        return self.previous_tip != self.current_tip

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        if self.cloned:
            return f"cloned fresh mirror at {self.current_tip[:8] if self.current_tip else '?'}"

        if self.fetch is not None and not self.fetch.objects_transferred:
            if self.fetch.failed:
                return "fetch failed, treating mirror as current"
            return "already up to date"

        parts = [self.classification.value if self.classification else "unknown"]
        if self.merge is not None and self.merge.commit:
            parts.append(f"merge commit {self.merge.commit[:8]}")
        if self.merge is not None and self.merge.has_conflicts:
            parts.append(f"{len(self.merge.conflicts)} conflicted path(s)")
        if self.tip_changed and self.current_tip:
            parts.append(f"now at {self.current_tip[:8]}")
        return ", ".join(parts)


class MirrorStatus(BaseModel):
    """Read-only view of the mirror, as reported by ``canoup status``."""

    mirror_dir: Path
    is_repository: bool = False
    branch: str
    branch_tip: str | None = None
    tracking_tip: str | None = None
    head_detached: bool = False
    conflicted_paths: list[str] = Field(default_factory=list)
    dirty: bool = False
    installed: bool = False
