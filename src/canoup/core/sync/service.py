"""
Mirror synchronization service.

Drives one sync run of the local mirror:

1. open the mirror, or clone it fresh (a fresh clone skips all merge logic)
2. fetch the tracked branch from the configured remote
3. if the fetch moved the remote-tracking ref, classify the fetched commit
   against the local branch and fast-forward, merge or do nothing

The result says whether the build pipeline should run afterwards. The
mirror is assumed to be used by a single canoup process at a time.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from git import Commit, GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import BadName, BadObject

from canoup.core.config import CanoupConfig, get_default_mirror_dir
from canoup.core.config.models import DEFAULT_REPO_URL
from canoup.core.sync.errors import (
    CloneError,
    FetchError,
    RemoteNotFoundError,
    ResolutionError,
    SyncError,
    git_detail,
)
from canoup.core.sync.fast_forward import create_branch, fast_forward
from canoup.core.sync.merge import three_way_merge
from canoup.core.sync.models import (
    FetchSummary,
    MergeClassification,
    MergeOutcome,
    MirrorStatus,
    SyncResult,
)
from canoup.core.sync.resolver import classify, local_tip, resolve_commit

logger = logging.getLogger(__name__)


class SyncService:
    """
    Keeps the local mirror in step with its upstream branch.

    Example:
        >>> sync = SyncService(mirror_dir=Path("~/cano").expanduser())
        >>> result = sync.sync()
        >>> if result.needs_build:
        ...     print(result.summary())
    """

    DEFAULT_BRANCH = "main"
    DEFAULT_REMOTE = "origin"

    def __init__(
        self,
        mirror_dir: Path,
        repo_url: str = DEFAULT_REPO_URL,
        branch: str = DEFAULT_BRANCH,
        remote_name: str = DEFAULT_REMOTE,
        install_marker: Path | None = None,
        fail_on_fetch_error: bool = True,
    ) -> None:
        """
        Initialize the sync service.

        Args:
            mirror_dir: Location of the local mirror.
            repo_url: URL used when the mirror has to be cloned.
            branch: Branch to fetch and keep in sync.
            remote_name: Remote inside the mirror to fetch from.
            install_marker: File whose presence means canoup installed before.
            fail_on_fetch_error: Raise FetchError on fetch failure instead of
                treating the run as "nothing new".
        """
        self.mirror_dir = Path(mirror_dir)
        self.repo_url = repo_url
        self.branch = branch
        self.remote_name = remote_name
        self.install_marker = install_marker
        self.fail_on_fetch_error = fail_on_fetch_error

    @classmethod
    def from_config(cls, config: CanoupConfig) -> SyncService:
        repository = config.repository
        return cls(
            mirror_dir=repository.mirror_dir or get_default_mirror_dir(),
            repo_url=repository.url,
            branch=repository.branch,
            remote_name=repository.remote,
            install_marker=config.install.marker,
            fail_on_fetch_error=repository.fail_on_fetch_error,
        )

    @property
    def tracking_ref(self) -> str:
        """Remote-tracking ref the fetch writes to."""
        return f"refs/remotes/{self.remote_name}/{self.branch}"

    @property
    def refspec(self) -> str:
        return f"+refs/heads/{self.branch}:{self.tracking_ref}"

    def is_installed(self) -> bool:
        """Check the installed-artifact marker."""
        return self.install_marker is not None and self.install_marker.exists()

    def open_or_clone(self) -> tuple[Repo, bool]:
        """
        Open the mirror, cloning it if it is not a repository yet.

        Returns:
            (repo, cloned) tuple.

        Raises:
            CloneError: If the clone fails.
        """
        try:
            return Repo(self.mirror_dir), False
        except (InvalidGitRepositoryError, NoSuchPathError):
            logger.info("No repository at %s, cloning %s", self.mirror_dir, self.repo_url)

        try:
            repo = Repo.clone_from(self.repo_url, self.mirror_dir, branch=self.branch)
        except GitCommandError as e:
            raise CloneError.wrap(f"Failed to clone repository: {self.repo_url}", e) from e
        return repo, True

    def _tracking_tip(self, repo: Repo) -> str | None:
        try:
            return repo.commit(self.tracking_ref).hexsha
        except (ValueError, BadName, BadObject, GitCommandError):
            return None

    def fetch(self, repo: Repo) -> FetchSummary:
        """
        Fetch the tracked branch (and tags) from the remote.

        Raises:
            RemoteNotFoundError: If the remote is not configured.
            FetchError: If the fetch fails and fetch errors are fatal.
        """
        try:
            remote = repo.remote(self.remote_name)
        except ValueError as e:
            raise RemoteNotFoundError.wrap(f"Failed to find remote: {self.remote_name}", e) from e

        before = self._tracking_tip(repo)
        logger.debug("Fetching %s from %s", self.refspec, self.remote_name)

        try:
            remote.fetch(self.refspec, tags=True)
        except GitCommandError as e:
            if self.fail_on_fetch_error:
                raise FetchError.wrap(
                    f"Failed to fetch {self.branch} from {self.remote_name}", e
                ) from e
            logger.warning("Fetch failed, treating mirror as current: %s", e)
            return FetchSummary(refspec=self.refspec, before=before, after=before, failed=True)

        return FetchSummary(refspec=self.refspec, before=before, after=self._tracking_tip(repo))

    def apply(
        self,
        repo: Repo,
        classification: MergeClassification,
        fetched: Commit,
    ) -> MergeOutcome | None:
        """
        Apply the fetched commit according to its classification.

        Returns:
            The merge outcome for normal merges, None otherwise.
        """
        if classification is MergeClassification.FAST_FORWARD:
            fast_forward(repo, self.branch, fetched)
        elif classification is MergeClassification.FAST_FORWARD_FROM_EMPTY:
            create_branch(repo, self.branch, fetched)
        elif classification is MergeClassification.NORMAL:
            local = local_tip(repo, self.branch)
            if local is None:
                raise ResolutionError(f"Branch {self.branch} disappeared during merge")
            return three_way_merge(repo, self.branch, local, fetched)
        else:
            logger.info("Nothing to do (%s)", classification.value)
        return None

    def _rewind_tracking_ref(self, repo: Repo, sha: str | None) -> None:
        """
        Put the remote-tracking ref back where it was before the fetch.

        The next run then sees the fetched commits as new again and retries.
        """
        logger.warning("Restoring %s after a failed update", self.tracking_ref)
        try:
            if sha is None:
                repo.git.update_ref("-d", self.tracking_ref)
            else:
                repo.git.update_ref(self.tracking_ref, sha)
        except GitCommandError as e:
            logger.warning("Could not restore %s: %s", self.tracking_ref, git_detail(e))

    def _update(self, repo: Repo, result: SyncResult) -> None:
        tip = local_tip(repo, self.branch)
        result.previous_tip = result.current_tip = tip.hexsha if tip else None

        result.fetch = self.fetch(repo)
        if not result.fetch.objects_transferred:
            result.needs_build = not self.is_installed()
            return

        try:
            fetched = resolve_commit(repo, self.tracking_ref)
            result.classification = classify(repo, self.branch, fetched)
            logger.info("Fetched %s: %s", fetched.hexsha[:8], result.classification.value)

            result.merge = self.apply(repo, result.classification, fetched)
        except SyncError:
            self._rewind_tracking_ref(repo, result.fetch.before)
            raise

        tip = local_tip(repo, self.branch)
        result.current_tip = tip.hexsha if tip else None
        # conflicted merges still build; the build fails on the markers
        result.needs_build = True

    def sync(self) -> SyncResult:
        """
        Run one synchronization of the mirror.

        Returns:
            SyncResult describing what changed and whether to build.

        Raises:
            SyncError: Any clone, remote, fetch, resolution or apply failure.
        """
        result = SyncResult(mirror_dir=self.mirror_dir, started_at=datetime.now())

        repo, result.cloned = self.open_or_clone()
        with repo:
            if result.cloned:
                tip = local_tip(repo, self.branch)
                result.current_tip = tip.hexsha if tip else None
                result.needs_build = True
            else:
                self._update(repo, result)

        result.completed_at = datetime.now()
        return result

    def status(self) -> MirrorStatus:
        """Describe the mirror without fetching or changing anything."""
        status = MirrorStatus(
            mirror_dir=self.mirror_dir,
            branch=self.branch,
            installed=self.is_installed(),
        )

        try:
            repo = Repo(self.mirror_dir)
        except (InvalidGitRepositoryError, NoSuchPathError):
            return status

        with repo:
            status.is_repository = True
            tip = local_tip(repo, self.branch)
            status.branch_tip = tip.hexsha if tip else None
            status.tracking_tip = self._tracking_tip(repo)
            status.head_detached = repo.head.is_detached
            status.conflicted_paths = sorted(str(p) for p in repo.index.unmerged_blobs())
            if tip is not None:
                status.dirty = repo.is_dirty(untracked_files=False)

        return status
