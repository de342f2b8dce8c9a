"""
Reference resolution and merge analysis.

Classifies how a fetched commit relates to the tip of the local branch.
Nothing here mutates the repository.
"""

from __future__ import annotations

import logging

from git import Commit, GitCommandError, Repo
from git.exc import BadName, BadObject

from canoup.core.sync.errors import ResolutionError
from canoup.core.sync.models import MergeClassification

logger = logging.getLogger(__name__)


def branch_ref(branch: str) -> str:
    """Full ref name for a local branch."""
    return f"refs/heads/{branch}"


def local_tip(repo: Repo, branch: str) -> Commit | None:
    """
    Return the commit the local branch points at.

    Returns:
        The tip commit, or None if the branch does not exist yet.

    Raises:
        ResolutionError: If the branch exists but cannot be read.
    """
    if branch not in repo.heads:
        return None
    try:
        return repo.heads[branch].commit
    except (ValueError, BadName, BadObject, GitCommandError) as e:
        raise ResolutionError.wrap(f"Failed to read {branch_ref(branch)}", e) from e


def resolve_commit(repo: Repo, rev: str) -> Commit:
    """Resolve a revision (ref name or sha) to a commit."""
    try:
        return repo.commit(rev)
    except (ValueError, BadName, BadObject, GitCommandError) as e:
        raise ResolutionError.wrap(f"Failed to resolve {rev}", e) from e


def classify(repo: Repo, branch: str, fetched: Commit) -> MergeClassification:
    """
    Classify the fetched commit against the local branch tip.

    Args:
        repo: Open mirror repository.
        branch: Local branch name.
        fetched: Commit obtained from the fetch; must already be in the object store.

    Returns:
        MergeClassification for the pair (local tip, fetched).

    Raises:
        ResolutionError: If the branch or an ancestry query cannot be resolved.
    """
    tip = local_tip(repo, branch)
    if tip is None:
        logger.debug("Branch %s does not exist; fast-forward from empty", branch)
        return MergeClassification.FAST_FORWARD_FROM_EMPTY

    if tip.binsha == fetched.binsha:
        return MergeClassification.UP_TO_DATE

    try:
        if repo.is_ancestor(fetched, tip):
            return MergeClassification.UP_TO_DATE
        if repo.is_ancestor(tip, fetched):
            return MergeClassification.FAST_FORWARD
        bases = repo.merge_base(tip, fetched)
    except GitCommandError as e:
        raise ResolutionError.wrap(
            f"Failed to compare {tip.hexsha[:8]} with {fetched.hexsha[:8]}", e
        ) from e

    if not bases:
        logger.warning(
            "No shared history between %s and %s", tip.hexsha[:8], fetched.hexsha[:8]
        )
        return MergeClassification.NONE

    return MergeClassification.NORMAL
