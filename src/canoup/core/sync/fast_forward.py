"""
Fast-forward application.

Moves the local branch onto the fetched commit and forces the working tree
to match. Local edits in the mirror are discarded without a backup: the
mirror belongs to canoup and is never a developer workspace.
"""

from __future__ import annotations

import logging

from git import Commit, GitCommandError, Head, Repo

from canoup.core.sync.errors import ApplyError

logger = logging.getLogger(__name__)


def _checkout_forced(repo: Repo, head: Head) -> None:
    """Point HEAD at ``head`` and reset index and working tree to its commit."""
    repo.head.set_reference(head)
    # reset --hard also overwrites untracked files that are in the target tree
    repo.head.reset(index=True, working_tree=True)


def fast_forward(repo: Repo, branch: str, target: Commit) -> str:
    """
    Advance an existing branch to ``target``.

    Args:
        repo: Open mirror repository.
        branch: Name of the local branch; must exist.
        target: Descendant commit to move to.

    Returns:
        The reflog message recorded for the ref update.

    Raises:
        ApplyError: If the ref cannot be written or the checkout fails.
    """
    head = repo.heads[branch]
    msg = f"Fast-Forward: Setting {head.path} to id: {target.hexsha}"
    logger.info(msg)

    try:
        head.set_commit(target, logmsg=msg)
        _checkout_forced(repo, head)
    except (GitCommandError, OSError, ValueError) as e:
        raise ApplyError.wrap(f"Failed to fast-forward {branch}", e) from e

    return msg


def create_branch(repo: Repo, branch: str, target: Commit) -> str:
    """
    Create ``branch`` at ``target`` and check it out.

    Used when the branch has never existed locally (e.g. pulling into an
    empty repository). There is no committed state to protect, so files
    already in the working tree are overwritten.

    Returns:
        The reflog message recorded for the new ref.

    Raises:
        ApplyError: If the ref cannot be created or the checkout fails.
    """
    msg = f"Setting {branch} to {target.hexsha}"
    logger.info(msg)

    try:
        head = repo.create_head(branch, target, force=True, logmsg=msg)
        _checkout_forced(repo, head)
    except (GitCommandError, OSError, ValueError) as e:
        raise ApplyError.wrap(f"Failed to create {branch}", e) from e

    return msg
