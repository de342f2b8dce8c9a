"""
Three-way merge of diverged local and fetched history.

The tree merge runs in an in-memory index built by ``git read-tree -m``
(via ``IndexFile.from_tree``), so neither the repository index nor the
working tree is touched until the outcome is known:

- clean merge: a two-parent commit is written, the branch advances and the
  working tree is brought forward with a non-forced two-way checkout
- conflicts: the conflicted index becomes the repository index, resolved
  paths are checked out and conflicted files get merge markers; the branch
  stays where it was
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from git import Actor, Blob, Commit, GitCommandError, IndexFile, Repo
from git.index.typ import BaseIndexEntry, IndexEntry

from canoup.core.sync.errors import MergeError
from canoup.core.sync.models import MergeOutcome

logger = logging.getLogger(__name__)

REGULAR_FILE_MODES = (0o100644, 0o100755)

# git merge-file exits with the conflict count (capped at 127); anything higher is an error
MERGE_FILE_ERROR_STATUS = 128


def _blob_bytes(blob: Blob | None) -> bytes:
    if blob is None:
        return b""
    return blob.data_stream.read()


def _merge_file(
    repo: Repo,
    ours: Blob,
    base: Blob | None,
    theirs: Blob,
    labels: tuple[str, str, str],
) -> tuple[int, bytes]:
    """
    Line-level three-way merge of one file.

    Returns:
        (status, content): status 0 means clean; otherwise ``content``
        carries conflict markers (or is empty if git could not merge at all).
    """
    with tempfile.TemporaryDirectory(prefix="canoup-merge-") as tmp:
        paths = []
        for name, blob in (("ours", ours), ("base", base), ("theirs", theirs)):
            path = Path(tmp) / name
            path.write_bytes(_blob_bytes(blob))
            paths.append(str(path))

        status, stdout, _ = repo.git.merge_file(
            "-p",
            "-L", labels[0],
            "-L", labels[1],
            "-L", labels[2],
            *paths,
            with_extended_output=True,
            with_exceptions=False,
            stdout_as_string=False,
            strip_newline_in_stdout=False,
        )
    return status, stdout


def _store_blob(repo: Repo, content: bytes) -> bytes:
    """Write ``content`` to the object store and return its binary sha."""
    with tempfile.TemporaryDirectory(prefix="canoup-blob-") as tmp:
        path = Path(tmp) / "blob"
        path.write_bytes(content)
        hexsha = repo.git.hash_object("-w", str(path))
    return bytes.fromhex(hexsha)


def _stage_resolved(index: IndexFile, path: str, mode: int, binsha: bytes) -> None:
    """Replace the unmerged stages of ``path`` with a single stage-0 entry."""
    for stage in (1, 2, 3):
        index.entries.pop((path, stage), None)
    index.entries[(path, 0)] = IndexEntry.from_base(BaseIndexEntry((mode, binsha, 0, path)))


def resolve_unmerged(
    repo: Repo,
    index: IndexFile,
    labels: tuple[str, str, str],
) -> dict[str, bytes]:
    """
    Try a file-level merge for every path the tree merge left unmerged.

    Paths whose hunks do not overlap are staged as resolved in ``index``.

    Returns:
        Mapping of still-conflicted paths to the content their working tree
        file should have (with conflict markers where git produced them).
    """
    conflicts: dict[str, bytes] = {}

    for path, stage_blobs in index.unmerged_blobs().items():
        path = str(path)
        stages = dict(stage_blobs)
        base, ours, theirs = stages.get(1), stages.get(2), stages.get(3)

        if ours is None or theirs is None:
            # modify/delete: keep whichever side still has the file
            conflicts[path] = _blob_bytes(ours or theirs)
            continue

        if ours.mode not in REGULAR_FILE_MODES or theirs.mode not in REGULAR_FILE_MODES:
            conflicts[path] = _blob_bytes(ours)
            continue

        status, content = _merge_file(repo, ours, base, theirs, labels)
        if status == 0:
            base_mode = base.mode if base is not None else ours.mode
            mode = ours.mode if theirs.mode == base_mode else theirs.mode
            _stage_resolved(index, path, mode, _store_blob(repo, content))
            logger.debug("Auto-merged %s", path)
        elif status >= MERGE_FILE_ERROR_STATUS:
            conflicts[path] = _blob_bytes(ours)
        else:
            conflicts[path] = content

    return conflicts


def _commit_merge(
    repo: Repo,
    branch: str,
    index: IndexFile,
    local: Commit,
    remote: Commit,
) -> Commit:
    """
    Write the merged tree, commit it with parents [local, remote] and advance ``branch``.

    The working tree is updated before any ref moves, so a refused checkout
    leaves the branch on ``local``.
    """
    reader = repo.config_reader()
    tree = index.write_tree()
    commit = Commit.create_from_tree(
        repo,
        tree,
        f"Merge: {remote.hexsha} into {local.hexsha}",
        parent_commits=[local, remote],
        head=False,
        author=Actor.author(reader),
        committer=Actor.committer(reader),
    )

    # two-way read-tree refuses to overwrite local modifications or untracked files
    repo.git.read_tree("-m", "-u", local.hexsha, commit.hexsha)

    head = repo.heads[branch]
    head.set_commit(commit, logmsg=f"merge {remote.hexsha}: Merge made by canoup")
    repo.head.set_reference(head)
    return commit


def _write_conflicts(
    repo: Repo,
    index: IndexFile,
    local: Commit,
    conflicts: dict[str, bytes],
) -> None:
    """Materialize a conflicted merge in the repository index and working tree."""
    root = Path(repo.working_tree_dir)

    index.write(os.path.join(repo.git_dir, "index"))
    # checkout-index --all skips unmerged entries
    repo.git.checkout_index("--all", "--force")

    for path, content in conflicts.items():
        target = root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    merged_paths = {str(path) for path, _stage in index.entries}
    for item in local.tree.traverse():
        if item.type == "blob" and item.path not in merged_paths:
            (root / item.path).unlink(missing_ok=True)


def three_way_merge(repo: Repo, branch: str, local: Commit, remote: Commit) -> MergeOutcome:
    """
    Merge ``remote`` into ``local`` using their nearest common ancestor.

    Args:
        repo: Open mirror repository.
        branch: Local branch whose tip is ``local``.
        local: Current branch tip.
        remote: Fetched commit.

    Returns:
        MergeOutcome with either the new merge commit or the conflicted paths.

    Raises:
        MergeError: If commits/trees cannot be read or the result cannot be written.
    """
    try:
        bases = repo.merge_base(local, remote)
    except GitCommandError as e:
        raise MergeError.wrap("Failed to compute merge base", e) from e
    if not bases:
        raise MergeError(f"No merge base between {local.hexsha[:8]} and {remote.hexsha[:8]}")
    base = bases[0]

    logger.info(
        "Merging %s into %s (base %s)",
        remote.hexsha[:8],
        local.hexsha[:8],
        base.hexsha[:8],
    )

    labels = (branch, "merge-base", remote.hexsha[:12])
    try:
        index = IndexFile.from_tree(repo, base.tree, local.tree, remote.tree)
        conflicts = resolve_unmerged(repo, index, labels)

        if not conflicts:
            commit = _commit_merge(repo, branch, index, local, remote)
            logger.info("Created merge commit %s", commit.hexsha[:8])
            return MergeOutcome(base=base.hexsha, commit=commit.hexsha)

        _write_conflicts(repo, index, local, conflicts)
    except (GitCommandError, OSError, ValueError) as e:
        raise MergeError.wrap("Failed to merge", e) from e

    logger.warning(
        "Merge left %d conflicted path(s): %s",
        len(conflicts),
        ", ".join(sorted(conflicts)),
    )
    return MergeOutcome(base=base.hexsha, conflicts=sorted(conflicts))
