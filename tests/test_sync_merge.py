"""
Tests for the three-way merge.

Covers clean merges, line-level auto-merges, content conflicts,
modify/delete conflicts and deletions carried over from either side.
"""

import pytest
from git import Repo

from canoup.core.sync.errors import MergeError
from canoup.core.sync.merge import three_way_merge

from conftest import MAIN_C, commit_file, git, remove_file, rev

NUMBERS = "".join(f"line {i}\n" for i in range(1, 21))


def merge(mirror):
    """Fetch upstream and merge origin/main into main."""
    git(mirror, "fetch", "-q", "origin")
    with Repo(mirror) as repo:
        return three_way_merge(
            repo,
            "main",
            repo.heads["main"].commit,
            repo.commit("refs/remotes/origin/main"),
        )


class TestCleanMerge:
    """Merges that produce a commit."""

    def test_disjoint_files(self, mirror, upstream):
        """Test changes to different files produce a two-parent merge commit."""
        base = rev(mirror)
        remote = commit_file(upstream, "upstream.txt", "upstream\n", "Upstream change")
        local = commit_file(mirror, "local.txt", "local\n", "Local change")

        outcome = merge(mirror)

        assert not outcome.has_conflicts
        assert outcome.base == base
        assert outcome.commit == rev(mirror, "main")
        assert git(mirror, "rev-parse", "main^1") == local
        assert git(mirror, "rev-parse", "main^2") == remote
        assert git(mirror, "log", "-1", "--format=%s", "main") == f"Merge: {remote} into {local}"
        assert (mirror / "upstream.txt").read_text() == "upstream\n"
        assert (mirror / "local.txt").read_text() == "local\n"
        assert git(mirror, "symbolic-ref", "HEAD") == "refs/heads/main"
        assert git(mirror, "status", "--porcelain") == ""

    def test_non_overlapping_edits_in_same_file(self, mirror, upstream):
        """Test hunks far apart in one file are merged line by line."""
        commit_file(upstream, "numbers.txt", NUMBERS, "Add numbers")
        git(mirror, "pull", "-q", "--ff-only", "origin", "main")

        upstream_numbers = NUMBERS.replace("line 20\n", "line twenty\n")
        commit_file(upstream, "numbers.txt", upstream_numbers, "Upstream edit")
        commit_file(mirror, "numbers.txt", NUMBERS.replace("line 1\n", "line one\n"), "Local edit")

        outcome = merge(mirror)

        assert not outcome.has_conflicts
        merged = (mirror / "numbers.txt").read_text()
        assert merged.startswith("line one\n")
        assert merged.endswith("line twenty\n")
        assert git(mirror, "show", "main:numbers.txt") + "\n" == merged
        assert git(mirror, "status", "--porcelain") == ""

    def test_upstream_deletion_is_applied(self, mirror, upstream):
        """Test a file removed upstream and untouched locally disappears."""
        remove_file(upstream, "README.md", "Drop readme")
        commit_file(mirror, "local.txt", "local\n", "Local change")

        outcome = merge(mirror)

        assert outcome.commit is not None
        assert not (mirror / "README.md").exists()
        assert "README.md" not in git(mirror, "ls-tree", "-r", "--name-only", "main").splitlines()


class TestConflicts:
    """Merges that stop with conflicts."""

    def test_overlapping_edits(self, mirror, upstream):
        """Test a same-line edit leaves markers and does not move the branch."""
        commit_file(upstream, "README.md", "# Cano upstream\n", "Upstream title")
        local = commit_file(mirror, "README.md", "# Cano local\n", "Local title")

        outcome = merge(mirror)

        assert outcome.conflicts == ["README.md"]
        assert outcome.commit is None
        assert rev(mirror, "main") == local

        content = (mirror / "README.md").read_text()
        assert "<<<<<<< main" in content
        assert "# Cano local" in content
        assert "# Cano upstream" in content
        assert ">>>>>>>" in content

        unmerged = git(mirror, "ls-files", "-u")
        assert "README.md" in unmerged

    def test_conflict_keeps_clean_paths_merged(self, mirror, upstream):
        """Test non-conflicting upstream files are checked out alongside conflicts."""
        commit_file(upstream, "NEWS.md", "news\n", "Add news")
        commit_file(upstream, "README.md", "# Cano upstream\n", "Upstream title")
        commit_file(mirror, "README.md", "# Cano local\n", "Local title")

        outcome = merge(mirror)

        assert outcome.has_conflicts
        assert (mirror / "NEWS.md").read_text() == "news\n"
        assert git(mirror, "ls-files", "-s", "NEWS.md").split()[2] == "0"

    def test_modify_delete(self, mirror, upstream):
        """Test a file deleted upstream but edited locally is a conflict."""
        remove_file(upstream, "src/main.c", "Remove main")
        edited = MAIN_C.replace("return 0", "return 1")
        commit_file(mirror, "src/main.c", edited, "Edit main")

        outcome = merge(mirror)

        assert outcome.conflicts == ["src/main.c"]
        assert (mirror / "src" / "main.c").read_text() == edited


class TestMergeErrors:
    """Failure cases."""

    def test_unrelated_histories_raise(self, mirror):
        """Test merging commits without a common ancestor is refused."""
        git(mirror, "checkout", "-q", "--orphan", "other")
        git(mirror, "rm", "-rq", "--cached", ".")
        commit_file(mirror, "other.txt", "other\n", "Unrelated root")
        git(mirror, "checkout", "-qf", "main")

        with Repo(mirror) as repo:
            with pytest.raises(MergeError, match="No merge base"):
                three_way_merge(repo, "main", repo.heads["main"].commit, repo.commit("other"))

    def test_untracked_file_blocks_checkout(self, mirror, upstream):
        """Test a refused checkout leaves the branch, index and files alone."""
        commit_file(upstream, "upstream.txt", "upstream\n", "Upstream change")
        local = commit_file(mirror, "local.txt", "local\n", "Local change")
        (mirror / "upstream.txt").write_text("stray\n")

        with pytest.raises(MergeError):
            merge(mirror)

        assert rev(mirror, "main") == local
        assert git(mirror, "write-tree") == rev(mirror, "main^{tree}")
        assert (mirror / "upstream.txt").read_text() == "stray\n"

    def test_unresolved_conflict_blocks_next_merge(self, mirror, upstream):
        """Test a still-conflicted index refuses a later clean merge."""
        commit_file(upstream, "README.md", "# Cano upstream\n", "Upstream title")
        local = commit_file(mirror, "README.md", "# Cano local\n", "Local title")
        assert merge(mirror).has_conflicts

        commit_file(upstream, "README.md", "# Cano local\n", "Adopt local title")

        with pytest.raises(MergeError):
            merge(mirror)

        assert rev(mirror, "main") == local
        assert "README.md" in git(mirror, "ls-files", "-u")
