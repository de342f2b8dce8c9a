"""
Pytest configuration and shared fixtures.

Provides real git repositories for sync tests: an ``upstream`` repository
standing in for the Cano remote and a ``mirror`` cloned from it, plus an
isolated home/config environment so no test reads the user's real files.
"""

import os
import subprocess
from pathlib import Path

import pytest

from canoup.core.config import clear_cache
from canoup.core.sync import SyncService

MAIN_C = "int main(void) {\n    return 0;\n}\n"

# ==============================================================================
# Git helpers
# ==============================================================================


def git(cwd: Path, *args: str) -> str:
    """Run a git command in ``cwd`` and return its stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def configure_identity(repo: Path) -> None:
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "commit.gpgsign", "false")


def commit_file(repo: Path, relpath: str, content: str, message: str) -> str:
    """Write ``content`` to ``relpath``, commit it and return the new sha."""
    path = repo / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    git(repo, "add", relpath)
    git(repo, "commit", "-m", message)
    return git(repo, "rev-parse", "HEAD")


def remove_file(repo: Path, relpath: str, message: str) -> str:
    git(repo, "rm", "-q", relpath)
    git(repo, "commit", "-m", message)
    return git(repo, "rev-parse", "HEAD")


def rev(repo: Path, name: str = "HEAD") -> str:
    return git(repo, "rev-parse", name)


# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point HOME/XDG at a temp dir and drop CANOUP_* overrides."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for name in list(os.environ):
        if name.startswith("CANOUP_"):
            monkeypatch.delenv(name)
    clear_cache()
    yield home
    clear_cache()


# ==============================================================================
# Repository Fixtures
# ==============================================================================


@pytest.fixture
def upstream(tmp_path) -> Path:
    """
    Provide an upstream repository on branch ``main``.

    History: README.md, then src/main.c.
    """
    repo = tmp_path / "upstream"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    configure_identity(repo)
    commit_file(repo, "README.md", "# Cano\n", "Initial commit")
    commit_file(repo, "src/main.c", MAIN_C, "Add main")
    return repo


@pytest.fixture
def mirror(tmp_path, upstream) -> Path:
    """Provide a clone of ``upstream`` as the local mirror."""
    path = tmp_path / "cano"
    subprocess.run(
        ["git", "clone", "-q", "--branch", "main", str(upstream), str(path)],
        capture_output=True,
        check=True,
    )
    configure_identity(path)
    return path


@pytest.fixture
def install_marker(tmp_path) -> Path:
    """Provide an existing installed-artifact marker."""
    marker = tmp_path / "bin" / "cano"
    marker.parent.mkdir()
    marker.write_text("#!/bin/sh\n")
    return marker


@pytest.fixture
def sync_service(mirror, upstream, install_marker) -> SyncService:
    """Provide a SyncService over the mirror with cano already installed."""
    return SyncService(
        mirror_dir=mirror,
        repo_url=str(upstream),
        install_marker=install_marker,
    )
