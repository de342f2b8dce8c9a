"""Tests for the build and install collaborators."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from canoup.core.config import CanoupConfig
from canoup.core.pipeline import (
    BuildError,
    BuildPipeline,
    CommandLaunchError,
    CommandResult,
    InstallError,
    run_command,
)


def completed(returncode=0, stdout="", stderr=""):
    result = MagicMock(spec=subprocess.CompletedProcess)
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestRunCommand:
    """Tests for run_command()."""

    def test_captures_output(self, tmp_path):
        """Test output and status are captured."""
        with patch("subprocess.run", return_value=completed(0, "out\n", "err\n")) as mock_run:
            result = run_command(["make", "-B"], cwd=tmp_path)

        assert result == CommandResult(
            command=["make", "-B"], returncode=0, stdout="out\n", stderr="err\n"
        )
        assert result.success
        mock_run.assert_called_once_with(
            ["make", "-B"],
            cwd=tmp_path,
            capture_output=True,
            text=True,
            check=False,
        )

    def test_nonzero_is_not_success(self):
        """Test a failing command is returned, not raised."""
        with patch("subprocess.run", return_value=completed(2)):
            assert not run_command(["false"]).success

    def test_missing_executable(self):
        """Test launch failures raise CommandLaunchError."""
        with patch("subprocess.run", side_effect=FileNotFoundError("make")):
            with pytest.raises(CommandLaunchError, match="Failed to run make"):
                run_command(["make"])


class TestBuildPipeline:
    """Tests for BuildPipeline."""

    def test_defaults(self, tmp_path):
        """Test the stock build and install commands."""
        pipeline = BuildPipeline(mirror_dir=tmp_path)

        assert pipeline.build_command == ["make", "-B"]
        assert pipeline.install_command == ["sudo", "install", "-v"]
        assert pipeline.install_dir == Path("/usr/bin/")
        assert pipeline.artifact_path == tmp_path / "build" / "cano"

    def test_from_config(self, tmp_path):
        """Test commands are taken from config."""
        config = CanoupConfig(
            build={"command": ["make", "release"], "artifact": "out/cano"},
            install={"command": ["install"], "install_dir": str(tmp_path / "bin")},
        )

        pipeline = BuildPipeline.from_config(config, tmp_path)

        assert pipeline.build_command == ["make", "release"]
        assert pipeline.artifact_path == tmp_path / "out" / "cano"
        assert pipeline.install_command == ["install"]
        assert pipeline.install_dir == tmp_path / "bin"

    def test_build_runs_in_mirror(self, tmp_path):
        """Test the build runs with the mirror as working directory."""
        pipeline = BuildPipeline(mirror_dir=tmp_path)

        with patch("subprocess.run", return_value=completed(0, "cc main.c\n")) as mock_run:
            result = pipeline.build()

        assert result.stdout == "cc main.c\n"
        args, kwargs = mock_run.call_args
        assert args[0] == ["make", "-B"]
        assert kwargs["cwd"] == tmp_path

    def test_build_failure(self, tmp_path):
        """Test a failing build raises BuildError carrying its output."""
        pipeline = BuildPipeline(mirror_dir=tmp_path)

        with patch("subprocess.run", return_value=completed(2, "cc main.c\n", "main.c:1: error\n")):
            with pytest.raises(BuildError, match="Build failed.") as exc_info:
                pipeline.build()

        assert exc_info.value.detail == "main.c:1: error"
        assert exc_info.value.output == "cc main.c\n"

    def test_install_command(self, tmp_path):
        """Test the artifact and install dir are appended to the install command."""
        pipeline = BuildPipeline(mirror_dir=tmp_path)

        output = "'build/cano' -> '/usr/bin/cano'\n"
        with patch("subprocess.run", return_value=completed(0, output)) as mock_run:
            pipeline.install()

        args, kwargs = mock_run.call_args
        assert args[0] == ["sudo", "install", "-v", str(tmp_path / "build" / "cano"), "/usr/bin"]
        assert kwargs["cwd"] is None

    def test_install_failure(self, tmp_path):
        """Test a failing install explains the privilege requirement."""
        pipeline = BuildPipeline(mirror_dir=tmp_path)

        failed = completed(1, "", "sudo: a password is required\n")
        with patch("subprocess.run", return_value=failed):
            with pytest.raises(InstallError, match=r"canoup needs root permissions") as exc_info:
                pipeline.install()

        assert exc_info.value.detail == "sudo: a password is required"
