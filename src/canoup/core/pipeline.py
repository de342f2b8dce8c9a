"""
Build and install collaborators.

Both steps are external commands run synchronously with their output
captured and returned once they finish. The build runs inside the mirror;
the install copies the built artifact into the system install directory
with elevated privileges.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from canoup.core.config import CanoupConfig
from canoup.core.errors import CanoupError

logger = logging.getLogger(__name__)


class PipelineError(CanoupError):
    """Base exception for build/install failures."""

    def __init__(self, message: str, detail: str = "", output: str = ""):
        super().__init__(message, detail=detail)
        self.output = output


class CommandLaunchError(PipelineError):
    """Raised when an external command cannot be started at all."""

    pass


class BuildError(PipelineError):
    """Raised when the build command exits non-zero."""

    pass


class InstallError(PipelineError):
    """Raised when the install command exits non-zero."""

    pass


@dataclass
class CommandResult:
    """
    Outcome of one external command.

    Attributes:
        command: Argument vector that was executed
        returncode: Process exit status
        stdout: Captured standard output
        stderr: Captured standard error
    """

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


def run_command(command: list[str], cwd: Path | None = None) -> CommandResult:
    """
    Run ``command`` to completion and capture its output.

    Raises:
        CommandLaunchError: If the executable cannot be launched.
    """
    logger.debug("Running %s (cwd=%s)", " ".join(command), cwd)
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise CommandLaunchError(f"Failed to run {command[0]}.", detail=str(e)) from e

    return CommandResult(
        command=list(command),
        returncode=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
    )


class BuildPipeline:
    """
    Builds the mirror and installs the resulting binary.

    Example:
        >>> pipeline = BuildPipeline(mirror_dir=Path.home() / "cano")
        >>> pipeline.build()
        >>> pipeline.install()
    """

    def __init__(
        self,
        mirror_dir: Path,
        build_command: list[str] | None = None,
        artifact: str = "build/cano",
        install_command: list[str] | None = None,
        install_dir: Path = Path("/usr/bin/"),
    ) -> None:
        self.mirror_dir = Path(mirror_dir)
        self.build_command = build_command or ["make", "-B"]
        self.artifact = artifact
        self.install_command = install_command or ["sudo", "install", "-v"]
        self.install_dir = Path(install_dir)

    @classmethod
    def from_config(cls, config: CanoupConfig, mirror_dir: Path) -> BuildPipeline:
        return cls(
            mirror_dir=mirror_dir,
            build_command=list(config.build.command),
            artifact=config.build.artifact,
            install_command=list(config.install.command),
            install_dir=config.install.install_dir,
        )

    @property
    def artifact_path(self) -> Path:
        return self.mirror_dir / self.artifact

    def build(self) -> CommandResult:
        """
        Run the build command inside the mirror.

        Raises:
            BuildError: If the build exits non-zero.
            CommandLaunchError: If the build tool cannot be started.
        """
        result = run_command(self.build_command, cwd=self.mirror_dir)
        if not result.success:
            raise BuildError(
                "Build failed.",
                detail=result.stderr.strip(),
                output=result.stdout,
            )
        logger.info("Build of %s succeeded", self.mirror_dir)
        return result

    def install(self) -> CommandResult:
        """
        Copy the built artifact into the install directory.

        Raises:
            InstallError: If the install command exits non-zero.
            CommandLaunchError: If the install command cannot be started.
        """
        command = [*self.install_command, str(self.artifact_path), str(self.install_dir)]
        result = run_command(command)
        if not result.success:
            raise InstallError(
                "Install failed. (canoup needs root permissions)",
                detail=result.stderr.strip(),
                output=result.stdout,
            )
        logger.info("Installed %s into %s", self.artifact_path, self.install_dir)
        return result
