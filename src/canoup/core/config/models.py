"""
Configuration data models for canoup.

These models define the structure of ~/.config/canoup/config.json,
with validation and type safety via Pydantic.
"""

from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_REPO_URL = "https://github.com/CobbCoding1/Cano.git"


class RepositoryConfig(BaseModel):
    """
    Upstream source and local mirror settings.

    The URL is only used for the initial clone; later runs fetch from the
    remote already configured inside the mirror.
    """
    url: str = Field(
        default=DEFAULT_REPO_URL,
        min_length=1,
        description="Remote URL used to clone the mirror"
    )
    branch: str = Field(
        default="main",
        min_length=1,
        description="Branch that is fetched and kept in sync"
    )
    remote: str = Field(
        default="origin",
        min_length=1,
        description="Name of the remote inside the mirror"
    )
    mirror_dir: Optional[Path] = Field(
        default=None,
        description="Local mirror location (defaults to ~/cano)"
    )
    fail_on_fetch_error: bool = Field(
        default=True,
        description="Abort the run when fetching fails instead of treating it as 'nothing new'"
    )

    @field_validator('mirror_dir', mode='after')
    @classmethod
    def expand_mirror_dir(cls, v: Optional[Path]) -> Optional[Path]:
        """Expand a leading ~ in user supplied paths."""
        if v is None:
            return v
        return v.expanduser()


class BuildConfig(BaseModel):
    """
    Build collaborator settings.

    The command runs with the mirror as its working directory and must
    leave the artifact at the given relative path.
    """
    command: list[str] = Field(
        default_factory=lambda: ["make", "-B"],
        min_length=1,
        description="Build command and arguments"
    )
    artifact: str = Field(
        default="build/cano",
        min_length=1,
        description="Built binary, relative to the mirror"
    )


class InstallConfig(BaseModel):
    """Install collaborator settings."""
    command: list[str] = Field(
        default_factory=lambda: ["sudo", "install", "-v"],
        min_length=1,
        description="Privileged install command; artifact and target dir are appended"
    )
    install_dir: Path = Field(
        default=Path("/usr/bin/"),
        description="Directory the binary is installed into"
    )
    marker: Path = Field(
        default=Path("/usr/bin/cano"),
        description="File whose presence means a previous install succeeded"
    )


class CanoupConfig(BaseModel):
    """
    Top-level canoup configuration.

    Loaded from defaults, user config and env vars, then handed to the
    updater so nothing in the core reads fixed filesystem locations.

    Example:
        >>> config = CanoupConfig(repository={"branch": "dev"})
        >>> config.repository.branch
        'dev'
    """
    repository: RepositoryConfig = Field(
        default_factory=RepositoryConfig,
        description="Upstream source and mirror"
    )
    build: BuildConfig = Field(
        default_factory=BuildConfig,
        description="Build step"
    )
    install: InstallConfig = Field(
        default_factory=InstallConfig,
        description="Install step"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )

    @field_validator('build', mode='before')
    @classmethod
    def validate_build(cls, v: Union[str, dict, BuildConfig]) -> Union[dict, BuildConfig]:
        """Accept a plain command string such as "make -B"."""
        if isinstance(v, str):
            return {"command": v.split()}
        return v
