"""Environment loading helpers.

canoup reads ``CANOUP_*`` overrides from the process environment. A user env
file (``~/.config/canoup/.env``) can provide defaults for them, but it never
overrides variables that are already present in the process environment
(e.g. exported in the shell or set by sudo).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

from .loader import get_xdg_config_home


def _read_env(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    values = dotenv_values(path)
    out: dict[str, str] = {}
    for k, v in values.items():
        if k is None or v is None:
            continue
        out[str(k)] = str(v)
    return out


def load_layered_env(*, user_env_paths: Iterable[Path] | None = None) -> list[str]:
    """Load environment variables from user .env files.

    Args:
        user_env_paths: explicit env file paths (defaults to the XDG location)

    Returns:
        Names of the variables that were set from the files.
    """
    if user_env_paths is None:
        user_env_paths = [get_xdg_config_home() / "canoup" / ".env"]

    loaded: list[str] = []
    for p in user_env_paths:
        for k, v in _read_env(Path(p)).items():
            if k not in os.environ:
                os.environ[k] = v
                loaded.append(k)
    return loaded
