"""
Base exceptions shared across canoup.

Each package defines its own subclasses (``canoup.core.sync.errors``,
``canoup.core.pipeline``); the CLI maps them to exit codes.
"""


class CanoupError(Exception):
    """Base exception for all canoup failures."""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message)
        self.detail = detail


class EnvironmentConfigError(CanoupError):
    """Raised when the environment cannot provide a usable home directory."""

    pass
