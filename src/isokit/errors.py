"""Exceptions raised while building a bootable image."""
from __future__ import annotations

__all__ = [
    "BuildStepError",
    "ConfigError",
    "FilesystemError",
    "KitError",
]


class KitError(Exception):
    """Base class for every failure that aborts a build."""


class ConfigError(KitError, ValueError):
    """Raised when ``kit.toml`` is missing, unreadable or malformed."""


class FilesystemError(KitError):
    """Raised when a workspace directory or file cannot be created, removed or written."""

    def __init__(self, context: str, cause: BaseException | None = None) -> None:
        message = context if cause is None else f"{context}: {cause}"
        super().__init__(message)
        self.context = context


class BuildStepError(KitError):
    """Raised when an external tool fails to spawn or exits non-zero."""

    def __init__(self, step: str, detail: str = "") -> None:
        message = f"Failed to {step}" if not detail else f"Failed to {step}: {detail}"
        super().__init__(message)
        self.step = step
        self.detail = detail
