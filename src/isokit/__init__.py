"""isokit package."""

from .config import KitConfig, Mapping
from .builder import BuildResult, KitBuildRunner, render_command_sequence
from .errors import BuildStepError, ConfigError, FilesystemError, KitError
from .workspace import Workspace

__all__ = [
    "BuildResult",
    "BuildStepError",
    "ConfigError",
    "FilesystemError",
    "KitBuildRunner",
    "KitConfig",
    "KitError",
    "Mapping",
    "Workspace",
    "render_command_sequence",
]
