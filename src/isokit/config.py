"""Configuration models for kit image builds."""
from __future__ import annotations

import logging
import tomllib
from dataclasses import asdict, dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "kit.toml"

MAPPINGS_LAYOUT = "mappings"
FOLDERS_LAYOUT = "folders"

_MAPPINGS_KEYS = {"images", "mappings", "cmdline", "kernel", "boot_protocol"}
_FOLDERS_KEYS = {"images", "folders", "cmdline", "kernel"}


@dataclass(frozen=True, slots=True)
class Mapping:
    """A host path copied on top of the staged root filesystem."""

    source: str
    target: str

    def target_parts(self) -> tuple[str, ...]:
        """Return the target as path components relative to the rootfs."""
        parts = tuple(part for part in PurePosixPath(self.target).parts if part != "/")
        if ".." in parts:
            raise ConfigError(f"Mapping target escapes the root filesystem: {self.target}")
        return parts


@dataclass(slots=True)
class KitConfig:
    """In-memory representation of ``kit.toml``."""

    images: List[str]
    mappings: List[Mapping]
    cmdline: str
    kernel: str
    boot_protocol: Optional[str] = None
    layout: str = MAPPINGS_LAYOUT

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate configuration values raising ``ConfigError`` when invalid."""
        if self.layout not in (MAPPINGS_LAYOUT, FOLDERS_LAYOUT):
            raise ConfigError(f"Unknown configuration layout: {self.layout}")
        for image in self.images:
            if not isinstance(image, str) or not image.strip():
                raise ConfigError("Image references must be non-empty strings")
            if image.startswith("-"):
                raise ConfigError(f"Invalid image reference: {image}")
        if not self.kernel:
            raise ConfigError("A kernel path must be provided")
        if self.layout == MAPPINGS_LAYOUT and not self.boot_protocol:
            raise ConfigError("boot_protocol is required when mappings are used")
        if self.layout == FOLDERS_LAYOUT and self.boot_protocol is not None:
            raise ConfigError("boot_protocol is not supported with the folders layout")
        for mapping in self.mappings:
            if not mapping.source:
                raise ConfigError("Mapping source cannot be empty")
            mapping.target_parts()

    @property
    def bootloader(self) -> str:
        """Bootloader family implied by the configuration layout."""
        return "limine" if self.layout == MAPPINGS_LAYOUT else "isolinux"

    def to_dict(self) -> Dict[str, object]:
        """Render the config in the same shape as its ``kit.toml`` table."""
        data: Dict[str, object] = {"images": list(self.images)}
        if self.layout == FOLDERS_LAYOUT:
            data["folders"] = [mapping.source for mapping in self.mappings]
        else:
            data["mappings"] = [asdict(mapping) for mapping in self.mappings]
        data["cmdline"] = self.cmdline
        data["kernel"] = self.kernel
        if self.boot_protocol is not None:
            data["boot_protocol"] = self.boot_protocol
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "KitConfig":
        """Build a config from parsed TOML, detecting which schema it uses."""
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a table")
        if "mappings" in data and "folders" in data:
            raise ConfigError("Configuration cannot define both 'mappings' and 'folders'")
        if "mappings" in data:
            return cls._from_mappings(data)
        if "folders" in data:
            return cls._from_folders(data)
        raise ConfigError("Configuration must define either 'mappings' or 'folders'")

    @classmethod
    def _from_mappings(cls, data: Dict[str, object]) -> "KitConfig":
        _check_keys(data, _MAPPINGS_KEYS, required=_MAPPINGS_KEYS)
        raw_mappings = data["mappings"]
        if not isinstance(raw_mappings, list):
            raise ConfigError("'mappings' must be an array of tables")
        mappings = []
        for entry in raw_mappings:
            if not isinstance(entry, dict):
                raise ConfigError("Each mapping must be a table with 'source' and 'target'")
            _check_keys(entry, {"source", "target"}, required={"source", "target"}, where="mapping")
            mappings.append(
                Mapping(
                    source=_expect_str(entry, "source", "mapping"),
                    target=_expect_str(entry, "target", "mapping"),
                )
            )
        return cls(
            images=_expect_str_list(data, "images"),
            mappings=mappings,
            cmdline=_expect_str(data, "cmdline"),
            kernel=_expect_str(data, "kernel"),
            boot_protocol=_expect_str(data, "boot_protocol"),
            layout=MAPPINGS_LAYOUT,
        )

    @classmethod
    def _from_folders(cls, data: Dict[str, object]) -> "KitConfig":
        _check_keys(data, _FOLDERS_KEYS, required=_FOLDERS_KEYS)
        logger.warning("The 'folders' configuration layout is deprecated, use 'mappings' instead")
        folders = _expect_str_list(data, "folders")
        return cls(
            images=_expect_str_list(data, "images"),
            mappings=[Mapping(source=folder, target="/") for folder in folders],
            cmdline=_expect_str(data, "cmdline"),
            kernel=_expect_str(data, "kernel"),
            layout=FOLDERS_LAYOUT,
        )

    @classmethod
    def from_file(cls, path: Path | str = CONFIG_FILENAME) -> "KitConfig":
        path = Path(path)
        try:
            with path.open("rb") as handle:
                data = tomllib.load(handle)
        except FileNotFoundError:
            raise ConfigError(f"Configuration file not found: {path}") from None
        except OSError as exc:
            raise ConfigError(f"Unable to read configuration file {path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
        return cls.from_dict(data)


def _check_keys(data: Dict[str, object], allowed: set, *, required: set, where: str = "configuration") -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        logger.warning("Ignoring unknown %s field(s): %s", where, ", ".join(unknown))
    missing = sorted(required - set(data))
    if missing:
        raise ConfigError(f"Missing {where} field(s): {', '.join(missing)}")


def _expect_str(data: Dict[str, object], key: str, where: str = "configuration") -> str:
    value = data[key]
    if not isinstance(value, str):
        raise ConfigError(f"{where} field '{key}' must be a string")
    return value


def _expect_str_list(data: Dict[str, object], key: str) -> List[str]:
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"configuration field '{key}' must be an array of strings")
    return list(value)
