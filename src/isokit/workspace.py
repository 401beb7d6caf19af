"""Layout and lifecycle of the ``build/`` workspace."""
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .errors import FilesystemError

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE = Path("build")

SKELETON_DIRS = ["etc", "sys", "proc", "run", "tmp", "dev", "oldroot"]


@dataclass(frozen=True, slots=True)
class Workspace:
    root: Path = DEFAULT_WORKSPACE

    @property
    def rootfs(self) -> Path:
        return self.root / "rootfs"

    @property
    def iso_dir(self) -> Path:
        return self.root / "iso"

    @property
    def iso_boot_dir(self) -> Path:
        return self.iso_dir / "boot"

    @property
    def iso_path(self) -> Path:
        return self.root / "os.iso"

    def boot_config(self, filename: str) -> Path:
        return self.root / filename

    def archive_path(self, identifier: str) -> Path:
        return self.root / f"{identifier}.tar"

    def prepare(self) -> None:
        """Delete any previous workspace and create a fresh staging tree."""
        if self.root.exists():
            logger.debug("Removing previous workspace %s", self.root)
            try:
                shutil.rmtree(self.root)
            except OSError as exc:
                raise FilesystemError(f"Failed to remove workspace {self.root}", exc) from exc
        for path in (self.root, self.rootfs, self.rootfs / "EFI" / "BOOT"):
            _make_dir(path)


def ensure_skeleton(rootfs: Path, names: List[str] | None = None) -> List[Path]:
    """Create the standard mount points under ``rootfs`` that are not already present."""
    created: List[Path] = []
    for name in SKELETON_DIRS if names is None else names:
        path = rootfs / name
        if path.is_dir():
            continue
        _make_dir(path)
        created.append(path)
    if created:
        logger.debug("Created mount points: %s", ", ".join(p.name for p in created))
    return created


def _make_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Failed to create directory {path}", exc) from exc
