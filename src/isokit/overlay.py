"""Copying host files and folders on top of the staged rootfs."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from .config import Mapping
from .errors import BuildStepError
from .process import ProcessResult, Toolchain, run_command

logger = logging.getLogger(__name__)

STEP = "copy overlay"


def mapping_destination(mapping: Mapping, rootfs: Path) -> Path:
    return rootfs.joinpath(*mapping.target_parts())


def copy_argv(mapping: Mapping, rootfs: Path, toolchain: Toolchain) -> List[str]:
    """Command copying a mapping's source into place.

    Directories have their contents merged into the target; single files
    are copied to the target path.
    """
    source = Path(mapping.source)
    destination = mapping_destination(mapping, rootfs)
    if source.is_dir():
        return [toolchain.cp, "-r", f"{source}/.", str(destination)]
    return [toolchain.cp, str(source), str(destination)]


def check_destination(mapping: Mapping, rootfs: Path) -> None:
    """Refuse to copy through symlinks that images placed in the rootfs.

    Image links such as ``var/run -> /run`` are absolute and would point
    the copy at the host.
    """
    parts = mapping.target_parts()
    written = [rootfs.joinpath(*parts[:depth]) for depth in range(1, len(parts) + 1)]
    source = Path(mapping.source)
    if source.is_dir():
        destination = rootfs.joinpath(*parts)
        written.extend(destination / path.relative_to(source) for path in sorted(source.rglob("*")))
    for path in written:
        if path.is_symlink():
            raise BuildStepError(
                STEP,
                f"{mapping.source} would be copied through symlink /{path.relative_to(rootfs)}",
            )


async def apply_overlays(
    mappings: Sequence[Mapping],
    rootfs: Path,
    toolchain: Toolchain,
) -> List[ProcessResult]:
    results: List[ProcessResult] = []
    for mapping in mappings:
        logger.debug("Copying %s to %s", mapping.source, mapping.target)
        source = Path(mapping.source)
        if not source.exists():
            raise BuildStepError(STEP, f"source {source} does not exist")
        check_destination(mapping, rootfs)
        destination = mapping_destination(mapping, rootfs)
        parent = destination if source.is_dir() else destination.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildStepError(STEP, f"cannot create {parent}: {exc}") from exc
        argv = copy_argv(mapping, rootfs, toolchain)
        results.append(await run_command(STEP, argv, stderr_sink=toolchain.stderr_sink))
    return results
