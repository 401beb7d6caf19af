"""Command generation and execution for kit image builds."""
from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .assembler import assemble_image, copy_boot_config_argv, copy_rootfs_argv, mastering_argv
from .bootloader import bootloader_for, write_boot_config
from .config import KitConfig
from .images import extract_argvs, materialize_image, save_argv
from .overlay import apply_overlays, copy_argv
from .process import ProcessResult, Toolchain
from .workspace import Workspace, ensure_skeleton

logger = logging.getLogger(__name__)

Callback = Callable[[str], None]


def render_command_sequence(
    config: KitConfig,
    workspace: Workspace | None = None,
    toolchain: Toolchain | None = None,
) -> List[str]:
    """Generate the external commands a build of ``config`` runs, in order."""
    workspace = workspace or Workspace()
    toolchain = toolchain or Toolchain()
    bootloader = bootloader_for(config)
    boot_config = workspace.boot_config(bootloader.config_filename)

    commands: List[str] = []
    for image in config.images:
        commands.append(shlex.join(save_argv(image, workspace, toolchain)))
        unpack, extract = extract_argvs(image, workspace, toolchain)
        commands.append(f"{shlex.join(unpack)} | {shlex.join(extract)}")
    for mapping in config.mappings:
        commands.append(shlex.join(copy_argv(mapping, workspace.rootfs, toolchain)))
    commands.extend(
        [
            shlex.join(copy_rootfs_argv(workspace, toolchain)),
            shlex.join(copy_boot_config_argv(boot_config, workspace, toolchain)),
            shlex.join(mastering_argv(bootloader, workspace, toolchain)),
            shlex.join(bootloader.install_argv(toolchain, workspace.iso_path)),
        ]
    )
    return commands


@dataclass(slots=True)
class BuildResult:
    iso_path: Path
    boot_config: Path
    steps: List[ProcessResult] = field(default_factory=list)


class KitBuildRunner:
    """Run every build stage in order, stopping at the first failure."""

    def __init__(
        self,
        config: KitConfig,
        *,
        workspace: Workspace | None = None,
        toolchain: Toolchain | None = None,
    ) -> None:
        self.config = config
        self.workspace = workspace or Workspace()
        self.toolchain = toolchain or Toolchain()

    def commands(self) -> List[str]:
        return render_command_sequence(self.config, self.workspace, self.toolchain)

    async def run(self, *, callback: Optional[Callback] = None) -> BuildResult:
        notify = callback or _ignore
        workspace = self.workspace
        bootloader = bootloader_for(self.config)

        notify(f"Preparing workspace {workspace.root}")
        workspace.prepare()
        steps: List[ProcessResult] = []

        logger.info("Copying images")
        total = len(self.config.images)
        for index, image in enumerate(self.config.images, start=1):
            notify(f"[{index}/{total}] {image}")
            steps.extend(await materialize_image(image, workspace, self.toolchain))

        if self.config.mappings:
            logger.info("Applying overlays")
            notify(f"Applying {len(self.config.mappings)} overlay(s)")
            steps.extend(await apply_overlays(self.config.mappings, workspace.rootfs, self.toolchain))

        boot_config = write_boot_config(self.config, workspace.boot_config(bootloader.config_filename))
        notify(f"Wrote {boot_config}")
        ensure_skeleton(workspace.rootfs)

        notify("Creating final image")
        steps.extend(await assemble_image(bootloader, boot_config, workspace, self.toolchain))

        logger.info("A bootable disk image has been placed in: %s", workspace.iso_path)
        notify(f"Image written to {workspace.iso_path}")
        return BuildResult(iso_path=workspace.iso_path, boot_config=boot_config, steps=steps)


def _ignore(line: str) -> None:
    pass
