"""Turning the staged rootfs into a bootable ISO."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from .bootloader import Bootloader
from .errors import BuildStepError
from .process import ProcessResult, Toolchain, run_command
from .workspace import Workspace

logger = logging.getLogger(__name__)


def copy_rootfs_argv(workspace: Workspace, toolchain: Toolchain) -> List[str]:
    return [toolchain.cp, "-r", f"{workspace.rootfs}/.", str(workspace.iso_dir)]


def copy_boot_config_argv(boot_config: Path, workspace: Workspace, toolchain: Toolchain) -> List[str]:
    return [toolchain.cp, str(boot_config), str(workspace.iso_boot_dir)]


def mastering_argv(bootloader: Bootloader, workspace: Workspace, toolchain: Toolchain) -> List[str]:
    return [
        toolchain.xorriso, "-as", "mkisofs",
        *bootloader.mastering_args(),
        "-o", str(workspace.iso_path),
        str(workspace.iso_dir),
    ]


async def assemble_image(
    bootloader: Bootloader,
    boot_config: Path,
    workspace: Workspace,
    toolchain: Toolchain,
) -> List[ProcessResult]:
    """Stage the ISO tree, master the image and install the bootloader into it."""
    for directory in (workspace.iso_dir, workspace.iso_boot_dir):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildStepError("create image directory", f"{directory}: {exc}") from exc

    sink = toolchain.stderr_sink
    results = [
        await run_command("copy rootfs", copy_rootfs_argv(workspace, toolchain), stderr_sink=sink),
        await run_command(
            f"copy {bootloader.config_filename}",
            copy_boot_config_argv(boot_config, workspace, toolchain),
            stderr_sink=sink,
        ),
    ]

    logger.info("Creating final image")
    results.append(
        await run_command(
            "create the iso",
            mastering_argv(bootloader, workspace, toolchain),
            stderr_sink=sink,
        )
    )

    logger.info("Installing the %s bootloader", bootloader.name)
    results.append(
        await run_command(
            "install bootloader",
            bootloader.install_argv(toolchain, workspace.iso_path),
            stderr_sink=sink,
        )
    )
    return results
