"""Exporting container images and flattening their layers into the rootfs."""
from __future__ import annotations

import logging
from typing import List

from .process import ProcessResult, Toolchain, run_command, run_pipeline
from .workspace import Workspace

logger = logging.getLogger(__name__)


def image_identifier(reference: str) -> str:
    """Turn an image reference into a filesystem-safe name.

    Every ``/`` and ``:`` becomes ``_``, so ``a/b`` and ``a:b`` both map to
    ``a_b`` and would share an archive path.
    """
    return reference.replace("/", "_").replace(":", "_")


def save_argv(reference: str, workspace: Workspace, toolchain: Toolchain) -> List[str]:
    archive = workspace.archive_path(image_identifier(reference))
    return [toolchain.podman, "image", "save", "--format=docker-archive", "-o", str(archive), reference]


def extract_argvs(reference: str, workspace: Workspace, toolchain: Toolchain) -> tuple[List[str], List[str]]:
    archive = workspace.archive_path(image_identifier(reference))
    unpack = [toolchain.undocker, str(archive), "-"]
    extract = [toolchain.tar, "-xvf", "-", "-C", str(workspace.rootfs)]
    return unpack, extract


async def materialize_image(reference: str, workspace: Workspace, toolchain: Toolchain) -> List[ProcessResult]:
    """Save ``reference`` to an archive and unpack its layers over the rootfs."""
    logger.debug("Building image %s", reference)
    saved = await run_command(
        "save image",
        save_argv(reference, workspace, toolchain),
        stderr_sink=toolchain.stderr_sink,
    )
    logger.debug("Extracting image %s", reference)
    unpack, extract = extract_argvs(reference, workspace, toolchain)
    extracted = await run_pipeline("extract image", unpack, extract, stderr_sink=toolchain.stderr_sink)
    return [saved, extracted]
