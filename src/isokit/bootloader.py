"""Boot configuration files and mastering arguments per bootloader family."""
from __future__ import annotations

import logging
import textwrap
from pathlib import Path
from typing import List

from .config import KitConfig
from .errors import FilesystemError
from .process import Toolchain

logger = logging.getLogger(__name__)


class Bootloader:
    """How one bootloader family is configured, mastered and installed."""

    name = ""
    config_filename = ""

    def render_config(self, config: KitConfig) -> str:
        raise NotImplementedError

    def mastering_args(self) -> List[str]:
        raise NotImplementedError

    def install_argv(self, toolchain: Toolchain, iso_path: Path) -> List[str]:
        raise NotImplementedError


class LimineBootloader(Bootloader):
    name = "limine"
    config_filename = "limine.cfg"

    def render_config(self, config: KitConfig) -> str:
        return textwrap.dedent(
            f"""\
            TIMEOUT=3
            DEFAULT_ENTRY=1
            GRAPHICS=yes
            VERBOSE=yes
            :Linux

            PROTOCOL={config.boot_protocol}
            KERNEL_PATH={config.kernel}
            KERNEL_CMDLINE={config.cmdline}
            """
        )

    def mastering_args(self) -> List[str]:
        return [
            "-b", "boot/limine-cd.bin",
            "-no-emul-boot", "-boot-load-size", "4", "-boot-info-table",
            "--efi-boot", "boot/limine-eltorito-efi.bin",
            "-efi-boot-part", "--efi-boot-image", "--protective-msdos-label",
        ]

    def install_argv(self, toolchain: Toolchain, iso_path: Path) -> List[str]:
        return [toolchain.limine_install, str(iso_path)]


class IsolinuxBootloader(Bootloader):
    name = "isolinux"
    config_filename = "isolinux.cfg"

    def render_config(self, config: KitConfig) -> str:
        return textwrap.dedent(
            f"""\
            DEFAULT linux
            TIMEOUT 30
            PROMPT 0

            LABEL linux
              KERNEL {config.kernel}
              APPEND {config.cmdline}
            """
        )

    def mastering_args(self) -> List[str]:
        return [
            "-b", "boot/isolinux.bin",
            "-c", "boot/boot.cat",
            "-no-emul-boot", "-boot-load-size", "4", "-boot-info-table",
        ]

    def install_argv(self, toolchain: Toolchain, iso_path: Path) -> List[str]:
        return [toolchain.isohybrid, str(iso_path)]


BOOTLOADERS = {
    "limine": LimineBootloader,
    "isolinux": IsolinuxBootloader,
}


def bootloader_for(config: KitConfig) -> Bootloader:
    return BOOTLOADERS[config.bootloader]()


def write_boot_config(config: KitConfig, destination: Path) -> Path:
    """Write the bootloader configuration for ``config`` to ``destination``."""
    contents = bootloader_for(config).render_config(config)
    try:
        destination.write_text(contents, encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Failed to write boot configuration {destination}", exc) from exc
    logger.debug("Wrote %s", destination)
    return destination
