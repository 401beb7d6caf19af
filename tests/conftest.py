import io
import os
import tarfile
from pathlib import Path
from typing import Dict

import pytest

from isokit.images import image_identifier

FAKE_PODMAN = """#!/bin/sh
printf 'podman %s\\n' "$6" >> "$KIT_FAKE_LOG"
printf '%s' "$6" > "$KIT_FAKE_DIR/last_image"
if [ -n "$KIT_FAKE_FAIL_SAVE" ]; then
    echo "Error: $6: image not known" >&2
    exit 125
fi
cp "$KIT_FAKE_LAYERS/$(printf '%s' "$6" | tr '/:' '__').tar" "$5"
"""

FAKE_UNDOCKER = """#!/bin/sh
printf 'undocker %s\\n' "$1" >> "$KIT_FAKE_LOG"
echo "undocker: flattening $1" >&2
if [ -n "$KIT_FAKE_FAIL_UNPACK" ]; then
    echo "undocker: corrupt archive" >&2
    exit 2
fi
cat "$1"
"""

FAKE_XORRISO = """#!/bin/sh
printf 'xorriso %s\\n' "$*" >> "$KIT_FAKE_LOG"
if [ -n "$KIT_FAKE_FAIL_ISO" ]; then
    echo "xorriso : FAILURE : Cannot determine attributes of source file" >&2
    exit 5
fi
while [ $# -gt 0 ]; do
    if [ "$1" = "-o" ]; then
        shift
        echo "fake iso" > "$1"
    fi
    shift
done
"""

FAKE_INSTALLER = """#!/bin/sh
printf '%s %s\\n' "$(basename "$0")" "$1" >> "$KIT_FAKE_LOG"
test -f "$1"
"""


class FakeTools:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.bin_dir = root / "bin"
        self.layers = root / "layers"
        self.log_path = root / "calls.log"
        self.bin_dir.mkdir(parents=True)
        self.layers.mkdir()
        self.log_path.write_text("")
        for name, script in {
            "podman": FAKE_PODMAN,
            "undocker": FAKE_UNDOCKER,
            "xorriso": FAKE_XORRISO,
            "limine-install": FAKE_INSTALLER,
            "isohybrid": FAKE_INSTALLER,
        }.items():
            path = self.bin_dir / name
            path.write_text(script)
            path.chmod(0o755)

    def add_image(self, reference: str, files: Dict[str, str], symlinks: Dict[str, str] | None = None) -> Path:
        """Register the flattened layer contents ``podman save`` produces for ``reference``."""
        archive = self.layers / f"{image_identifier(reference)}.tar"
        with tarfile.open(archive, "w") as tar:
            for name, link_target in (symlinks or {}).items():
                info = tarfile.TarInfo(name)
                info.type = tarfile.SYMTYPE
                info.linkname = link_target
                tar.addfile(info)
            for name, content in files.items():
                data = content.encode()
                info = tarfile.TarInfo(name)
                info.size = len(data)
                info.mode = 0o644
                tar.addfile(info, io.BytesIO(data))
        return archive

    def calls(self):
        return self.log_path.read_text().splitlines()


@pytest.fixture
def fake_tools(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeTools:
    tools = FakeTools(tmp_path / "fake")
    monkeypatch.setenv("PATH", f"{tools.bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    monkeypatch.setenv("KIT_FAKE_LOG", str(tools.log_path))
    monkeypatch.setenv("KIT_FAKE_DIR", str(tools.root))
    monkeypatch.setenv("KIT_FAKE_LAYERS", str(tools.layers))
    for switch in ("KIT_FAKE_FAIL_SAVE", "KIT_FAKE_FAIL_UNPACK", "KIT_FAKE_FAIL_ISO"):
        monkeypatch.delenv(switch, raising=False)
    return tools


@pytest.fixture
def write_config(tmp_path: Path):
    def _write(body: str, name: str = "kit.toml") -> Path:
        path = tmp_path / name
        path.write_text(body)
        return path

    return _write


@pytest.fixture
def busybox_config(write_config) -> Path:
    return write_config(
        """
images = ["busybox:latest"]
mappings = []
cmdline = "console=ttyS0"
kernel = "/boot/vmlinuz"
boot_protocol = "linux"
"""
    )
