"""Textual application for previewing and running kit builds."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, Footer, Header, Label, RichLog, Static

from ..builder import KitBuildRunner, render_command_sequence
from ..config import CONFIG_FILENAME, KitConfig
from ..errors import KitError
from ..process import Toolchain
from ..workspace import Workspace


class BuildLogHandler(logging.Handler):
    """Send log records to the build log instead of the terminal Textual owns."""

    def __init__(self, sink) -> None:
        super().__init__()
        self.sink = sink
        self.setFormatter(logging.Formatter("%(levelname)s %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.sink(self.format(record))
        except Exception:
            self.handleError(record)


class ConfigSummary(Static):
    """Left-side overview of the loaded configuration."""

    def __init__(self) -> None:
        super().__init__(id="config-summary", markup=False)

    def show_config(self, path: Path, config: KitConfig) -> None:
        lines = [
            str(path),
            f"Bootloader: {config.bootloader}",
            f"Kernel: {config.kernel}",
            f"Command line: {config.cmdline}",
            "",
            "Images:",
            *(f"  {image}" for image in config.images),
            "",
            "Overlays:",
            *(f"  {m.source} -> {m.target}" for m in config.mappings),
        ]
        self.update("\n".join(lines))

    def show_error(self, path: Path, error: Exception) -> None:
        self.update(f"{path}\n\n{error}")


class ScriptPreview(RichLog):
    def __init__(self) -> None:
        super().__init__(id="script-preview", highlight=True, markup=False)

    def update_commands(self, commands: Iterable[str]) -> None:
        self.clear()
        for command in commands:
            self.write(command)


class BuildLog(RichLog):
    def __init__(self) -> None:
        super().__init__(id="build-log", highlight=False, markup=False)

    def append_line(self, line: str) -> None:
        self.write(line)
        self.scroll_end(animate=False)


class KitBuilderApp(App[None]):
    """Main Textual application."""

    CSS = """
    #body {
        height: 1fr;
    }

    #config-summary {
        width: 1fr;
        padding: 1;
        border: solid $surface-lighten-2;
    }

    #right-pane {
        width: 2fr;
        padding: 1;
        border: solid $surface-lighten-2;
    }

    #script-preview,
    #build-log {
        height: 1fr;
        border: round $surface-lighten-1;
        padding: 1;
    }

    #controls {
        height: auto;
        padding-top: 1;
    }
    """

    BINDINGS = [
        Binding("b", "start_build", "Start build", show=True),
        Binding("r", "reload_config", "Reload", show=True),
    ]

    def __init__(self, config_path: Path = Path(CONFIG_FILENAME), workspace: Optional[Workspace] = None) -> None:
        super().__init__()
        self.config_path = Path(config_path)
        self.workspace = workspace or Workspace()
        self.kit_config: Optional[KitConfig] = None
        self.planned_commands: List[str] = []
        self.log_lines: List[str] = []
        self._log_handler: Optional[BuildLogHandler] = None
        self._propagate = True

    def compose(self) -> ComposeResult:
        self.summary = ConfigSummary()
        self.script_preview = ScriptPreview()
        self.build_log = BuildLog()

        yield Header(show_clock=True)
        with Container(id="body"):
            with Horizontal():
                yield self.summary
                with Vertical(id="right-pane"):
                    yield Label("Planned commands", classes="section-title")
                    yield self.script_preview
                    yield Label("Build log", classes="section-title")
                    yield self.build_log
                    with Horizontal(id="controls"):
                        yield Button("Start Build", id="start-build", variant="success")
                        yield Button("Reload", id="reload", variant="primary")
        yield Footer()

    def on_mount(self) -> None:
        self.capture_logging()
        self._load_config()

    def on_unmount(self) -> None:
        self.release_logging()

    def capture_logging(self) -> None:
        if self._log_handler is not None:
            return
        package_logger = logging.getLogger("isokit")
        self._log_handler = BuildLogHandler(self._append_log)
        self._propagate = package_logger.propagate
        package_logger.addHandler(self._log_handler)
        package_logger.propagate = False

    def release_logging(self) -> None:
        if self._log_handler is None:
            return
        package_logger = logging.getLogger("isokit")
        package_logger.removeHandler(self._log_handler)
        package_logger.propagate = self._propagate
        self._log_handler = None

    def action_start_build(self) -> None:
        self._start_build()

    def action_reload_config(self) -> None:
        self._load_config()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "start-build":
            self._start_build()
        elif event.button.id == "reload":
            self._load_config()

    def _append_log(self, line: str) -> None:
        self.log_lines.append(line)
        self.build_log.append_line(line)

    def _load_config(self) -> None:
        try:
            self.kit_config = KitConfig.from_file(self.config_path)
        except KitError as exc:
            self.kit_config = None
            self.planned_commands = []
            self.summary.show_error(self.config_path, exc)
            self.script_preview.clear()
            return
        self.summary.show_config(self.config_path, self.kit_config)
        self.planned_commands = render_command_sequence(self.kit_config, self.workspace)
        self.script_preview.update_commands(self.planned_commands)

    def _start_build(self) -> None:
        if self.kit_config is None:
            self._append_log(f"Cannot build: {self.config_path} could not be loaded")
            return
        self.build_log.clear()
        self.log_lines.clear()
        runner = KitBuildRunner(
            self.kit_config,
            workspace=self.workspace,
            toolchain=Toolchain(stderr_sink=self._append_log),
        )

        async def run_build() -> None:
            self._append_log("Starting build...")
            try:
                result = await runner.run(callback=self._append_log)
            except KitError as exc:
                self._append_log(f"Build failed: {exc}")
                return
            self._append_log(f"Build completed: {result.iso_path}")

        self.run_worker(run_build, exclusive=True, thread=False)


def run(config_path: Path = Path(CONFIG_FILENAME), workspace: Optional[Workspace] = None) -> None:
    app = KitBuilderApp(config_path=config_path, workspace=workspace)
    try:
        app.run()
    finally:
        app.release_logging()


__all__ = ["KitBuilderApp", "run"]
