"""Command line interface for kit."""
from __future__ import annotations

import asyncio
from pathlib import Path

import click

from .builder import KitBuildRunner, render_command_sequence
from .config import CONFIG_FILENAME, KitConfig
from .errors import KitError
from .logging_utils import configure_logging
from .workspace import DEFAULT_WORKSPACE, Workspace

config_option = click.option(
    "--config",
    "-c",
    "config_path",
    default=CONFIG_FILENAME,
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the kit configuration file",
)
workspace_option = click.option(
    "--workspace",
    "-w",
    default=str(DEFAULT_WORKSPACE),
    show_default=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Build directory, recreated on every run",
)


@click.group()
def cli():
    """kit - build a bootable ISO from container images and a kernel."""
    configure_logging()


@cli.command()
@config_option
@workspace_option
@click.pass_context
def build(ctx, config_path, workspace):
    """Build the ISO image described by the configuration file."""
    try:
        config = KitConfig.from_file(config_path)
        result = asyncio.run(KitBuildRunner(config, workspace=Workspace(workspace)).run())
    except KitError as exc:
        click.echo(str(exc), err=True)
        ctx.exit(1)
    click.echo(f"A bootable disk image has been placed in: {result.iso_path}")


@cli.command()
@config_option
@workspace_option
@click.pass_context
def plan(ctx, config_path, workspace):
    """Print the external commands a build would run."""
    try:
        config = KitConfig.from_file(config_path)
    except KitError as exc:
        click.echo(str(exc), err=True)
        ctx.exit(1)
    for command in render_command_sequence(config, Workspace(workspace)):
        click.echo(command)


@cli.command()
@config_option
@workspace_option
def tui(config_path, workspace):
    """Open the interactive build screen."""
    from .tui.app import run

    run(config_path=config_path, workspace=Workspace(workspace))


def main():
    cli()


if __name__ == "__main__":
    main()
