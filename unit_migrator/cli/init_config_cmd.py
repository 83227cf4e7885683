"""CLI command handler for writing a default configuration file."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from unit_migrator.cli.common import cli
from unit_migrator.constants import DEFAULT_CONFIG_NAME
from unit_migrator.core.config import create_default_config
from unit_migrator.utils.logging import setup_logger


@cli.command("init-config")
@click.option(
    "--path",
    default=DEFAULT_CONFIG_NAME,
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the config file",
)
def init_config(path: Path) -> None:
    """Write a default config file (never overwrites an existing one).

    Args:
        path: Destination of the config file.
    """
    setup_logger()
    if not create_default_config(path):
        sys.exit(1)
    click.echo(f"Default configuration written to {path}")
