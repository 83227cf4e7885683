"""
Command-line entry point for the unit migrator.

Importing the command modules registers their subcommands on the shared
click group.
"""

from unit_migrator.cli import init_config_cmd, migrate_cmd, plan_cmd  # noqa: F401
from unit_migrator.cli.common import cli


def main() -> None:
    """Run the unit-migrator CLI."""
    cli()


if __name__ == "__main__":
    main()
