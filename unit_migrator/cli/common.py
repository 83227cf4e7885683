"""Shared CLI infrastructure: option decorators, error handlers, and the CLI group."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, ClassVar

import click

import unit_migrator
from unit_migrator.constants import DEFAULT_CONFIG_NAME, TIER_BY_COMPLEXITY
from unit_migrator.exceptions import (
    ConfigError,
    GraphError,
    ManifestError,
    MigrationAbortedError,
    MigrationError,
)
from unit_migrator.utils.logging import log_with_context

# ---------------------------------------------------------------------------
# Custom click.Group that defaults to ``migrate``.
# When the first CLI token starts with ``-`` (i.e. a flag, not a subcommand)
# the group prepends ``migrate`` so that
#   ``unit-migrator --source ... --output ...``
# runs a migration.
# ---------------------------------------------------------------------------


class DefaultGroup(click.Group):
    """Click group that defaults to the ``migrate`` subcommand."""

    # Flags that belong to the group itself and should NOT trigger the
    # ``migrate`` default.
    _GROUP_FLAGS: ClassVar[set[str]] = {"--help", "--version", "-h"}

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        """Prepend ``migrate`` when the first token is a flag.

        Args:
            ctx: The current Click context.
            args: Raw CLI argument list.

        Returns:
            The (possibly modified) argument list for further parsing.
        """
        if args and args[0].startswith("-") and args[0] not in self._GROUP_FLAGS:
            args = ["migrate", *args]
        return super().parse_args(ctx, args)


# ---------------------------------------------------------------------------
# Shared option decorators
# ---------------------------------------------------------------------------


def common_options(f: Callable[..., None]) -> Callable[..., None]:
    """Decorator that adds options shared across the unit-reading subcommands.

    Args:
        f: The Click command function to decorate.

    Returns:
        The decorated function with common options attached.
    """
    f = click.option(
        "--source",
        "-s",
        required=True,
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        help="Source directory containing the units to migrate",
    )(f)
    f = click.option(
        "--manifest",
        default=None,
        help="Unit manifest (YAML or JSON) [default: <source>/units.yaml]",
    )(f)
    f = click.option(
        "--config",
        default=DEFAULT_CONFIG_NAME,
        show_default=True,
        help="Path to config YAML",
    )(f)
    f = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Enable verbose console logging (shows DEBUG level messages)",
    )(f)
    return f


def filter_options(f: Callable[..., None]) -> Callable[..., None]:
    """Decorator that adds the tier/complexity unit filters.

    Args:
        f: The Click command function to decorate.

    Returns:
        The decorated function with filter options attached.
    """
    f = click.option(
        "--tier",
        type=click.IntRange(min=1, max=max(TIER_BY_COMPLEXITY.values())),
        default=None,
        help="Only migrate units of this tier (1-4)",
    )(f)
    f = click.option(
        "--complexity",
        type=click.Choice(list(TIER_BY_COMPLEXITY)),
        default=None,
        help="Only migrate units with this complexity",
    )(f)
    return f


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group(
    cls=DefaultGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=unit_migrator.__version__, prog_name="unit-migrator")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Dependency-aware batch migration of units.

    Args:
        ctx: The Click context (injected by ``@click.pass_context``).
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


def handle_exception(e: BaseException) -> None:
    """Handle different types of exceptions.

    Args:
        e: The exception to handle.
    """
    if isinstance(e, GraphError):
        log_with_context(logging.ERROR, f"Dependency resolution failed: {e}")
        for cycle in e.cycles:
            log_with_context(logging.ERROR, f"  cycle: {' -> '.join(cycle)}")
        log_with_context(
            logging.INFO,
            "Break the circular dependencies in the unit manifest and try again.",
        )
    elif isinstance(e, MigrationAbortedError):
        log_with_context(logging.ERROR, str(e), unit_id=e.unit_id)
        log_with_context(
            logging.INFO,
            "Reports for the partial run were written to the output directory.",
        )
        log_with_context(
            logging.INFO,
            "Use --continue-on-error to keep going past failing units.",
        )
    elif isinstance(e, (ConfigError, ManifestError)):
        log_with_context(logging.ERROR, f"{type(e).__name__}: {e}")
    elif isinstance(e, MigrationError):
        log_with_context(logging.ERROR, str(e))
    elif isinstance(e, FileNotFoundError):
        log_with_context(logging.ERROR, f"File not found: {e}")
        log_with_context(
            logging.INFO,
            "Please check that all required files exist and paths are correct.",
        )
    elif isinstance(e, KeyboardInterrupt):
        log_with_context(logging.WARNING, "Migration interrupted by user.")
    else:
        log_with_context(logging.ERROR, f"Migration failed: {e}", exc_info=True)
