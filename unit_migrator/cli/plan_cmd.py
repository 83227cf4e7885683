"""CLI command handler for previewing the migration order."""

from __future__ import annotations

import sys
from pathlib import Path

from unit_migrator.cli.common import (
    cli,
    common_options,
    filter_options,
    handle_exception,
)
from unit_migrator.cli.report import print_plan
from unit_migrator.core.config import load_config, should_process_unit
from unit_migrator.core.resolver import DependencyGraphResolver
from unit_migrator.services.discovery import default_manifest_path, load_units
from unit_migrator.utils.logging import setup_logger

# ---------------------------------------------------------------------------
# plan subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
@filter_options
def plan(
    source: Path,
    manifest: str | None,
    config: str,
    verbose: bool,
    tier: int | None,
    complexity: str | None,
) -> None:
    """Show the order units would be migrated in, without running anything.

    Exits 1 when the dependency graph contains cycles.

    Args:
        source: Source directory containing the units.
        manifest: Unit manifest path.
        config: Path to config YAML.
        verbose: Enable verbose console logging.
        tier: Only include units of this tier.
        complexity: Only include units with this complexity.
    """
    setup_logger(verbose)

    try:
        migration_config = load_config(Path(config))
        units = load_units(Path(manifest) if manifest else default_manifest_path(source))
    except Exception as e:
        handle_exception(e)
        sys.exit(1)

    selected = [
        u
        for u in units
        if should_process_unit(u, migration_config, tier=tier, complexity=complexity)
    ]
    resolution = DependencyGraphResolver().resolve(selected)
    print_plan(resolution)
    sys.exit(0 if resolution.success else 1)
