"""CLI command handler for the migrate workflow."""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any

import click

from unit_migrator.cli.common import (
    cli,
    common_options,
    filter_options,
    handle_exception,
)
from unit_migrator.cli.report import print_run_summary
from unit_migrator.core.config import load_config, parse_report_formats
from unit_migrator.core.context import MigrationContext
from unit_migrator.core.orchestrator import BatchMigrationOrchestrator
from unit_migrator.exceptions import ConfigError, MigrationAbortedError
from unit_migrator.services.discovery import default_manifest_path, load_units
from unit_migrator.services.processor import (
    DryRunProcessor,
    UnitProcessor,
    load_processor,
)
from unit_migrator.types import ReportFormat, SchedulingStrategy
from unit_migrator.utils.logging import log_with_context, setup_logger

# ---------------------------------------------------------------------------
# migrate subcommand
# ---------------------------------------------------------------------------


@cli.command()
@common_options
@filter_options
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory for migrated units, reports and logs",
)
@click.option(
    "--baseline",
    "-b",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Baseline directory handed to the unit processor",
)
@click.option(
    "--parallelism",
    "-p",
    type=click.IntRange(min=1),
    default=None,
    help="Units processed concurrently per batch [default: from config, 4]",
)
@click.option(
    "--continue-on-error",
    is_flag=True,
    default=False,
    help="Keep going when a unit fails instead of aborting the run",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Walk the plan and record every unit without invoking the processor",
)
@click.option(
    "--report-format",
    "report_formats",
    multiple=True,
    type=click.Choice([f.value for f in ReportFormat]),
    help="Report format to write; repeat for several [default: from config]",
)
@click.option(
    "--scheduling",
    type=click.Choice([s.value for s in SchedulingStrategy]),
    default=None,
    help="Batch scheduling strategy [default: from config, fixed-batch]",
)
@click.option(
    "--processor",
    default=None,
    help="Unit processor as 'package.module:attribute' [default: from config]",
)
@click.option(
    "--json-logs",
    is_flag=True,
    default=False,
    help="Write the run log file as JSON lines",
)
def migrate(
    source: Path,
    manifest: str | None,
    config: str,
    verbose: bool,
    tier: int | None,
    complexity: str | None,
    output: Path,
    baseline: Path | None,
    parallelism: int | None,
    continue_on_error: bool,
    dry_run: bool,
    report_formats: tuple[str, ...],
    scheduling: str | None,
    processor: str | None,
    json_logs: bool,
) -> None:
    """Migrate units in dependency order.

    Exits 0 when every attempted unit completed, 1 otherwise.

    Args:
        source: Source directory containing the units.
        manifest: Unit manifest path.
        config: Path to config YAML.
        verbose: Enable verbose console logging.
        tier: Only migrate units of this tier.
        complexity: Only migrate units with this complexity.
        output: Output directory.
        baseline: Optional baseline directory.
        parallelism: Override for the configured concurrency limit.
        continue_on_error: Do not abort on the first failing unit.
        dry_run: Do not invoke the unit processor.
        report_formats: Override for the configured report formats.
        scheduling: Override for the configured scheduling strategy.
        processor: Override for the configured unit processor.
        json_logs: Write the run log as JSON lines.
    """
    output.mkdir(parents=True, exist_ok=True)
    setup_logger(verbose, str(output), json_format=json_logs)

    orchestrator: BatchMigrationOrchestrator | None = None
    try:
        ctx = build_context(
            source=source,
            output=output,
            baseline=baseline,
            config_path=Path(config),
            dry_run=dry_run,
            verbose=verbose,
            overrides={
                "concurrency_limit": parallelism,
                "continue_on_error": continue_on_error or None,
                "report_formats": report_formats or None,
                "scheduling": scheduling,
                "processor": processor,
            },
        )
        log_startup_info(ctx)

        units = load_units(Path(manifest) if manifest else default_manifest_path(source))
        orchestrator = BatchMigrationOrchestrator(
            ctx, resolve_processor(ctx), show_progress=not verbose
        )
        result = orchestrator.run(units, tier=tier, complexity=complexity)
    except MigrationAbortedError as e:
        handle_exception(e)
        if e.result is not None:
            print_run_summary(
                e.result,
                orchestrator.report_results if orchestrator else [],
                dry_run=dry_run,
            )
        sys.exit(1)
    except Exception as e:
        handle_exception(e)
        sys.exit(1)

    print_run_summary(result, orchestrator.report_results, dry_run=dry_run)
    sys.exit(0 if result.success else 1)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def build_context(
    source: Path,
    output: Path,
    baseline: Path | None,
    config_path: Path,
    dry_run: bool,
    verbose: bool,
    overrides: dict[str, Any],
) -> MigrationContext:
    """Load the config file, apply command-line overrides and build the context.

    Overrides whose value is ``None`` leave the configured value in place.

    Raises:
        ConfigError: If the config file or an override is invalid.
    """
    config = load_config(config_path)

    changes = {key: value for key, value in overrides.items() if value is not None}
    if "report_formats" in changes:
        changes["report_formats"] = parse_report_formats(changes["report_formats"])
    if "scheduling" in changes:
        changes["scheduling"] = SchedulingStrategy(changes["scheduling"])
    if changes:
        config = dataclasses.replace(config, **changes)

    return MigrationContext(
        source_dir=source,
        output_dir=output,
        baseline_dir=baseline,
        dry_run=dry_run,
        verbose=verbose,
        config=config,
    )


def resolve_processor(ctx: MigrationContext) -> UnitProcessor:
    """Load the configured unit processor.

    Dry runs without a configured processor get a stand-in that is never
    asked to do real work.

    Raises:
        ConfigError: If no processor is configured for a real run or the
            configured one cannot be loaded.
    """
    if ctx.config.processor:
        return load_processor(ctx.config.processor)
    if ctx.dry_run:
        return DryRunProcessor()
    raise ConfigError(
        "No unit processor configured. Set 'processor' in the config file "
        "or pass --processor package.module:attribute."
    )


def log_startup_info(ctx: MigrationContext) -> None:
    """Log startup information.

    Args:
        ctx: Context of the run about to start.
    """
    config = ctx.config
    log_with_context(logging.INFO, "Starting migration with the following parameters:")
    log_with_context(logging.INFO, f"- Source: {ctx.source_dir}")
    log_with_context(logging.INFO, f"- Output: {ctx.output_dir}")
    log_with_context(logging.INFO, f"- Baseline: {ctx.baseline_dir or '-'}")
    log_with_context(logging.INFO, f"- Dry run: {ctx.dry_run}")
    log_with_context(logging.INFO, f"- Concurrency: {config.concurrency_limit}")
    log_with_context(logging.INFO, f"- Continue on error: {config.continue_on_error}")
    log_with_context(logging.INFO, f"- Scheduling: {config.scheduling.value}")
    log_with_context(
        logging.INFO,
        f"- Report formats: {', '.join(f.value for f in config.report_formats)}",
    )
    log_with_context(logging.INFO, f"- Processor: {config.processor or '-'}")
