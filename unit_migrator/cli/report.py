"""
Console summaries for finished runs and dependency plans
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from unit_migrator.core.config import determine_tier
from unit_migrator.types import BatchResult, MigrationStatus
from unit_migrator.utils.formatting import format_duration

if TYPE_CHECKING:
    from unit_migrator.core.report import ReportResult
    from unit_migrator.core.resolver import ResolutionResult


def print_run_summary(
    result: BatchResult,
    report_results: list[ReportResult],
    dry_run: bool = False,
) -> None:
    """Print a summary of a (possibly aborted) run to the console."""
    title = "DRY RUN SUMMARY" if dry_run else "MIGRATION SUMMARY"
    click.echo("\n" + "=" * 80)
    click.echo(title)
    click.echo("=" * 80)
    if result.session_id:
        click.echo(f"Session: {result.session_id}")
    click.echo(f"Units attempted: {result.total}")
    click.echo(f"Successful: {result.successful}")
    click.echo(f"Failed: {result.failed}")
    click.echo(f"Skipped: {result.skipped}")
    click.echo(f"Duration: {format_duration(result.duration)}")
    if result.aborted:
        click.echo("\nRun was ABORTED after the first failing batch")

    failed = [o for o in result.outcomes if o.status == MigrationStatus.FAILED]
    if failed:
        click.echo("\nFailed units:")
        for outcome in failed:
            click.echo(f"  - {outcome.name} ({outcome.unit_id}): {outcome.error}")

    if report_results:
        click.echo("\nReports:")
        for report in report_results:
            if report.success:
                click.echo(f"  {report.report_format.value}: {report.path}")
            else:
                click.echo(f"  {report.report_format.value}: FAILED ({report.error})")

    if dry_run:
        click.echo("\nTo perform the actual migration, run again without --dry-run")
    click.echo("=" * 80)


def print_plan(resolution: ResolutionResult) -> None:
    """Print the resolved processing order, or the cycles preventing one."""
    if not resolution.success:
        click.echo(resolution.errors[0] if resolution.errors else "Resolution failed")
        for cycle in resolution.cycles:
            click.echo(f"  cycle: {' -> '.join(cycle)}")
        return

    click.echo(f"Migration order ({len(resolution.ordered_units)} units):")
    for position, unit in enumerate(resolution.ordered_units, start=1):
        click.echo(
            f"{position:4d}. {unit.id} [{unit.complexity}, tier {determine_tier(unit.complexity)}]"
        )
