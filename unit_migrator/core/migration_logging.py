"""
Run summary logging for migration runs.

Called by the orchestrator once a run has finished or failed, so the
orchestrator itself stays focused on control flow. Each statistic is passed as
structured kwargs so it shows up as extra fields in JSON log output.
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Any

from unit_migrator.types import BatchResult, MigrationStatus
from unit_migrator.utils.formatting import format_percentage
from unit_migrator.utils.logging import log_with_context

if TYPE_CHECKING:
    from unit_migrator.core.context import MigrationContext
    from unit_migrator.types import SessionSummary


def _collect_statistics(
    result: BatchResult | None, summary: SessionSummary | None
) -> dict[str, Any]:
    """Flatten the engine result and session summary into one dict.

    Args:
        result: Engine result, possibly partial after an abort.
        summary: Tracker summary of the session, when one was opened.

    Returns:
        Dict with keys: attempted, successful, failed, skipped, success_rate,
        errors, warnings, failed_units.
    """
    result = result or BatchResult()
    return {
        "attempted": result.total,
        "successful": result.successful,
        "failed": result.failed,
        "skipped": result.skipped,
        "success_rate": summary["success_rate"] if summary else 0.0,
        "errors": summary["total_errors"] if summary else 0,
        "warnings": summary["total_warnings"] if summary else 0,
        "failed_units": [
            o.name for o in result.outcomes if o.status == MigrationStatus.FAILED
        ],
    }


def log_migration_success(
    ctx: MigrationContext,
    result: BatchResult,
    summary: SessionSummary | None,
    duration: float,
) -> None:
    """Log the final status of a run that was not aborted.

    Args:
        ctx: Context of the run.
        result: Engine result.
        summary: Tracker summary of the session.
        duration: Run duration in seconds.
    """
    stats = _collect_statistics(result, summary)

    # --- Outcome header ---------------------------------------------------
    if ctx.dry_run:
        log_with_context(
            logging.INFO,
            "DRY RUN VALIDATION COMPLETED",
            outcome="dry_run_complete",
            session_id=result.session_id,
        )
    elif stats["attempted"] == 0:
        log_with_context(
            logging.WARNING,
            "NO UNITS WERE MIGRATED",
            outcome="no_work",
            session_id=result.session_id,
        )
    elif stats["failed"]:
        log_with_context(
            logging.WARNING,
            "MIGRATION COMPLETED WITH FAILURES",
            outcome="partial",
            session_id=result.session_id,
        )
    else:
        log_with_context(
            logging.INFO,
            "MIGRATION COMPLETED SUCCESSFULLY",
            outcome="success",
            session_id=result.session_id,
        )

    # --- Statistics --------------------------------------------------------
    log_with_context(
        logging.INFO,
        f"Duration: {duration / 60:.1f} minutes ({duration:.1f} seconds)",
        duration_seconds=duration,
    )
    for stat in ("attempted", "successful", "failed", "skipped"):
        log_with_context(
            logging.INFO,
            f"Units {stat}: {stats[stat]}",
            stat=stat,
            count=stats[stat],
        )
    log_with_context(
        logging.INFO,
        f"Success rate: {format_percentage(stats['success_rate'])}",
        stat="success_rate",
        value=stats["success_rate"],
    )

    # --- Issues -----------------------------------------------------------
    if stats["failed_units"]:
        log_with_context(
            logging.WARNING,
            f"Failed units: {', '.join(stats['failed_units'])}",
            stat="failed_units",
            count=len(stats["failed_units"]),
        )
    if stats["warnings"]:
        log_with_context(
            logging.WARNING,
            f"Warnings recorded: {stats['warnings']}",
            stat="warnings",
            count=stats["warnings"],
        )

    # --- Next steps ---------------------------------------------------------
    if ctx.dry_run:
        log_with_context(
            logging.INFO,
            "Validation complete. Review the plan and run without --dry-run to migrate.",
        )
    elif stats["failed"]:
        log_with_context(
            logging.WARNING,
            f"Check the reports in {ctx.reports_dir} for per-unit errors.",
        )


def log_migration_failure(
    ctx: MigrationContext,
    exception: BaseException,
    duration: float,
    result: BatchResult | None = None,
    summary: SessionSummary | None = None,
) -> None:
    """Log the final status of a run that aborted or crashed.

    Args:
        ctx: Context of the run.
        exception: The exception that ended the run.
        duration: Seconds elapsed before the failure.
        result: Partial engine result, if the engine got that far.
        summary: Tracker summary, if a session was opened.
    """
    is_interrupt = isinstance(exception, KeyboardInterrupt)
    stats = _collect_statistics(result, summary)

    # --- Outcome header ---------------------------------------------------
    if is_interrupt:
        log_with_context(
            logging.WARNING,
            "DRY RUN INTERRUPTED BY USER" if ctx.dry_run else "MIGRATION INTERRUPTED BY USER",
            outcome="interrupted",
            exception_type="KeyboardInterrupt",
        )
    else:
        log_with_context(
            logging.ERROR,
            "DRY RUN FAILED" if ctx.dry_run else "MIGRATION FAILED",
            outcome="failed",
            exception_type=type(exception).__name__,
            exception_message=str(exception),
        )
        log_with_context(
            logging.ERROR,
            f"Exception: {type(exception).__name__}: {exception!s}",
            exception_type=type(exception).__name__,
            duration_seconds=duration,
        )

    # --- Progress before failure --------------------------------------------
    progress_level = logging.WARNING if is_interrupt else logging.ERROR
    log_with_context(
        progress_level,
        f"PROGRESS BEFORE {'INTERRUPTION' if is_interrupt else 'FAILURE'}: "
        f"{stats['successful']} of {stats['attempted']} attempted units completed",
        stat="successful",
        count=stats["successful"],
    )
    if stats["failed_units"]:
        log_with_context(
            progress_level,
            f"Failed units: {', '.join(stats['failed_units'])}",
            stat="failed_units",
            count=len(stats["failed_units"]),
        )

    # --- Traceback (skip for interrupts) ------------------------------------
    if not is_interrupt:
        tb = traceback.format_exc()
        if tb and tb.strip() != "NoneType: None":
            log_with_context(logging.DEBUG, f"Traceback:\n{tb}")
