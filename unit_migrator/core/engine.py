"""
Batch execution engine.

Runs dependency-ordered units through a unit processor with bounded
concurrency. Units are grouped into batches of at most ``concurrency_limit``;
every batch settles completely before the next one starts. Each state change
of a unit goes through the SessionTracker.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator

from tqdm import tqdm

from unit_migrator.constants import DEFAULT_CONCURRENCY, DRY_RUN_NOTE
from unit_migrator.core.resolver import dependency_ids
from unit_migrator.exceptions import (
    ConfigError,
    GraphError,
    MigrationAbortedError,
    TrackerError,
    UnitProcessingError,
)
from unit_migrator.services.processor import as_processor
from unit_migrator.types import (
    BatchResult,
    MigrationStatus,
    MigrationUnit,
    ProcessResult,
    SchedulingStrategy,
    UnitOutcome,
)
from unit_migrator.utils.logging import log_with_context

if TYPE_CHECKING:
    from unit_migrator.core.context import MigrationContext
    from unit_migrator.core.tracker import SessionTracker


@dataclass(frozen=True)
class EngineOptions:
    """Per-run execution settings."""

    concurrency_limit: int = DEFAULT_CONCURRENCY
    continue_on_error: bool = False
    dry_run: bool = False
    scheduling: SchedulingStrategy = SchedulingStrategy.FIXED_BATCH

    def __post_init__(self) -> None:
        if self.concurrency_limit < 1:
            raise ConfigError(
                f"concurrency_limit must be at least 1, got {self.concurrency_limit}"
            )

    @classmethod
    def from_context(cls, ctx: MigrationContext) -> EngineOptions:
        return cls(
            concurrency_limit=ctx.config.concurrency_limit,
            continue_on_error=ctx.config.continue_on_error,
            dry_run=ctx.dry_run,
            scheduling=ctx.config.scheduling,
        )


def fixed_batches(
    units: list[MigrationUnit], limit: int
) -> Iterator[list[MigrationUnit]]:
    """Consecutive chunks of *limit* units in the given order."""
    for i in range(0, len(units), limit):
        yield units[i : i + limit]


def wavefront_batches(
    units: list[MigrationUnit], limit: int
) -> Iterator[list[MigrationUnit]]:
    """Batches of up to *limit* units whose dependencies have all settled.

    Only dependencies on units inside *units* are considered. A batch counts
    as settled once the consumer asks for the next one.

    Raises:
        GraphError: If units remain but none of them can ever become ready.
    """
    known_ids = [u.id for u in units]
    waiting_on = {u.id: set(dependency_ids(u, known_ids)) for u in units}
    settled: set[str] = set()
    pending = list(units)

    while pending:
        ready = [u for u in pending if waiting_on[u.id] <= settled][:limit]
        if not ready:
            blocked = ", ".join(u.id for u in pending)
            raise GraphError(f"No runnable units left, blocked on dependencies: {blocked}")

        ready_ids = {u.id for u in ready}
        pending = [u for u in pending if u.id not in ready_ids]
        yield ready
        settled |= ready_ids


class BatchExecutionEngine:
    """Drives ordered units through a unit processor in barrier-separated batches."""

    def __init__(
        self,
        processor: Any,
        tracker: SessionTracker,
        run_config: Any = None,
        show_progress: bool = False,
    ) -> None:
        """
        Args:
            processor: A UnitProcessor or a plain ``func(unit, run_config)``.
            tracker: Tracker that owns the session the engine writes into.
            run_config: Handed unchanged to every processor call.
            show_progress: Show a tqdm progress bar over units.
        """
        self.processor = as_processor(processor)
        self.tracker = tracker
        self.run_config = run_config
        self.show_progress = show_progress

    async def migrate(
        self,
        ordered_units: list[MigrationUnit],
        options: EngineOptions,
        session_id: str,
    ) -> BatchResult:
        """Process *ordered_units* and return the aggregated result.

        Args:
            ordered_units: Units in dependency order, as produced by the resolver.
            options: Concurrency, error and scheduling settings.
            session_id: Open tracker session receiving the records.

        Returns:
            BatchResult covering every attempted unit.

        Raises:
            MigrationAbortedError: A unit failed and ``continue_on_error`` is off.
                The partial result is attached as ``.result``.
            GraphError: Wavefront scheduling found units that can never run.
        """
        start = time.monotonic()
        result = BatchResult(session_id=session_id)
        prefix = "[DRY RUN] " if options.dry_run else ""

        if options.scheduling == SchedulingStrategy.WAVEFRONT:
            batches = wavefront_batches(ordered_units, options.concurrency_limit)
        else:
            batches = fixed_batches(ordered_units, options.concurrency_limit)

        log_with_context(
            logging.INFO,
            f"{prefix}Migrating {len(ordered_units)} units "
            f"(concurrency {options.concurrency_limit}, {options.scheduling.value})",
            session_id=session_id,
        )

        pbar = tqdm(
            total=len(ordered_units),
            desc="Migrating units",
            unit="unit",
            disable=not self.show_progress,
        )
        try:
            for batch_number, batch in enumerate(batches, start=1):
                log_with_context(
                    logging.DEBUG,
                    f"{prefix}Batch {batch_number}: {', '.join(u.id for u in batch)}",
                    session_id=session_id,
                )
                settled = await asyncio.gather(
                    *(self._run_unit(unit, options, session_id) for unit in batch),
                    return_exceptions=True,
                )
                pbar.update(len(batch))

                first_error: UnitProcessingError | None = None
                for unit, settlement in zip(batch, settled):
                    if isinstance(settlement, BaseException):
                        outcome, error = self._crashed(unit, session_id, settlement)
                    else:
                        outcome, error = settlement
                    result.add(outcome)
                    if error is not None and first_error is None:
                        first_error = error

                if first_error is not None and not options.continue_on_error:
                    result.aborted = True
                    result.duration = time.monotonic() - start
                    failed = next(
                        o for o in result.outcomes if o.unit_id == first_error.unit_id
                    )
                    log_with_context(
                        logging.ERROR,
                        f"Aborting migration after batch {batch_number}: "
                        f"{failed.name} failed",
                        session_id=session_id,
                        unit_id=failed.unit_id,
                    )
                    raise MigrationAbortedError(
                        unit_id=failed.unit_id,
                        unit_name=failed.name,
                        batch_number=batch_number,
                        error=first_error,
                        result=result,
                    ) from first_error
        finally:
            pbar.close()

        result.duration = time.monotonic() - start
        return result

    async def _run_unit(
        self, unit: MigrationUnit, options: EngineOptions, session_id: str
    ) -> tuple[UnitOutcome, UnitProcessingError | None]:
        """Process one unit and record every transition in the tracker."""
        self.tracker.start_migration(session_id, unit)

        if options.dry_run:
            self.tracker.update_metadata(
                session_id, unit.id, {"dry_run": True, "note": DRY_RUN_NOTE}
            )
            self.tracker.update_status(session_id, unit.id, MigrationStatus.COMPLETED)
            return UnitOutcome(unit.id, unit.name, MigrationStatus.COMPLETED), None

        try:
            processed = await self._invoke(unit)
            for warning in processed.warnings:
                self.tracker.record_warning(session_id, unit.id, warning)
            if processed.metadata:
                self.tracker.update_metadata(session_id, unit.id, processed.metadata)
        except Exception as e:
            message = str(e) or type(e).__name__
            error = UnitProcessingError(unit.id, message)
            error.__cause__ = e
            self.tracker.record_error(session_id, unit.id, message)
            return self._fail(unit, session_id, error), error

        if not processed.success:
            messages = processed.errors or ["Unit processor reported failure"]
            for message in messages:
                self.tracker.record_error(session_id, unit.id, message)
            error = UnitProcessingError(unit.id, "; ".join(messages))
            return self._fail(unit, session_id, error), error

        self.tracker.update_status(session_id, unit.id, MigrationStatus.COMPLETED)
        log_with_context(
            logging.INFO,
            f"Migrated {unit.name}",
            session_id=session_id,
            unit_id=unit.id,
        )
        return UnitOutcome(unit.id, unit.name, MigrationStatus.COMPLETED), None

    def _fail(
        self, unit: MigrationUnit, session_id: str, error: UnitProcessingError
    ) -> UnitOutcome:
        self.tracker.update_status(session_id, unit.id, MigrationStatus.FAILED)
        log_with_context(
            logging.ERROR,
            f"Failed to migrate {unit.name}: {error}",
            session_id=session_id,
            unit_id=unit.id,
        )
        return UnitOutcome(unit.id, unit.name, MigrationStatus.FAILED, error=str(error))

    def _crashed(
        self, unit: MigrationUnit, session_id: str, exc: BaseException
    ) -> tuple[UnitOutcome, UnitProcessingError]:
        """Turn an exception that escaped ``_run_unit`` into a unit failure.

        Cancellation and interrupts are re-raised once the batch has settled.
        """
        if not isinstance(exc, Exception):
            raise exc

        message = str(exc) or type(exc).__name__
        error = UnitProcessingError(unit.id, message)
        error.__cause__ = exc
        # A tracker error means the record itself is unusable; leave it alone
        if not isinstance(exc, TrackerError):
            try:
                self.tracker.record_error(session_id, unit.id, message)
                self.tracker.update_status(session_id, unit.id, MigrationStatus.FAILED)
            except TrackerError as tracker_error:
                log_with_context(
                    logging.WARNING,
                    f"Could not mark {unit.name} as failed: {tracker_error}",
                    session_id=session_id,
                    unit_id=unit.id,
                )
        log_with_context(
            logging.ERROR,
            f"Failed to migrate {unit.name}: {error}",
            session_id=session_id,
            unit_id=unit.id,
            exc_info=exc,
        )
        return UnitOutcome(unit.id, unit.name, MigrationStatus.FAILED, error=message), error

    async def _invoke(self, unit: MigrationUnit) -> ProcessResult:
        value = self.processor.process(unit, self.run_config)
        if inspect.isawaitable(value):
            value = await value
        return ProcessResult.coerce(value)
