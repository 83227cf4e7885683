"""
Top-level control flow of a migration run.

The orchestrator filters the supplied units, resolves their dependency order,
opens a tracker session, lets the batch engine process the units, closes the
session (which renders the reports) and logs the run summary.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from unit_migrator.core.config import should_process_unit
from unit_migrator.core.context import MigrationContext
from unit_migrator.core.engine import BatchExecutionEngine, EngineOptions
from unit_migrator.core.migration_logging import (
    log_migration_failure,
    log_migration_success,
)
from unit_migrator.core.report import ReportResult
from unit_migrator.core.resolver import DependencyGraphResolver, ResolutionResult
from unit_migrator.core.tracker import SessionConfig, SessionTracker
from unit_migrator.exceptions import GraphError
from unit_migrator.types import BatchResult, MigrationUnit, SessionSummary
from unit_migrator.utils.logging import log_with_context


class BatchMigrationOrchestrator:
    """Runs a full migration of a set of units."""

    def __init__(
        self,
        ctx: MigrationContext,
        processor: Any,
        tracker: SessionTracker | None = None,
        resolver: DependencyGraphResolver | None = None,
        show_progress: bool = False,
    ) -> None:
        """
        Args:
            ctx: Immutable run context; also handed to the processor.
            processor: UnitProcessor or plain ``func(unit, run_config)``.
            tracker: Tracker to record into; a fresh one by default.
            resolver: Dependency resolver; a fresh one by default.
            show_progress: Show a progress bar while units run.
        """
        self.ctx = ctx
        self.tracker = tracker or SessionTracker()
        self.resolver = resolver or DependencyGraphResolver()
        self.engine = BatchExecutionEngine(
            processor, self.tracker, run_config=ctx, show_progress=show_progress
        )
        self.session_id: str | None = None
        self.report_results: list[ReportResult] = []

    def select_units(
        self,
        units: list[MigrationUnit],
        tier: int | None = None,
        complexity: str | None = None,
    ) -> list[MigrationUnit]:
        """Units that pass the configured and requested filters, in input order."""
        selected = [
            u
            for u in units
            if should_process_unit(u, self.ctx.config, tier=tier, complexity=complexity)
        ]
        if len(selected) != len(units):
            log_with_context(
                logging.INFO,
                f"{self.ctx.log_prefix}Selected {len(selected)} of {len(units)} units",
            )
        return selected

    def plan(
        self,
        units: list[MigrationUnit],
        tier: int | None = None,
        complexity: str | None = None,
    ) -> ResolutionResult:
        """Resolve the processing order without running anything."""
        return self.resolver.resolve(self.select_units(units, tier, complexity))

    def _session_type(
        self, total: int, selected: int, tier: int | None, complexity: str | None
    ) -> str:
        if tier is not None:
            return "tier"
        if selected == 1:
            return "single"
        if selected == total and complexity is None:
            return "full"
        return "batch"

    async def migrate(
        self,
        units: list[MigrationUnit],
        tier: int | None = None,
        complexity: str | None = None,
    ) -> BatchResult:
        """Run the migration for *units*.

        Args:
            units: Unit descriptors in discovery order.
            tier: Only migrate units of this tier.
            complexity: Only migrate units with this complexity tag.

        Returns:
            The engine's BatchResult; ``skipped`` counts filtered-out units.

        Raises:
            GraphError: The dependency graph has cycles. Nothing was run.
            MigrationAbortedError: A unit failed without continue-on-error.
                The session has been closed and its reports written.

            Any other error raised while units run also closes the session
            before it propagates.
        """
        start = time.monotonic()
        log_with_context(
            logging.INFO,
            f"{self.ctx.log_prefix}Starting migration of {len(units)} units "
            f"from {self.ctx.source_dir}",
        )

        selected = self.select_units(units, tier, complexity)
        resolution = self.resolver.resolve(selected)
        try:
            resolution.raise_for_cycles()
        except GraphError as e:
            log_migration_failure(self.ctx, e, time.monotonic() - start)
            raise

        config = self.ctx.config
        self.session_id = self.tracker.start_session(
            SessionConfig(
                session_type=self._session_type(
                    len(units), len(selected), tier, complexity
                ),
                concurrency=config.concurrency_limit,
                continue_on_error=config.continue_on_error,
                output_directory=self.ctx.output_dir,
                report_formats=tuple(config.report_formats),
            )
        )
        skipped = len(units) - len(selected)

        try:
            result = await self.engine.migrate(
                resolution.ordered_units,
                EngineOptions.from_context(self.ctx),
                self.session_id,
            )
        except Exception as e:
            # Reports are written for every run that opened a session
            partial = getattr(e, "result", None)
            if partial is not None:
                partial.skipped = skipped
            summary = await self._close_session()
            log_migration_failure(
                self.ctx, e, time.monotonic() - start, result=partial, summary=summary
            )
            raise

        result.skipped = skipped
        summary = await self._close_session()
        log_migration_success(self.ctx, result, summary, time.monotonic() - start)
        return result

    async def _close_session(self) -> SessionSummary:
        assert self.session_id is not None
        self.report_results = await self.tracker.end_session(self.session_id)
        return self.tracker.get_session_summary(self.session_id)

    def run(
        self,
        units: list[MigrationUnit],
        tier: int | None = None,
        complexity: str | None = None,
    ) -> BatchResult:
        """Synchronous entry point around :meth:`migrate`."""
        return asyncio.run(self.migrate(units, tier=tier, complexity=complexity))
