"""Custom exception hierarchy for the migration-unit orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from unit_migrator.types import BatchResult


class MigrationError(Exception):
    """Base exception for all migration-related errors."""


class ConfigError(MigrationError):
    """Raised when configuration is invalid or missing."""


class ManifestError(MigrationError):
    """Raised when the unit manifest is missing, unreadable, or malformed."""


class GraphError(MigrationError):
    """Raised when the dependency graph contains circular dependencies."""

    def __init__(self, message: str, cycles: list[list[str]] | None = None) -> None:
        super().__init__(message)
        self.cycles = cycles or []


class UnitProcessingError(MigrationError):
    """A single unit failed inside the unit processor."""

    def __init__(self, unit_id: str, message: str) -> None:
        super().__init__(message)
        self.unit_id = unit_id


class MigrationAbortedError(MigrationError):
    """Raised when a unit fails and the run is not allowed to continue on error.

    Carries the partial :class:`~unit_migrator.types.BatchResult` covering
    every batch that was started before the abort.
    """

    def __init__(
        self,
        unit_id: str,
        unit_name: str,
        batch_number: int,
        error: Any,
        result: BatchResult | None = None,
    ) -> None:
        super().__init__(
            f"Migration aborted in batch {batch_number}: "
            f"unit '{unit_name}' ({unit_id}) failed: {error}"
        )
        self.unit_id = unit_id
        self.unit_name = unit_name
        self.batch_number = batch_number
        self.result = result


class ReportGenerationError(MigrationError):
    """Raised when rendering or writing a single report format fails."""

    def __init__(self, report_format: str, message: str) -> None:
        super().__init__(message)
        self.report_format = report_format


class TrackerError(MigrationError):
    """Raised when the session tracker is used inconsistently."""


class SessionNotFoundError(TrackerError):
    """Raised when a session id is unknown or the session has already ended."""


class RecordNotFoundError(TrackerError):
    """Raised when a unit has no migration record in the session."""
