"""
Session tracking for migration runs.

The SessionTracker owns every session and the per-unit migration records
inside it. Callers hold an explicit session id returned by
:meth:`SessionTracker.start_session` and pass it to every later call; there is
no implicit "current" session.

Record status only moves forward::

    pending -> in-progress -> completed | failed

Out-of-order transitions are logged and rejected without touching the
session counters.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from unit_migrator.core.config import determine_tier
from unit_migrator.core.report import ReportGenerator, ReportResult
from unit_migrator.exceptions import (
    ConfigError,
    RecordNotFoundError,
    SessionNotFoundError,
    TrackerError,
)
from unit_migrator.types import (
    MigrationStatus,
    MigrationUnit,
    ReportFormat,
    SessionSummary,
    ValidationResults,
)
from unit_migrator.utils.logging import log_with_context

SESSION_TYPES = ("single", "batch", "tier", "full")

_ALLOWED_TRANSITIONS: dict[MigrationStatus, frozenset[MigrationStatus]] = {
    MigrationStatus.PENDING: frozenset({MigrationStatus.IN_PROGRESS}),
    MigrationStatus.IN_PROGRESS: frozenset(
        {MigrationStatus.COMPLETED, MigrationStatus.FAILED}
    ),
    MigrationStatus.COMPLETED: frozenset(),
    MigrationStatus.FAILED: frozenset(),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def generate_session_id() -> str:
    """``session-<epoch ms>-<random>``, unique per process."""
    return f"session-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


# ---------------------------------------------------------------------------
# Session data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionConfig:
    """Immutable settings a session was opened with."""

    session_type: str = "batch"
    concurrency: int = 1
    continue_on_error: bool = False
    output_directory: Path = Path(".")
    report_formats: tuple[ReportFormat, ...] = (
        ReportFormat.JSON,
        ReportFormat.MARKDOWN,
    )

    def __post_init__(self) -> None:
        if self.session_type not in SESSION_TYPES:
            raise ConfigError(
                f"Invalid session type '{self.session_type}'. "
                f"Must be one of: {', '.join(SESSION_TYPES)}"
            )
        if self.concurrency < 1:
            raise ConfigError(
                f"Session concurrency must be at least 1, got {self.concurrency}"
            )


@dataclass
class MigrationRecord:
    """Status and diagnostics of one unit within a session."""

    unit_id: str
    unit_name: str
    status: MigrationStatus
    start_time: datetime
    end_time: datetime | None = None
    # Seconds; set only once the record is terminal
    duration: float | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    validation: ValidationResults | None = None


@dataclass
class Session:
    """One migration session and its records, keyed by unit id."""

    id: str
    config: SessionConfig
    start_time: datetime
    end_time: datetime | None = None
    total: int = 0
    completed: int = 0
    failed: int = 0
    in_progress: int = 0
    records: dict[str, MigrationRecord] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.end_time is None


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------


class SessionTracker:
    """Registry of migration sessions and their per-unit records.

    All mutations are serialised through a re-entrant lock, so records may
    also be updated from worker threads started by a unit processor.
    """

    def __init__(self, report_generator: ReportGenerator | None = None) -> None:
        self.report_generator = report_generator or ReportGenerator()
        self._sessions: dict[str, Session] = {}
        self._lock = threading.RLock()

    # -- lookup ------------------------------------------------------------

    def _get_session(self, session_id: str, active: bool = False) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session '{session_id}' not found")
        if active and not session.is_active:
            raise SessionNotFoundError(f"Session '{session_id}' has already ended")
        return session

    def _get_record(
        self, session_id: str, unit_id: str, active: bool = True
    ) -> tuple[Session, MigrationRecord]:
        session = self._get_session(session_id, active=active)
        record = session.records.get(unit_id)
        if record is None:
            raise RecordNotFoundError(
                f"No migration record for unit '{unit_id}' in session '{session_id}'"
            )
        return session, record

    def get_session(self, session_id: str) -> Session:
        with self._lock:
            return self._get_session(session_id)

    def get_record(self, session_id: str, unit_id: str) -> MigrationRecord:
        with self._lock:
            return self._get_record(session_id, unit_id, active=False)[1]

    def list_sessions(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def is_active(self, session_id: str) -> bool:
        with self._lock:
            return self._get_session(session_id).is_active

    # -- lifecycle ---------------------------------------------------------

    def start_session(self, config: SessionConfig) -> str:
        """Open a new session with zeroed counters and return its id."""
        with self._lock:
            session_id = generate_session_id()
            while session_id in self._sessions:
                session_id = generate_session_id()
            self._sessions[session_id] = Session(
                id=session_id, config=config, start_time=_now()
            )

        log_with_context(
            logging.INFO,
            f"Started {config.session_type} migration session {session_id}",
            session_id=session_id,
        )
        return session_id

    def start_migration(self, session_id: str, unit: MigrationUnit) -> str:
        """Open an in-progress record for *unit* and return its id.

        Raises:
            SessionNotFoundError: If the session is unknown or has ended.
            TrackerError: If the unit already has a record in this session.
        """
        with self._lock:
            session = self._get_session(session_id, active=True)
            if unit.id in session.records:
                raise TrackerError(
                    f"Unit '{unit.id}' already has a record in session '{session_id}'"
                )
            session.records[unit.id] = MigrationRecord(
                unit_id=unit.id,
                unit_name=unit.name,
                status=MigrationStatus.IN_PROGRESS,
                start_time=_now(),
                metadata={
                    "complexity": unit.complexity,
                    "tier": determine_tier(unit.complexity),
                },
            )
            session.total += 1
            session.in_progress += 1

        log_with_context(
            logging.DEBUG,
            f"Started migration of {unit.name}",
            session_id=session_id,
            unit_id=unit.id,
        )
        return unit.id

    def update_status(
        self, session_id: str, unit_id: str, status: MigrationStatus
    ) -> bool:
        """Move a record to *status*.

        Returns:
            True if the transition was applied, False if it was rejected
            because it would move the record backwards or sideways.
        """
        with self._lock:
            session, record = self._get_record(session_id, unit_id)
            old_status = record.status
            if status not in _ALLOWED_TRANSITIONS[old_status]:
                log_with_context(
                    logging.WARNING,
                    f"Rejected status change {old_status.value} -> {status.value} "
                    f"for unit {unit_id}",
                    session_id=session_id,
                    unit_id=unit_id,
                )
                return False

            if old_status == MigrationStatus.IN_PROGRESS:
                session.in_progress -= 1
            if status == MigrationStatus.IN_PROGRESS:
                session.in_progress += 1
            elif status == MigrationStatus.COMPLETED:
                session.completed += 1
            elif status == MigrationStatus.FAILED:
                session.failed += 1

            record.status = status
            if status.is_terminal:
                record.end_time = _now()
                record.duration = (record.end_time - record.start_time).total_seconds()

        return True

    def record_error(self, session_id: str, unit_id: str, error: Any) -> None:
        with self._lock:
            _, record = self._get_record(session_id, unit_id)
            record.errors.append(str(error))

    def record_warning(self, session_id: str, unit_id: str, warning: str) -> None:
        with self._lock:
            _, record = self._get_record(session_id, unit_id)
            record.warnings.append(str(warning))

    def update_metadata(
        self, session_id: str, unit_id: str, metadata: dict[str, Any]
    ) -> None:
        """Merge *metadata* into the record's metadata."""
        with self._lock:
            _, record = self._get_record(session_id, unit_id)
            record.metadata.update(metadata)

    def set_validation_results(
        self, session_id: str, unit_id: str, results: ValidationResults
    ) -> None:
        """Attach validation results; a failed validation fails an open record."""
        with self._lock:
            _, record = self._get_record(session_id, unit_id)
            record.validation = results
            record.warnings.extend(results.warnings)
            if not results.passed:
                record.errors.extend(results.errors)
                if not record.status.is_terminal:
                    self.update_status(session_id, unit_id, MigrationStatus.FAILED)

    # -- summary -----------------------------------------------------------

    def get_session_summary(self, session_id: str) -> SessionSummary:
        """Aggregate statistics for a session, open or ended."""
        with self._lock:
            return self._summarize(self._get_session(session_id))

    def _summarize(self, session: Session) -> SessionSummary:
        end = session.end_time or _now()
        durations = [
            r.duration
            for r in session.records.values()
            if r.status.is_terminal and r.duration is not None
        ]
        return SessionSummary(
            session_id=session.id,
            start_time=session.start_time,
            end_time=session.end_time,
            duration=(end - session.start_time).total_seconds(),
            total_units=session.total,
            completed_units=session.completed,
            failed_units=session.failed,
            in_progress_units=session.in_progress,
            success_rate=(
                session.completed / session.total * 100 if session.total else 0.0
            ),
            average_duration=sum(durations) / len(durations) if durations else 0.0,
            total_errors=sum(len(r.errors) for r in session.records.values()),
            total_warnings=sum(len(r.warnings) for r in session.records.values()),
        )

    async def end_session(self, session_id: str) -> list[ReportResult]:
        """Close the session and render its reports.

        The session stays queryable afterwards but accepts no further
        mutations.

        Raises:
            SessionNotFoundError: If the session is unknown or already ended.
        """
        with self._lock:
            session = self._get_session(session_id, active=True)
            session.end_time = _now()
            summary = self._summarize(session)

        log_with_context(
            logging.INFO,
            f"Ended migration session {session_id}: "
            f"{summary['completed_units']}/{summary['total_units']} completed",
            session_id=session_id,
        )
        return await self.report_generator.generate_reports(session, summary)
