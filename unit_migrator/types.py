"""Shared type definitions for the migration-unit orchestrator.

Provides the unit descriptors handed in by discovery, the enums that drive
scheduling and record status, and the structured results returned at the
resolver, engine and processor boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, TypedDict

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DependencyKind(str, Enum):
    """Relationship between a unit and something it imports."""

    INTERNAL = "internal"
    COMPONENT = "component"
    EXTERNAL = "external"


class MigrationStatus(str, Enum):
    """Lifecycle of a single migration record."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (MigrationStatus.COMPLETED, MigrationStatus.FAILED)


class ReportFormat(str, Enum):
    """Report formats the report generator can render."""

    JSON = "json"
    MARKDOWN = "markdown"
    CSV = "csv"
    HTML = "html"

    @property
    def extension(self) -> str:
        return "md" if self is ReportFormat.MARKDOWN else self.value


class SchedulingStrategy(str, Enum):
    """How the engine groups ordered units into batches."""

    FIXED_BATCH = "fixed-batch"
    WAVEFRONT = "wavefront"


# ---------------------------------------------------------------------------
# Unit descriptors (produced by discovery, immutable once passed in)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UnitDependency:
    """A dependency reference declared by a unit."""

    name: str
    kind: DependencyKind = DependencyKind.COMPONENT
    import_path: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UnitDependency:
        return cls(
            name=str(data["name"]),
            kind=DependencyKind(data.get("kind", DependencyKind.COMPONENT.value)),
            import_path=str(data.get("import_path") or ""),
        )


@dataclass(frozen=True)
class MigrationUnit:
    """One independently trackable item of work."""

    id: str
    name: str
    complexity: str = "simple"
    dependencies: tuple[UnitDependency, ...] = ()
    source_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MigrationUnit:
        """Build a unit from a manifest entry.

        ``name`` defaults to ``id`` and dependencies may be omitted.
        """
        unit_id = str(data["id"])
        return cls(
            id=unit_id,
            name=str(data.get("name") or unit_id),
            complexity=str(data.get("complexity") or "simple"),
            dependencies=tuple(
                UnitDependency.from_dict(dep) for dep in data.get("dependencies") or []
            ),
            source_path=data.get("source_path"),
        )


# ---------------------------------------------------------------------------
# Processor / engine results
# ---------------------------------------------------------------------------


def _as_messages(value: Any) -> list[str]:
    """A single message or a list of messages, as a list of strings."""
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


@dataclass
class ProcessResult:
    """Normalised return value of a unit processor."""

    success: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Any) -> ProcessResult:
        """Accept a ProcessResult, a ``{"success": ..., "errors": [...]}``
        mapping, or a bare bool.

        Raises:
            TypeError: If the value has none of those shapes.
        """
        if isinstance(value, ProcessResult):
            return value
        if isinstance(value, bool):
            return cls(success=value)
        if isinstance(value, Mapping):
            if "success" not in value:
                raise TypeError("Processor result mapping has no 'success' key")
            if not isinstance(value["success"], bool):
                raise TypeError(
                    "Processor result 'success' must be a bool, "
                    f"got {type(value['success']).__name__}"
                )
            return cls(
                success=value["success"],
                errors=_as_messages(value.get("errors")),
                warnings=_as_messages(value.get("warnings")),
                metadata=dict(value.get("metadata") or {}),
            )
        raise TypeError(
            f"Unsupported processor result type: {type(value).__name__}"
        )


@dataclass
class UnitOutcome:
    """Final status of one attempted unit within a run."""

    unit_id: str
    name: str
    status: MigrationStatus
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.unit_id,
            "name": self.name,
            "status": self.status.value,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class BatchResult:
    """Aggregate result of one engine run."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: list[UnitOutcome] = field(default_factory=list)
    duration: float = 0.0
    aborted: bool = False
    session_id: Optional[str] = None

    @property
    def success(self) -> bool:
        """True when every attempted unit completed and nothing aborted."""
        return self.failed == 0 and not self.aborted

    def add(self, outcome: UnitOutcome) -> None:
        self.outcomes.append(outcome)
        self.total += 1
        if outcome.status == MigrationStatus.COMPLETED:
            self.successful += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "aborted": self.aborted,
            "duration": round(self.duration, 3),
            "units": [o.to_dict() for o in self.outcomes],
        }


@dataclass(frozen=True)
class ValidationResults:
    """Outcome of validating a migrated unit."""

    passed: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Tracker summary
# ---------------------------------------------------------------------------


class SessionSummary(TypedDict):
    """Aggregate statistics for one session."""

    session_id: str
    start_time: datetime
    end_time: Optional[datetime]
    duration: float
    total_units: int
    completed_units: int
    failed_units: int
    in_progress_units: int
    success_rate: float
    average_duration: float
    total_errors: int
    total_warnings: int
