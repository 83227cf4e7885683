"""Immutable migration context.

MigrationContext is a frozen dataclass that holds the directories, mode flags
and loaded configuration for a run. It is created once by the caller and is
handed, read-only, to the unit processor as its run configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from unit_migrator.constants import REPORTS_DIRNAME
from unit_migrator.core.config import MigrationConfig


@dataclass(frozen=True)
class MigrationContext:
    """Immutable context for a migration run. Created once, shared everywhere."""

    # Paths
    source_dir: Path
    output_dir: Path
    baseline_dir: Path | None

    # Mode flags
    dry_run: bool
    verbose: bool

    # Loaded configuration
    config: MigrationConfig

    @property
    def reports_dir(self) -> Path:
        """Directory the report generator writes into."""
        return self.output_dir / REPORTS_DIRNAME

    @property
    def unit_timeout(self) -> float | None:
        """Per-unit timeout the processor is expected to enforce."""
        return self.config.unit_timeout

    @property
    def log_prefix(self) -> str:
        """Mode-aware log prefix, ``"[DRY RUN] "`` or empty."""
        return "[DRY RUN] " if self.dry_run else ""
