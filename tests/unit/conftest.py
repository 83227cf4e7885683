"""Unit test configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from unit_migrator.core.config import MigrationConfig
from unit_migrator.core.context import MigrationContext
from unit_migrator.core.tracker import SessionConfig, SessionTracker
from unit_migrator.types import MigrationUnit, ProcessResult, ReportFormat

# ---------------------------------------------------------------------------
# Test processors
# ---------------------------------------------------------------------------


class RecordingProcessor:
    """Async processor that records calls and fails the configured unit ids.

    Failing units either raise or return ``success=False`` depending on
    ``raise_on_failure``.
    """

    def __init__(
        self,
        fail_ids: set[str] | None = None,
        raise_on_failure: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.fail_ids = fail_ids or set()
        self.raise_on_failure = raise_on_failure
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.run_configs: list[Any] = []

    async def process(self, unit: MigrationUnit, run_config: Any) -> ProcessResult:
        self.calls.append(unit.id)
        self.run_configs.append(run_config)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        if unit.id in self.fail_ids:
            if self.raise_on_failure:
                raise RuntimeError(f"boom in {unit.id}")
            return ProcessResult(success=False, errors=[f"{unit.id} could not be migrated"])
        return ProcessResult(success=True)


@pytest.fixture()
def recording_processor():
    """Factory for RecordingProcessor instances."""
    return RecordingProcessor


# ---------------------------------------------------------------------------
# Tracker / context fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def session_config(tmp_path: Path) -> SessionConfig:
    """Session config writing reports below tmp_path."""
    return SessionConfig(
        session_type="batch",
        concurrency=2,
        continue_on_error=True,
        output_directory=tmp_path,
        report_formats=(ReportFormat.JSON,),
    )


@pytest.fixture()
def tracker() -> SessionTracker:
    """A fresh tracker."""
    return SessionTracker()


@pytest.fixture()
def session_id(tracker: SessionTracker, session_config: SessionConfig) -> str:
    """An open session on the tracker fixture."""
    return tracker.start_session(session_config)


@pytest.fixture()
def make_context(tmp_path: Path):
    """Factory fixture for MigrationContext with overridable config values.

    Usage in tests::

        def test_something(make_context):
            ctx = make_context(dry_run=True, concurrency_limit=2)
    """

    def _make(dry_run: bool = False, verbose: bool = False, **config_values: Any):
        source = tmp_path / "src"
        source.mkdir(exist_ok=True)
        return MigrationContext(
            source_dir=source,
            output_dir=tmp_path / "out",
            baseline_dir=None,
            dry_run=dry_run,
            verbose=verbose,
            config=MigrationConfig(**config_values),
        )

    return _make
