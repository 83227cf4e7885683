"""Unit tests for the session tracker."""

import logging
import threading

import pytest

from unit_migrator.core.tracker import (
    MigrationRecord,
    SessionConfig,
    SessionTracker,
    generate_session_id,
)
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
    ValidationResults,
)


def _unit(unit_id, complexity="simple"):
    return MigrationUnit(id=unit_id, name=f"{unit_id}-name", complexity=complexity)


class TestSessionConfig:
    """Tests for SessionConfig validation."""

    def test_defaults(self):
        config = SessionConfig()
        assert config.session_type == "batch"
        assert config.report_formats == (ReportFormat.JSON, ReportFormat.MARKDOWN)

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ConfigError, match="at least 1"):
            SessionConfig(concurrency=0)

    def test_rejects_unknown_session_type(self):
        with pytest.raises(ConfigError, match="Invalid session type"):
            SessionConfig(session_type="nightly")


class TestSessionLifecycle:
    """Tests for starting sessions and looking them up."""

    def test_session_id_format(self):
        session_id = generate_session_id()
        prefix, millis, suffix = session_id.split("-")
        assert prefix == "session"
        assert millis.isdigit()
        assert suffix

    def test_start_session_zeroes_counters(self, tracker, session_config):
        session_id = tracker.start_session(session_config)
        session = tracker.get_session(session_id)
        assert session.id == session_id
        assert session.config is session_config
        assert (session.total, session.completed, session.failed, session.in_progress) == (0, 0, 0, 0)
        assert session.records == {}
        assert tracker.is_active(session_id)

    def test_sessions_are_independent(self, tracker, session_config):
        first = tracker.start_session(session_config)
        second = tracker.start_session(session_config)
        assert first != second
        tracker.start_migration(first, _unit("A"))
        assert tracker.get_session(second).total == 0
        assert tracker.list_sessions() == [first, second]

    def test_unknown_session_raises(self, tracker):
        with pytest.raises(SessionNotFoundError):
            tracker.get_session("session-0-missing")
        with pytest.raises(SessionNotFoundError):
            tracker.start_migration("session-0-missing", _unit("A"))


class TestStartMigration:
    """Tests for start_migration()."""

    def test_creates_in_progress_record(self, tracker, session_id):
        assert tracker.start_migration(session_id, _unit("Form", "complex")) == "Form"

        record = tracker.get_record(session_id, "Form")
        assert isinstance(record, MigrationRecord)
        assert record.unit_name == "Form-name"
        assert record.status == MigrationStatus.IN_PROGRESS
        assert record.end_time is None
        assert record.duration is None
        assert record.metadata == {"complexity": "complex", "tier": 3}

        session = tracker.get_session(session_id)
        assert session.total == 1
        assert session.in_progress == 1

    def test_duplicate_unit_raises(self, tracker, session_id):
        tracker.start_migration(session_id, _unit("A"))
        with pytest.raises(TrackerError, match="already has a record"):
            tracker.start_migration(session_id, _unit("A"))
        assert tracker.get_session(session_id).total == 1


class TestUpdateStatus:
    """Tests for the record state machine."""

    def test_complete_moves_counters_and_stamps_duration(self, tracker, session_id):
        tracker.start_migration(session_id, _unit("A"))
        assert tracker.update_status(session_id, "A", MigrationStatus.COMPLETED) is True

        record = tracker.get_record(session_id, "A")
        assert record.status == MigrationStatus.COMPLETED
        assert record.end_time is not None
        assert record.duration is not None and record.duration >= 0

        session = tracker.get_session(session_id)
        assert (session.in_progress, session.completed, session.failed) == (0, 1, 0)

    def test_fail_moves_counters(self, tracker, session_id):
        tracker.start_migration(session_id, _unit("A"))
        tracker.update_status(session_id, "A", MigrationStatus.FAILED)
        session = tracker.get_session(session_id)
        assert (session.in_progress, session.completed, session.failed) == (0, 0, 1)

    def test_completed_back_to_pending_is_rejected(self, tracker, session_id, caplog):
        caplog.set_level(logging.WARNING, logger="unit_migrator")
        tracker.start_migration(session_id, _unit("A"))
        tracker.update_status(session_id, "A", MigrationStatus.COMPLETED)
        before = tracker.get_session_summary(session_id)

        assert tracker.update_status(session_id, "A", MigrationStatus.PENDING) is False

        after = tracker.get_session_summary(session_id)
        assert tracker.get_record(session_id, "A").status == MigrationStatus.COMPLETED
        for key in ("total_units", "completed_units", "failed_units", "in_progress_units"):
            assert after[key] == before[key]
        assert "Rejected status change completed -> pending" in caplog.text

    @pytest.mark.parametrize(
        "second",
        [MigrationStatus.COMPLETED, MigrationStatus.FAILED, MigrationStatus.IN_PROGRESS],
    )
    def test_terminal_status_is_final(self, tracker, session_id, second):
        tracker.start_migration(session_id, _unit("A"))
        tracker.update_status(session_id, "A", MigrationStatus.FAILED)
        assert tracker.update_status(session_id, "A", second) is False
        session = tracker.get_session(session_id)
        assert (session.completed, session.failed) == (0, 1)

    def test_unknown_record_raises(self, tracker, session_id):
        with pytest.raises(RecordNotFoundError):
            tracker.update_status(session_id, "ghost", MigrationStatus.COMPLETED)


class TestRecordDiagnostics:
    """Tests for errors, warnings, metadata and validation results."""

    def test_errors_and_warnings_are_append_only(self, tracker, session_id):
        tracker.start_migration(session_id, _unit("A"))
        tracker.record_error(session_id, "A", ValueError("first"))
        tracker.record_error(session_id, "A", "second")
        tracker.record_warning(session_id, "A", "careful")

        record = tracker.get_record(session_id, "A")
        assert record.errors == ["first", "second"]
        assert record.warnings == ["careful"]
        assert record.status == MigrationStatus.IN_PROGRESS
        assert tracker.get_session(session_id).failed == 0

    def test_update_metadata_merges(self, tracker, session_id):
        tracker.start_migration(session_id, _unit("A"))
        tracker.update_metadata(session_id, "A", {"bytes": 42})
        assert tracker.get_record(session_id, "A").metadata == {
            "complexity": "simple",
            "tier": 1,
            "bytes": 42,
        }

    def test_failed_validation_fails_open_record(self, tracker, session_id):
        tracker.start_migration(session_id, _unit("A"))
        results = ValidationResults(passed=False, errors=("snapshot mismatch",))
        tracker.set_validation_results(session_id, "A", results)

        record = tracker.get_record(session_id, "A")
        assert record.validation == results
        assert record.status == MigrationStatus.FAILED
        assert record.errors == ["snapshot mismatch"]
        assert tracker.get_session(session_id).failed == 1

    def test_failed_validation_keeps_terminal_status(self, tracker, session_id):
        tracker.start_migration(session_id, _unit("A"))
        tracker.update_status(session_id, "A", MigrationStatus.COMPLETED)
        tracker.set_validation_results(
            session_id, "A", ValidationResults(passed=False, errors=("late",))
        )
        assert tracker.get_record(session_id, "A").status == MigrationStatus.COMPLETED

    def test_passed_validation_copies_warnings(self, tracker, session_id):
        tracker.start_migration(session_id, _unit("A"))
        tracker.set_validation_results(
            session_id, "A", ValidationResults(passed=True, warnings=("minor drift",))
        )
        record = tracker.get_record(session_id, "A")
        assert record.status == MigrationStatus.IN_PROGRESS
        assert record.warnings == ["minor drift"]


class TestSessionSummary:
    """Tests for get_session_summary()."""

    def test_empty_session_has_zero_success_rate(self, tracker, session_id):
        summary = tracker.get_session_summary(session_id)
        assert summary["total_units"] == 0
        assert summary["success_rate"] == 0
        assert summary["average_duration"] == 0
        assert summary["end_time"] is None
        assert summary["duration"] >= 0

    def test_counts_and_rate(self, tracker, session_id):
        for unit_id in ("A", "B", "C", "D"):
            tracker.start_migration(session_id, _unit(unit_id))
        tracker.update_status(session_id, "A", MigrationStatus.COMPLETED)
        tracker.update_status(session_id, "B", MigrationStatus.COMPLETED)
        tracker.update_status(session_id, "C", MigrationStatus.FAILED)
        tracker.record_error(session_id, "C", "broken")
        tracker.record_warning(session_id, "A", "w1")
        tracker.record_warning(session_id, "B", "w2")

        summary = tracker.get_session_summary(session_id)
        assert summary["session_id"] == session_id
        assert summary["total_units"] == 4
        assert summary["completed_units"] == 2
        assert summary["failed_units"] == 1
        assert summary["in_progress_units"] == 1
        assert summary["success_rate"] == 50.0
        assert summary["total_errors"] == 1
        assert summary["total_warnings"] == 2

    def test_average_duration_over_terminal_records_only(self, tracker, session_id):
        tracker.start_migration(session_id, _unit("A"))
        tracker.start_migration(session_id, _unit("B"))
        tracker.update_status(session_id, "A", MigrationStatus.COMPLETED)

        summary = tracker.get_session_summary(session_id)
        assert summary["average_duration"] == tracker.get_record(session_id, "A").duration

    def test_counter_invariant_holds(self, tracker, session_id):
        for unit_id in ("A", "B", "C"):
            tracker.start_migration(session_id, _unit(unit_id))
        tracker.update_status(session_id, "A", MigrationStatus.FAILED)
        session = tracker.get_session(session_id)
        assert session.completed + session.failed + session.in_progress <= session.total


class TestEndSession:
    """Tests for end_session()."""

    @pytest.mark.asyncio
    async def test_end_session_writes_reports_and_keeps_session(
        self, tracker, session_id, tmp_path
    ):
        tracker.start_migration(session_id, _unit("A"))
        tracker.update_status(session_id, "A", MigrationStatus.COMPLETED)

        results = await tracker.end_session(session_id)

        assert [r.report_format for r in results] == [ReportFormat.JSON]
        assert results[0].success
        assert results[0].path == tmp_path / "reports" / f"migration-report-{session_id}.json"
        assert results[0].path.exists()

        assert not tracker.is_active(session_id)
        session = tracker.get_session(session_id)
        assert session.end_time is not None
        assert tracker.get_session_summary(session_id)["completed_units"] == 1

    @pytest.mark.asyncio
    async def test_second_end_session_raises(self, tracker, session_id):
        await tracker.end_session(session_id)
        with pytest.raises(SessionNotFoundError, match="already ended"):
            await tracker.end_session(session_id)

    @pytest.mark.asyncio
    async def test_unknown_session_raises(self, tracker):
        with pytest.raises(SessionNotFoundError):
            await tracker.end_session("session-0-missing")

    @pytest.mark.asyncio
    async def test_ended_session_rejects_mutations(self, tracker, session_id):
        tracker.start_migration(session_id, _unit("A"))
        await tracker.end_session(session_id)
        with pytest.raises(SessionNotFoundError):
            tracker.record_error(session_id, "A", "too late")
        with pytest.raises(SessionNotFoundError):
            tracker.start_migration(session_id, _unit("B"))


class TestThreadSafety:
    """Concurrent mutations from worker threads keep counters consistent."""

    def test_parallel_threads(self, session_config):
        tracker = SessionTracker()
        session_id = tracker.start_session(session_config)

        def worker(offset):
            for i in range(50):
                unit = _unit(f"T{offset}-{i}")
                tracker.start_migration(session_id, unit)
                status = MigrationStatus.COMPLETED if i % 2 else MigrationStatus.FAILED
                tracker.update_status(session_id, unit.id, status)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        session = tracker.get_session(session_id)
        assert session.total == 400
        assert session.completed == 200
        assert session.failed == 200
        assert session.in_progress == 0
