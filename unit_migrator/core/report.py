"""
Report generation for finished migration sessions.

Each configured format is rendered and written on its own: one format failing
is logged and returned as a failed :class:`ReportResult`, it never stops the
remaining formats or the session close.
"""

from __future__ import annotations

import asyncio
import csv
import html
import io
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from unit_migrator.constants import (
    BULKY_METADATA_KEYS,
    REPORT_FILE_PREFIX,
    REPORTS_DIRNAME,
)
from unit_migrator.exceptions import ReportGenerationError
from unit_migrator.types import MigrationStatus, ReportFormat, SessionSummary
from unit_migrator.utils.formatting import (
    format_duration,
    format_percentage,
    format_timestamp,
    markdown_cell,
)
from unit_migrator.utils.logging import log_with_context

if TYPE_CHECKING:
    from unit_migrator.core.tracker import MigrationRecord, Session


@dataclass
class ReportResult:
    """Outcome of rendering one report format."""

    report_format: ReportFormat
    path: Path | None = None
    error: ReportGenerationError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------


def record_to_dict(record: MigrationRecord) -> dict[str, Any]:
    """Serialise a record, leaving out raw source/target payloads."""
    data: dict[str, Any] = {
        "unit_id": record.unit_id,
        "unit_name": record.unit_name,
        "status": record.status.value,
        "start_time": format_timestamp(record.start_time),
        "end_time": format_timestamp(record.end_time, default=None),
        "duration": record.duration,
        "errors": list(record.errors),
        "warnings": list(record.warnings),
        "metadata": {
            key: value
            for key, value in record.metadata.items()
            if key not in BULKY_METADATA_KEYS
        },
    }
    if record.validation is not None:
        data["validation"] = {
            "passed": record.validation.passed,
            "errors": list(record.validation.errors),
            "warnings": list(record.validation.warnings),
        }
    return data


def session_to_dict(session: Session, summary: SessionSummary) -> dict[str, Any]:
    """Structured form of a whole session, as written to the JSON report."""
    config = session.config
    return {
        "session": {
            "id": session.id,
            "start_time": format_timestamp(session.start_time),
            "end_time": format_timestamp(session.end_time, default=None),
            "config": {
                "session_type": config.session_type,
                "concurrency": config.concurrency,
                "continue_on_error": config.continue_on_error,
                "output_directory": str(config.output_directory),
                "report_formats": [f.value for f in config.report_formats],
            },
        },
        "summary": {
            **summary,
            "start_time": format_timestamp(summary["start_time"]),
            "end_time": format_timestamp(summary["end_time"], default=None),
        },
        "records": [record_to_dict(r) for r in session.records.values()],
    }


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def render_json(session: Session, summary: SessionSummary) -> str:
    return json.dumps(session_to_dict(session, summary), indent=2, default=str) + "\n"


def render_markdown(session: Session, summary: SessionSummary) -> str:
    lines = [
        "# Migration Report",
        "",
        f"**Session ID:** {session.id}",
        f"**Start Time:** {format_timestamp(session.start_time)}",
        f"**End Time:** {format_timestamp(session.end_time)}",
        f"**Duration:** {format_duration(summary['duration'])}",
        "",
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total Units | {summary['total_units']} |",
        f"| Completed | {summary['completed_units']} |",
        f"| Failed | {summary['failed_units']} |",
        f"| In Progress | {summary['in_progress_units']} |",
        f"| Success Rate | {format_percentage(summary['success_rate'])} |",
        f"| Average Duration | {format_duration(summary['average_duration'])} |",
        f"| Errors | {summary['total_errors']} |",
        f"| Warnings | {summary['total_warnings']} |",
        "",
        "## Unit Details",
        "",
        "| Unit | Status | Duration | Errors | Warnings |",
        "|------|--------|----------|--------|----------|",
    ]
    for record in session.records.values():
        lines.append(
            f"| {markdown_cell(record.unit_name)} | {record.status.value} "
            f"| {format_duration(record.duration)} | {len(record.errors)} "
            f"| {len(record.warnings)} |"
        )

    failed = [r for r in session.records.values() if r.errors]
    if failed:
        lines += ["", "## Errors", ""]
        for record in failed:
            for error in record.errors:
                lines.append(f"- **{markdown_cell(record.unit_name)}**: {markdown_cell(error)}")

    return "\n".join(lines) + "\n"


def render_csv(session: Session, summary: SessionSummary) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(
        ["Unit", "Status", "Complexity", "Tier", "Duration", "Errors", "Warnings"]
    )
    for record in session.records.values():
        writer.writerow(
            [
                record.unit_name,
                record.status.value,
                record.metadata.get("complexity", ""),
                record.metadata.get("tier", ""),
                f"{record.duration or 0:.3f}",
                len(record.errors),
                len(record.warnings),
            ]
        )
    return buffer.getvalue()


_HTML_STATUS_CLASS = {
    MigrationStatus.COMPLETED: "success",
    MigrationStatus.FAILED: "failed",
}


def render_html(session: Session, summary: SessionSummary) -> str:
    session_id = html.escape(session.id)
    rows = []
    for record in session.records.values():
        status_class = _HTML_STATUS_CLASS.get(record.status, "pending")
        rows.append(
            "    <tr>\n"
            f"      <td>{html.escape(record.unit_name)}</td>\n"
            f'      <td class="{status_class}">{html.escape(record.status.value)}</td>\n'
            f"      <td>{format_duration(record.duration)}</td>\n"
            f"      <td>{len(record.errors)}</td>\n"
            f"      <td>{len(record.warnings)}</td>\n"
            "    </tr>"
        )

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Migration Report - {session_id}</title>
  <style>
    body {{ font-family: Arial, sans-serif; margin: 20px; }}
    table {{ border-collapse: collapse; width: 100%; margin-top: 20px; }}
    th, td {{ border: 1px solid #ddd; padding: 8px; text-align: left; }}
    th {{ background-color: #4CAF50; color: white; }}
    .summary {{ background-color: #f0f0f0; padding: 15px; border-radius: 5px; }}
    .success {{ color: green; }}
    .failed {{ color: red; }}
    .pending {{ color: #b8860b; }}
  </style>
</head>
<body>
  <h1>Migration Report</h1>
  <div class="summary">
    <p><strong>Session ID:</strong> {session_id}</p>
    <p><strong>Duration:</strong> {format_duration(summary['duration'])}</p>
    <p><strong>Total Units:</strong> {summary['total_units']}</p>
    <p><strong>Completed:</strong> {summary['completed_units']}</p>
    <p><strong>Failed:</strong> {summary['failed_units']}</p>
    <p><strong>Success Rate:</strong> {format_percentage(summary['success_rate'])}</p>
  </div>
  <h2>Unit Details</h2>
  <table>
    <tr>
      <th>Unit</th>
      <th>Status</th>
      <th>Duration</th>
      <th>Errors</th>
      <th>Warnings</th>
    </tr>
{chr(10).join(rows)}
  </table>
</body>
</html>
"""


RENDERERS: dict[ReportFormat, Callable[[Session, SessionSummary], str]] = {
    ReportFormat.JSON: render_json,
    ReportFormat.MARKDOWN: render_markdown,
    ReportFormat.CSV: render_csv,
    ReportFormat.HTML: render_html,
}


def _write_report(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class ReportGenerator:
    """Renders session state into report files under ``<output>/reports``."""

    def __init__(self, reports_dirname: str = REPORTS_DIRNAME) -> None:
        self.reports_dirname = reports_dirname

    def report_path(self, session: Session, report_format: ReportFormat) -> Path:
        return (
            Path(session.config.output_directory)
            / self.reports_dirname
            / f"{REPORT_FILE_PREFIX}-{session.id}.{report_format.extension}"
        )

    async def generate_reports(
        self, session: Session, summary: SessionSummary
    ) -> list[ReportResult]:
        """Render every configured format for *session*.

        Args:
            session: The (usually just ended) session.
            summary: Summary computed by the tracker for the same session.

        Returns:
            One ReportResult per configured format, in configuration order.
        """
        results = []
        for report_format in session.config.report_formats:
            results.append(await self._generate(session, summary, report_format))
        return results

    async def _generate(
        self, session: Session, summary: SessionSummary, report_format: ReportFormat
    ) -> ReportResult:
        path = self.report_path(session, report_format)
        try:
            content = RENDERERS[report_format](session, summary)
            await asyncio.to_thread(_write_report, path, content)
        except Exception as e:
            error = ReportGenerationError(
                report_format.value,
                f"Failed to generate {report_format.value} report: {e}",
            )
            error.__cause__ = e
            log_with_context(
                logging.ERROR,
                str(error),
                session_id=session.id,
                report_format=report_format.value,
            )
            return ReportResult(report_format=report_format, error=error)

        log_with_context(
            logging.INFO,
            f"{report_format.value.upper()} report generated: {path}",
            session_id=session.id,
        )
        return ReportResult(report_format=report_format, path=path)
