"""Report generation for diagnostics."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .runner import DiagnosticReport, CheckStatus, Check, Result
from ..utils import get_logger

logger = get_logger(__name__)

STATUS_LABELS = {
    CheckStatus.SUCCESS: "[PASS]",
    CheckStatus.FAILURE: "[FAIL]",
    CheckStatus.INCONCLUSIVE: "[WARN]",
}

Reports = Union[DiagnosticReport, Sequence[DiagnosticReport]]


def _as_list(reports: Reports) -> List[DiagnosticReport]:
    if isinstance(reports, DiagnosticReport):
        return [reports]
    return list(reports)


def _serialize_result(check: Check, result: Result) -> Dict[str, Any]:
    """Serialize a check outcome to a dictionary."""
    return {
        'name': check.name,
        'description': check.description,
        'status': result.status.value,
        'message': result.message,
        'detail': result.detail,
        'duration_ms': result.duration_ms,
        'recommendations': result.recommendations
    }


def _serialize_report(report: DiagnosticReport) -> Dict[str, Any]:
    summary = report.summary
    return {
        'suite': report.suite,
        'timestamp': report.timestamp.isoformat(),
        'early_exit': report.early_exit,
        'duration_ms': report.duration_ms,
        'overall_status': summary.overall_status if summary else "unknown",
        'summary': {
            'total': summary.total,
            'success': summary.success,
            'failure': summary.failure,
            'inconclusive': summary.inconclusive,
            'first_success': summary.first_success,
        } if summary else {},
        'checks': [_serialize_result(check, result) for check, result in report.results]
    }


def _write(filepath: Union[str, Path], content: str) -> None:
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(content)
    logger.info(f"Report saved to {filepath}")


def format_detail(detail: Any, limit: int = 200) -> str:
    """Render an opaque detail payload on one line."""
    if detail is None:
        return ""
    if isinstance(detail, str):
        text = detail
    else:
        text = json.dumps(detail, default=str)
    return text if len(text) <= limit else text[:limit] + "..."


def format_outcome(check: Check, result: Result) -> str:
    """One-line rendering used for live progress output."""
    label = STATUS_LABELS.get(result.status, "[????]")
    line = f"{label} {check.name}"
    if result.message:
        line += f" - {result.message}"
    return line


class ReportGenerator:
    """
    Generates diagnostic reports in various formats.
    """

    def __init__(self, show_details: bool = False):
        self.show_details = show_details

    def to_json(self, reports: Reports, filepath: Optional[Path] = None) -> str:
        """
        Export one or more suite reports to JSON.

        Args:
            reports: DiagnosticReport or list of them
            filepath: Optional file path to save to

        Returns:
            JSON string
        """
        reports = _as_list(reports)

        data = {
            'report_version': '1.0',
            'suites': [_serialize_report(r) for r in reports],
            'overall_status': self.overall_status(reports)
        }

        json_str = json.dumps(data, indent=2, default=str)

        if filepath:
            _write(filepath, json_str)

        return json_str

    @staticmethod
    def overall_status(reports: Sequence[DiagnosticReport]) -> str:
        """Worst status across suites."""
        statuses = [r.summary.overall_status for r in reports if r.summary]
        if "problems_detected" in statuses:
            return "problems_detected"
        if "minor_issues" in statuses:
            return "minor_issues"
        return "healthy"

    def to_text(self, reports: Reports, filepath: Optional[Path] = None) -> str:
        """
        Export one or more suite reports to plain text.

        Args:
            reports: DiagnosticReport or list of them
            filepath: Optional file path to save to

        Returns:
            Text string
        """
        lines = [
            "=" * 60,
            "DEPLOYMENT DIAGNOSTIC REPORT",
            "=" * 60,
        ]

        for report in _as_list(reports):
            lines.extend(self._suite_lines(report))

        lines.extend([
            "",
            "=" * 60,
            "End of Report",
            "=" * 60
        ])

        text = "\n".join(lines)

        if filepath:
            _write(filepath, text)

        return text

    def _suite_lines(self, report: DiagnosticReport) -> List[str]:
        summary = report.summary
        lines = [
            "",
            "-" * 60,
            f"SUITE: {report.suite}",
            "-" * 60,
            f"Timestamp:      {report.timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
            f"Duration:       {report.duration_ms or 0:.0f}ms",
        ]
        if summary:
            lines.extend([
                f"Overall Status: {summary.overall_status.replace('_', ' ').upper()}",
                f"  Passed:       {summary.success}",
                f"  Inconclusive: {summary.inconclusive}",
                f"  Failed:       {summary.failure}",
            ])

        for check, result in report.results:
            lines.append("")
            lines.append(format_outcome(check, result))

            if self.show_details and result.detail is not None:
                lines.append(f"  Detail: {format_detail(result.detail)}")

            if result.status != CheckStatus.SUCCESS and result.recommendations:
                lines.append("  Recommendations:")
                for rec in result.recommendations:
                    lines.append(f"    - {rec}")

        if report.early_exit and summary:
            lines.append("")
            if summary.first_success:
                lines.append(f"First working check: {summary.first_success}")
            else:
                lines.append("No check succeeded")

        return lines
