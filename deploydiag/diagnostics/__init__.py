"""Diagnostic orchestration and reporting."""

from .runner import (
    Check,
    CheckStatus,
    DiagnosticReport,
    DiagnosticRunner,
    InvalidInput,
    Result,
    SummaryReport,
    run,
    summarize,
)
from .reports import ReportGenerator
from .suites import Suite, SuiteBuilder

__all__ = [
    "Check",
    "CheckStatus",
    "DiagnosticReport",
    "DiagnosticRunner",
    "InvalidInput",
    "Result",
    "SummaryReport",
    "run",
    "summarize",
    "ReportGenerator",
    "Suite",
    "SuiteBuilder",
]
