"""Diagnostic check runner and orchestrator."""

import time
from typing import Any, Callable, Iterable, List, Optional, Tuple
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from ..utils import get_logger

logger = get_logger(__name__)


class CheckStatus(Enum):
    """Outcome of a diagnostic check."""
    SUCCESS = "success"
    FAILURE = "failure"
    INCONCLUSIVE = "inconclusive"  # Probe completed but an auxiliary expectation was unmet


class InvalidInput(ValueError):
    """Raised when the runner is handed something it cannot execute."""


@dataclass
class Result:
    """Result of running a single check."""
    status: CheckStatus
    detail: Any = None               # Probe-specific payload, never interpreted by the runner
    message: str = ""
    duration_ms: Optional[float] = None
    recommendations: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, message: str = "", detail: Any = None,
                recommendations: Optional[List[str]] = None) -> "Result":
        return cls(CheckStatus.SUCCESS, detail=detail, message=message,
                   recommendations=list(recommendations or []))

    @classmethod
    def failure(cls, message: str = "", detail: Any = None,
                recommendations: Optional[List[str]] = None) -> "Result":
        return cls(CheckStatus.FAILURE, detail=detail, message=message,
                   recommendations=list(recommendations or []))

    @classmethod
    def inconclusive(cls, message: str = "", detail: Any = None,
                     recommendations: Optional[List[str]] = None) -> "Result":
        return cls(CheckStatus.INCONCLUSIVE, detail=detail, message=message,
                   recommendations=list(recommendations or []))


@dataclass(frozen=True)
class Check:
    """A named unit of verification."""
    name: str
    probe: Callable[[], Result] = field(compare=False)
    description: str = ""


CheckOutcome = Tuple[Check, Result]


@dataclass(frozen=True)
class SummaryReport:
    """Counts over a list of check outcomes."""
    total: int
    success: int
    failure: int
    inconclusive: int
    first_success: Optional[str] = None
    overall_status: str = "healthy"


@dataclass
class DiagnosticReport:
    """Complete report for one suite run."""
    suite: str
    timestamp: datetime
    results: List[CheckOutcome] = field(default_factory=list)
    summary: Optional[SummaryReport] = None
    early_exit: bool = False
    duration_ms: Optional[float] = None


def _execute(check: Check) -> Result:
    """Invoke one probe, converting anything it raises into a failure."""
    start = time.perf_counter()
    try:
        result = check.probe()
    except Exception as e:
        logger.error(f"Check error ({check.name}): {e}")
        result = Result.failure(message=str(e) or type(e).__name__,
                                detail=f"{type(e).__name__}: {e}")
    else:
        if not isinstance(result, Result):
            logger.error(f"Check {check.name} returned {type(result).__name__}, not a Result")
            result = Result.failure(
                message=f"Probe returned {type(result).__name__} instead of a Result",
                detail=result
            )

    if result.duration_ms is None:
        result = replace(result, duration_ms=(time.perf_counter() - start) * 1000)

    return result


def run(
    checks: Iterable[Check],
    early_exit: bool = False,
    check_callback: Optional[Callable[[Check, Result], None]] = None
) -> List[CheckOutcome]:
    """
    Run checks strictly in order, each exactly once.

    Args:
        checks: Ordered, non-empty sequence of checks
        early_exit: Stop right after the first successful check
        check_callback: Callback(check, result) called after each check;
            errors it raises are logged and do not stop the run

    Returns:
        List of (check, result) pairs in execution order

    Raises:
        InvalidInput: if ``checks`` is empty or holds something other than a Check
    """
    if checks is None:
        raise InvalidInput("No checks given")

    checks = list(checks)
    if not checks:
        raise InvalidInput("At least one check is required")

    for item in checks:
        if not isinstance(item, Check):
            raise InvalidInput(f"Expected a Check, got {type(item).__name__}")

    outcomes: List[CheckOutcome] = []

    for i, check in enumerate(checks):
        logger.info(f"Running check {i + 1}/{len(checks)}: {check.name}")

        result = _execute(check)
        outcomes.append((check, result))

        logger.debug(f"Check {check.name}: {result.status.value} {result.message}")

        if check_callback:
            try:
                check_callback(check, result)
            except Exception as e:
                logger.error(f"Check callback error ({check.name}): {e}")

        if early_exit and result.status == CheckStatus.SUCCESS:
            logger.info(f"Early exit after first success: {check.name}")
            break

    return outcomes


def summarize(results: Iterable[CheckOutcome]) -> SummaryReport:
    """Count outcomes by status. Pure; the input is not modified."""
    success = failure = inconclusive = total = 0
    first_success = None

    for check, result in results:
        total += 1
        if result.status == CheckStatus.SUCCESS:
            success += 1
            if first_success is None:
                first_success = check.name
        elif result.status == CheckStatus.FAILURE:
            failure += 1
        elif result.status == CheckStatus.INCONCLUSIVE:
            inconclusive += 1

    if failure > 0:
        overall_status = "problems_detected"
    elif inconclusive > 0:
        overall_status = "minor_issues"
    else:
        overall_status = "healthy"

    return SummaryReport(
        total=total,
        success=success,
        failure=failure,
        inconclusive=inconclusive,
        first_success=first_success,
        overall_status=overall_status
    )


class DiagnosticRunner:
    """
    Runs named suites of checks and wraps the outcome in a report.
    """

    def __init__(self, check_callback: Optional[Callable[[Check, Result], None]] = None):
        self.check_callback = check_callback

    def run_suite(
        self,
        name: str,
        checks: Iterable[Check],
        early_exit: bool = False
    ) -> DiagnosticReport:
        """
        Run a suite of checks.

        Args:
            name: Suite name used in reports
            checks: Ordered checks to run
            early_exit: Stop at the first successful check

        Returns:
            DiagnosticReport with all results
        """
        start_time = datetime.now()
        start = time.perf_counter()

        logger.info(f"Running suite: {name}")

        results = run(checks, early_exit=early_exit, check_callback=self.check_callback)

        summary = summarize(results)
        if early_exit:
            # Any success settles an early-exit suite; earlier attempts do not count against it
            summary = replace(
                summary,
                overall_status="healthy" if summary.first_success else "problems_detected"
            )

        report = DiagnosticReport(
            suite=name,
            timestamp=start_time,
            results=results,
            summary=summary,
            early_exit=early_exit,
            duration_ms=(time.perf_counter() - start) * 1000
        )

        logger.info(f"Suite {name} complete: {report.summary.overall_status}")
        return report
