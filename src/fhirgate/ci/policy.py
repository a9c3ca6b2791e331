"""CI decision policy: pass-rate threshold, verdict and exit code."""

from __future__ import annotations

from fhirgate.errors import ConfigurationError
from fhirgate.validation.models import BatchValidationReport, CiSummary

DEFAULT_PASS_THRESHOLD = 95.0
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
# Run-level errors share the failure code
EXIT_ERROR = EXIT_FAILURE

_MAX_LISTED_FAILURES = 10


def apply_threshold(
    report: BatchValidationReport, threshold: float = DEFAULT_PASS_THRESHOLD
) -> BatchValidationReport:
    """Decide overall success for a report.

    Success is ``pass_rate >= threshold``. The input report is left untouched;
    a copy carrying the verdict and the threshold is returned.

    Raises:
        ConfigurationError: If threshold is outside 0-100
    """
    if not 0.0 <= threshold <= 100.0:
        raise ConfigurationError(f"Pass threshold must be between 0 and 100, got {threshold}")

    summary = report.summary.model_copy(
        update={"overall_success": report.summary.pass_rate >= threshold}
    )
    configuration = report.configuration.model_copy(update={"pass_rate_threshold": threshold})
    return report.model_copy(update={"summary": summary, "configuration": configuration})


def _details(report: BatchValidationReport) -> str:
    summary = report.summary
    lines = [
        f"Batch: {report.batch_name}",
        f"Duration: {report.total_duration_ms / 1000:.2f}s",
        (
            f"Resources: {summary.total_resources} total, {summary.passed_resources} passed, "
            f"{summary.failed_resources} failed, {summary.warning_resources} with warnings"
        ),
    ]

    if summary.issues_by_severity:
        lines.append("Issues:")
        for severity, count in sorted(summary.issues_by_severity.items()):
            lines.append(f"  {severity}: {count}")

    if not summary.overall_success:
        failed = report.failed_results
        if failed:
            lines.append("Failed Resources:")
            for result in failed[:_MAX_LISTED_FAILURES]:
                lines.append(
                    f"  - {result.resource_name} ({result.resource_type}): "
                    f"{len(result.issues)} issues"
                )
            if len(failed) > _MAX_LISTED_FAILURES:
                lines.append(f"  ... and {len(failed) - _MAX_LISTED_FAILURES} more")

    return "\n".join(lines)


def ci_summary(report: BatchValidationReport) -> CiSummary:
    """Build the CI verdict for a report whose threshold has been applied.

    Args:
        report: Report returned by apply_threshold

    Returns:
        CiSummary with exit code 0 on success, 1 otherwise
    """
    summary = report.summary
    success = summary.overall_success
    text = (
        f"Validation {'passed' if success else 'failed'}: "
        f"{summary.passed_resources}/{summary.total_resources} resources passed "
        f"({summary.pass_rate:.1f}%), {summary.failed_resources} failed, "
        f"{summary.warning_resources} with warnings "
        f"[threshold {report.configuration.pass_rate_threshold:.1f}%]"
    )

    return CiSummary(
        success=success,
        exit_code=EXIT_SUCCESS if success else EXIT_FAILURE,
        summary=text,
        details=_details(report),
        metrics={
            "total_resources": summary.total_resources,
            "passed_resources": summary.passed_resources,
            "failed_resources": summary.failed_resources,
            "warning_resources": summary.warning_resources,
            "total_issues": summary.total_issues,
            "pass_rate": summary.pass_rate,
            "validation_duration_seconds": report.total_duration_ms / 1000,
            "average_validation_time_ms": report.performance.average_validation_ms,
            "resources_per_second": report.performance.resources_per_second,
        },
    )


def evaluate(
    report: BatchValidationReport, threshold: float = DEFAULT_PASS_THRESHOLD
) -> tuple[BatchValidationReport, CiSummary]:
    """Apply the threshold and build the CI verdict in one step."""
    decided = apply_threshold(report, threshold)
    return decided, ci_summary(decided)


def error_ci_summary(error: BaseException) -> CiSummary:
    """CI verdict for a run that failed before producing a report."""
    return CiSummary(
        success=False,
        exit_code=EXIT_ERROR,
        summary=f"Validation error: {error}",
        details=type(error).__name__,
    )
