"""Aggregation of per-resource results into batch summaries and reports."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from fhirgate.validation.models import (
    BatchValidationReport,
    ValidationConfiguration,
    ValidationPerformanceMetrics,
    ValidationResult,
    ValidationSummary,
)


def summarize(results: Sequence[ValidationResult]) -> ValidationSummary:
    """Compute summary statistics for a sequence of results.

    Warning resources are counted independently of pass/fail.
    ``overall_success`` is left False for the CI policy to decide.

    Args:
        results: Per-resource results

    Returns:
        ValidationSummary (pass rate 0.0 when empty)
    """
    by_severity: dict[str, int] = {}
    by_type: dict[str, int] = {}

    for result in results:
        for severity, count in result.issue_count_by_severity.items():
            by_severity[severity] = by_severity.get(severity, 0) + count
        by_type[result.resource_type] = by_type.get(result.resource_type, 0) + len(result.issues)

    passed = sum(1 for r in results if r.is_valid)

    return ValidationSummary(
        total_resources=len(results),
        passed_resources=passed,
        failed_resources=len(results) - passed,
        warning_resources=sum(1 for r in results if r.has_warnings),
        total_issues=sum(len(r.issues) for r in results),
        issues_by_severity=by_severity,
        issues_by_resource_type=by_type,
    )


def performance_metrics(
    results: Sequence[ValidationResult], total_duration_ms: float, workers: int = 1
) -> ValidationPerformanceMetrics:
    """Calculate timing statistics; zero-duration results are ignored."""
    durations = [r.duration_ms for r in results if r.duration_ms > 0]
    total_seconds = total_duration_ms / 1000

    return ValidationPerformanceMetrics(
        average_validation_ms=sum(durations) / len(durations) if durations else 0.0,
        minimum_validation_ms=min(durations, default=0.0),
        maximum_validation_ms=max(durations, default=0.0),
        resources_per_second=len(results) / total_seconds if total_seconds > 0 else 0.0,
        workers=workers,
    )


def build_report(
    batch_name: str,
    results: Sequence[ValidationResult],
    start_time: datetime,
    end_time: datetime,
    configuration: ValidationConfiguration | None = None,
    workers: int = 1,
) -> BatchValidationReport:
    """Assemble a finalized batch report from results in processing order."""
    total_duration_ms = max((end_time - start_time).total_seconds() * 1000, 0.0)
    return BatchValidationReport(
        batch_name=batch_name,
        results=list(results),
        start_time=start_time,
        end_time=end_time,
        total_duration_ms=total_duration_ms,
        summary=summarize(results),
        configuration=configuration or ValidationConfiguration(),
        performance=performance_metrics(results, total_duration_ms, workers),
    )


def single_result_report(
    result: ValidationResult, configuration: ValidationConfiguration | None = None
) -> BatchValidationReport:
    """Wrap one result in a report so single-resource runs share the batch outputs."""
    return BatchValidationReport(
        batch_name=f"Single Resource Validation: {result.resource_name}",
        results=[result],
        start_time=result.timestamp,
        end_time=result.timestamp,
        total_duration_ms=result.duration_ms,
        summary=summarize([result]),
        configuration=configuration or ValidationConfiguration(),
        performance=performance_metrics([result], result.duration_ms),
    )
