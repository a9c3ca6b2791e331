"""Tests for the CI decision policy."""

from datetime import UTC, datetime, timedelta

import pytest

from fhirgate.aggregation import build_report
from fhirgate.ci import (
    DEFAULT_PASS_THRESHOLD,
    EXIT_ERROR,
    EXIT_FAILURE,
    EXIT_SUCCESS,
    apply_threshold,
    ci_summary,
    error_ci_summary,
    evaluate,
)
from fhirgate.errors import ConfigurationError, ResourceLoadError
from fhirgate.types import IssueSeverity, ValidationIssue
from fhirgate.validation.models import BatchValidationReport, ValidationResult


def _report(passed: int, failed: int, warned: int = 0) -> BatchValidationReport:
    results: list[ValidationResult] = []
    for n in range(passed):
        issues = (
            [ValidationIssue(severity=IssueSeverity.WARNING, description="w")]
            if n < warned
            else []
        )
        results.append(ValidationResult(resource_name=f"ok-{n}.json", issues=issues))
    for n in range(failed):
        results.append(
            ValidationResult(
                resource_name=f"bad-{n}.json",
                resource_type="Observation",
                issues=[ValidationIssue(severity=IssueSeverity.ERROR, description="e")],
                duration_ms=5,
            )
        )
    start = datetime(2024, 3, 15, tzinfo=UTC)
    return build_report("CI run", results, start, start + timedelta(seconds=4))


class TestApplyThreshold:
    """Test the >= threshold rule."""

    def test_default_threshold(self) -> None:
        assert DEFAULT_PASS_THRESHOLD == 95.0

    def test_exactly_at_threshold_succeeds(self) -> None:
        report = apply_threshold(_report(passed=19, failed=1), 95.0)
        assert report.summary.pass_rate == 95.0
        assert report.summary.overall_success

    def test_one_unit_below_fails(self) -> None:
        report = apply_threshold(_report(passed=94, failed=6), 95.0)
        assert report.summary.pass_rate == 94.0
        assert not report.summary.overall_success

    def test_threshold_recorded(self) -> None:
        report = apply_threshold(_report(passed=1, failed=0), 80.0)
        assert report.configuration.pass_rate_threshold == 80.0

    def test_input_not_mutated(self) -> None:
        original = _report(passed=1, failed=0)
        apply_threshold(original, 50.0)
        assert not original.summary.overall_success

    def test_empty_batch_fails_positive_threshold(self) -> None:
        report = apply_threshold(_report(passed=0, failed=0), 95.0)
        assert report.summary.pass_rate == 0.0
        assert not report.summary.overall_success

    def test_zero_threshold_always_succeeds(self) -> None:
        assert apply_threshold(_report(passed=0, failed=3), 0.0).summary.overall_success

    @pytest.mark.parametrize("threshold", [-1.0, 100.5])
    def test_out_of_range(self, threshold: float) -> None:
        with pytest.raises(ConfigurationError):
            apply_threshold(_report(passed=1, failed=0), threshold)


class TestCiSummary:
    """Test CI verdict contents."""

    def test_success(self) -> None:
        ci = ci_summary(apply_threshold(_report(passed=3, failed=0, warned=1), 95.0))

        assert ci.success
        assert ci.exit_code == EXIT_SUCCESS
        assert ci.summary == (
            "Validation passed: 3/3 resources passed (100.0%), 0 failed, "
            "1 with warnings [threshold 95.0%]"
        )

    def test_failure(self) -> None:
        ci = ci_summary(apply_threshold(_report(passed=1, failed=1), 95.0))

        assert not ci.success
        assert ci.exit_code == EXIT_FAILURE
        assert "1/2 resources passed (50.0%)" in ci.summary
        assert "Failed Resources:" in ci.details
        assert "  - bad-0.json (Observation): 1 issues" in ci.details

    def test_failed_list_truncated(self) -> None:
        ci = ci_summary(apply_threshold(_report(passed=0, failed=12), 95.0))
        assert "  ... and 2 more" in ci.details

    def test_metrics(self) -> None:
        ci = ci_summary(apply_threshold(_report(passed=1, failed=1), 95.0))

        assert ci.metrics["total_resources"] == 2
        assert ci.metrics["failed_resources"] == 1
        assert ci.metrics["pass_rate"] == 50.0
        assert ci.metrics["validation_duration_seconds"] == 4.0
        assert ci.metrics["resources_per_second"] == 0.5

    def test_evaluate(self) -> None:
        report, ci = evaluate(_report(passed=2, failed=0))
        assert report.summary.overall_success
        assert ci.exit_code == EXIT_SUCCESS


class TestErrorCiSummary:
    """Test the verdict for runs that fail before producing a report."""

    def test_error(self) -> None:
        ci = error_ci_summary(ResourceLoadError("/data/fhir", "Directory not found: /data/fhir"))

        assert not ci.success
        assert ci.exit_code == EXIT_ERROR == EXIT_FAILURE
        assert ci.summary == "Validation error: Directory not found: /data/fhir"
        assert ci.details == "ResourceLoadError"
