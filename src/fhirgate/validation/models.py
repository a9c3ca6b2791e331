"""Validation data models."""

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field

from fhirgate.types import IssueSeverity, ValidationIssue


class ValidationResult(BaseModel):
    """Outcome of validating exactly one resource.

    Issues keep the order the checker produced them in. Instances are frozen once
    created.
    """

    result_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    resource_name: str = "Unknown"
    resource_type: str = "Unknown"
    issues: list[ValidationIssue] = Field(default_factory=list)
    validated_profiles: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(frozen=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def profile_url(self) -> str | None:
        """First profile the resource was checked against."""
        return self.validated_profiles[0] if self.validated_profiles else None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_valid(self) -> bool:
        """True when no issue is an error or fatal."""
        return not any(i.severity.is_blocking for i in self.issues)

    @property
    def has_errors(self) -> bool:
        return not self.is_valid

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_warnings(self) -> bool:
        return any(i.severity == IssueSeverity.WARNING for i in self.issues)

    @property
    def issue_count_by_severity(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for issue in self.issues:
            counts[issue.severity.value] = counts.get(issue.severity.value, 0) + 1
        return counts

    def to_operation_outcome(self) -> dict[str, object]:
        """Convert to a FHIR OperationOutcome resource."""
        entries: list[dict[str, object]] = []
        for issue in self.issues:
            entry: dict[str, object] = {
                "severity": issue.severity.value,
                "code": issue.code or "invalid",
                "diagnostics": issue.description,
            }
            if issue.location:
                entry["expression"] = [issue.location]
            entries.append(entry)

        if not self.is_valid and not entries:
            entries.append(
                {
                    "severity": IssueSeverity.ERROR.value,
                    "code": "invalid",
                    "diagnostics": (
                        "Resource validation failed but no specific issues were identified"
                    ),
                }
            )

        return {"resourceType": "OperationOutcome", "issue": entries}


class BatchValidationProgress(BaseModel):
    """Progress notification emitted once per processed resource."""

    current_resource: int
    total_resources: int
    current_resource_name: str
    stage: str = "Validating files"

    model_config = ConfigDict(frozen=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress_percentage(self) -> float:
        if self.total_resources <= 0:
            return 0.0
        return self.current_resource * 100 / self.total_resources


class ValidationConfiguration(BaseModel):
    """Run parameters recorded on a batch report."""

    profile_urls: list[str] = Field(default_factory=list)
    file_pattern: str | None = None
    include_information: bool = True
    max_issues_per_resource: int = 100
    pass_rate_threshold: float = 95.0

    model_config = ConfigDict(frozen=True)


class ValidationSummary(BaseModel):
    """Summary statistics derived from a batch of results.

    ``overall_success`` is decided by the CI policy, not by aggregation.
    """

    total_resources: int = 0
    passed_resources: int = 0
    failed_resources: int = 0
    warning_resources: int = 0
    total_issues: int = 0
    issues_by_severity: dict[str, int] = Field(default_factory=dict)
    issues_by_resource_type: dict[str, int] = Field(default_factory=dict)
    overall_success: bool = False

    model_config = ConfigDict(frozen=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pass_rate(self) -> float:
        """Passed percentage; 0.0 for an empty batch."""
        if self.total_resources == 0:
            return 0.0
        return self.passed_resources * 100 / self.total_resources


class ValidationPerformanceMetrics(BaseModel):
    """Timing statistics for a batch."""

    average_validation_ms: float = 0.0
    minimum_validation_ms: float = 0.0
    maximum_validation_ms: float = 0.0
    resources_per_second: float = 0.0
    workers: int = 1

    model_config = ConfigDict(frozen=True)


class BatchValidationReport(BaseModel):
    """Aggregate over one validation run.

    Results are in discovery/processing order, one per resource.
    """

    report_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    batch_name: str
    results: list[ValidationResult] = Field(default_factory=list)
    start_time: datetime
    end_time: datetime
    total_duration_ms: float = 0.0
    summary: ValidationSummary = Field(default_factory=ValidationSummary)
    configuration: ValidationConfiguration = Field(default_factory=ValidationConfiguration)
    performance: ValidationPerformanceMetrics = Field(
        default_factory=ValidationPerformanceMetrics
    )

    model_config = ConfigDict(frozen=True)

    @property
    def failed_results(self) -> list[ValidationResult]:
        return [r for r in self.results if not r.is_valid]

    @property
    def passed_results(self) -> list[ValidationResult]:
        return [r for r in self.results if r.is_valid]


class CiSummary(BaseModel):
    """Terminal CI verdict for a run."""

    success: bool
    exit_code: int
    summary: str
    details: str = ""
    metrics: dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)
