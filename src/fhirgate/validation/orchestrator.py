"""Validation orchestrator for single resources, files, directories and batches."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path

from fhirgate.aggregation import aggregator
from fhirgate.errors import (
    FhirValidationError,
    ResourceLoadError,
    ResourceParseError,
    ValidationCancelledError,
)
from fhirgate.types import IssueSeverity, ValidationIssue
from fhirgate.validation.checker import ConformanceChecker, StructuralChecker, default_profile_url
from fhirgate.validation.models import (
    BatchValidationProgress,
    BatchValidationReport,
    ValidationConfiguration,
    ValidationResult,
)
from fhirgate.validation.parser import ContentType, parse_resource, read_resource_file

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchValidationProgress], None]


def _raise_if_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise ValidationCancelledError("Validation cancelled")


def _failure_result(
    resource_name: str,
    code: str,
    description: str,
    location: str,
    details: dict[str, str],
    profile_urls: Sequence[str] | None = None,
    resource_type: str = "Unknown",
) -> ValidationResult:
    """Build a failed result carrying one synthetic fatal issue."""
    return ValidationResult(
        resource_name=resource_name,
        resource_type=resource_type,
        validated_profiles=list(profile_urls or []),
        issues=[
            ValidationIssue(
                severity=IssueSeverity.FATAL,
                code=code,
                description=description,
                location=location,
                details=details,
            )
        ],
    )


class ResourceValidator:
    """Runs the conformance checker over resources and collects results."""

    def __init__(
        self,
        checker: ConformanceChecker | None = None,
        configuration: ValidationConfiguration | None = None,
        default_profiles: Mapping[str, str] | None = None,
        max_workers: int = 1,
    ) -> None:
        """Initialize validator.

        Args:
            checker: Conformance engine (StructuralChecker if None)
            configuration: Issue filtering and threshold settings
            default_profiles: Per-resource-type profile used when none is requested
            max_workers: Worker threads for batch runs (1 = sequential)
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.checker = checker or StructuralChecker()
        self.configuration = configuration or ValidationConfiguration()
        self.default_profiles = dict(default_profiles or {})
        self.max_workers = max_workers

    # --- single resource ---

    def validate_resource(
        self,
        resource: Mapping[str, object],
        profile_urls: Sequence[str] | None = None,
        resource_name: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ValidationResult:
        """Validate a parsed resource against each requested profile.

        Args:
            resource: Resource as a JSON-shaped dict
            profile_urls: Profiles to check (default profile if empty)
            resource_name: Display name (resource id if None)
            cancel: Cooperative cancellation flag

        Returns:
            ValidationResult with issues in checker order

        Raises:
            FhirValidationError: If the checker fails
            ValidationCancelledError: If cancelled before or during the check
        """
        _raise_if_cancelled(cancel)

        resource_type = str(resource.get("resourceType") or "Unknown")
        name = resource_name or str(resource.get("id") or "Unknown")
        profiles = list(profile_urls or []) or [
            default_profile_url(resource_type, self.default_profiles)
        ]

        logger.debug("Starting validation for %s resource: %s", resource_type, name)
        start = time.perf_counter()

        issues: list[ValidationIssue] = []
        for profile_url in profiles:
            _raise_if_cancelled(cancel)
            try:
                issues.extend(self.checker.check(resource, profile_url))
            except ValidationCancelledError:
                raise
            except Exception as e:
                logger.error(
                    "Checker failed for %s resource %s against %s", resource_type, name, profile_url
                )
                raise FhirValidationError(
                    "FHIR validation process failed",
                    resource_type=resource_type,
                    profile_url=profile_url,
                    errors=[str(e)],
                ) from e

        # A check finishing after cancellation is abandoned, never returned
        _raise_if_cancelled(cancel)

        result = ValidationResult(
            resource_name=name,
            resource_type=resource_type,
            issues=self._filter_issues(issues),
            validated_profiles=profiles,
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        logger.debug(
            "Validation completed for %s resource: %s. Valid: %s, Issues: %d",
            resource_type,
            name,
            result.is_valid,
            len(result.issues),
        )
        return result

    def validate_content(
        self,
        content: str,
        content_type: ContentType,
        profile_urls: Sequence[str] | None = None,
        resource_name: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ValidationResult:
        """Parse raw content in the declared encoding and validate it.

        Raises:
            ResourceParseError: If content does not conform to its encoding
            FhirValidationError: If the checker fails
            ValidationCancelledError: If cancelled
        """
        _raise_if_cancelled(cancel)
        resource = parse_resource(content, content_type)
        return self.validate_resource(resource, profile_urls, resource_name, cancel)

    def validate_file(
        self,
        path: Path,
        profile_urls: Sequence[str] | None = None,
        cancel: threading.Event | None = None,
    ) -> ValidationResult:
        """Read, parse and validate one resource file.

        Raises:
            ResourceLoadError: If the file is missing, unreadable or unsupported
            ResourceParseError: If content does not conform to its encoding
            FhirValidationError: If the checker fails
        """
        content, content_type = read_resource_file(path)
        return self.validate_content(content, content_type, profile_urls, path.name, cancel)

    # --- batches ---

    def discover(self, directory: Path, pattern: str = "*.*") -> list[Path]:
        """Find resource files under ``directory`` in lexical relative-path order."""
        matches = [
            p for p in directory.rglob(pattern) if p.is_file() and ContentType.supports(p)
        ]
        return sorted(matches, key=lambda p: p.relative_to(directory).as_posix())

    def validate_directory(
        self,
        directory: Path,
        pattern: str = "*.*",
        profile_urls: Sequence[str] | None = None,
        on_progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> BatchValidationReport:
        """Validate every matching .json/.xml file under a directory.

        A file that cannot be read, parsed or checked is recorded as a failed
        result; the run continues.

        Args:
            directory: Root directory (searched recursively)
            pattern: Glob applied to file names
            profile_urls: Profiles to check (default per resource type if empty)
            on_progress: Called once per processed file, in discovery order
            cancel: Cooperative cancellation flag, checked between files

        Returns:
            BatchValidationReport with summary computed

        Raises:
            ResourceLoadError: If the directory does not exist
            ValidationCancelledError: If cancelled
        """
        if not directory.is_dir():
            raise ResourceLoadError(directory, f"Directory not found: {directory}")

        start_time = datetime.now(UTC)
        files = self.discover(directory, pattern)
        logger.info("Found %d FHIR resource files in directory: %s", len(files), directory)

        try:
            results = self._run_ordered(
                files,
                lambda path: self._process_file(path, profile_urls, cancel),
                lambda path: path.name,
                on_progress,
                cancel,
                stage="Validating files",
            )
        except ValidationCancelledError:
            logger.warning("Directory validation cancelled for: %s", directory)
            raise

        report = aggregator.build_report(
            batch_name=f"Directory Validation: {directory}",
            results=results,
            start_time=start_time,
            end_time=datetime.now(UTC),
            configuration=self._run_configuration(profile_urls, pattern),
            workers=self.max_workers,
        )
        self._log_completion(report)
        return report

    def validate_batch(
        self,
        resources: Sequence[Mapping[str, object]],
        profile_urls: Sequence[str] | None = None,
        on_progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
        batch_name: str | None = None,
    ) -> BatchValidationReport:
        """Validate already-parsed resources as one batch.

        Checker failures are recorded as failed results, as in directory mode.
        """
        start_time = datetime.now(UTC)
        logger.info("Starting batch validation for %d resources", len(resources))

        try:
            results = self._run_ordered(
                list(resources),
                lambda resource: self._process_resource(resource, profile_urls, cancel),
                lambda resource: str(resource.get("id") or resource.get("resourceType") or ""),
                on_progress,
                cancel,
                stage="Validating resources",
            )
        except ValidationCancelledError:
            logger.warning("Batch validation cancelled")
            raise

        report = aggregator.build_report(
            batch_name=batch_name or f"Batch Validation: {len(resources)} resources",
            results=results,
            start_time=start_time,
            end_time=datetime.now(UTC),
            configuration=self._run_configuration(profile_urls, None),
            workers=self.max_workers,
        )
        self._log_completion(report)
        return report

    def _process_file(
        self,
        path: Path,
        profile_urls: Sequence[str] | None,
        cancel: threading.Event | None,
    ) -> ValidationResult:
        try:
            return self.validate_file(path, profile_urls, cancel)
        except ValidationCancelledError:
            raise
        except ResourceParseError as e:
            logger.error("Error parsing resource file: %s", path)
            return _failure_result(
                path.name,
                "PARSE_ERROR",
                str(e),
                "Resource",
                {"FilePath": str(path), "Exception": type(e).__name__},
                profile_urls,
            )
        except FhirValidationError as e:
            return _failure_result(
                path.name,
                "VALIDATION_ERROR",
                f"Validation failed with exception: {e}",
                "Resource",
                {"FilePath": str(path), "Exception": type(e).__name__},
                profile_urls,
                resource_type=e.resource_type or "Unknown",
            )
        except Exception as e:
            logger.error("Error processing file: %s", path, exc_info=True)
            return _failure_result(
                path.name,
                "FILE_PROCESSING_ERROR",
                f"Error processing file: {e}",
                "File",
                {"FilePath": str(path), "Exception": type(e).__name__},
                profile_urls,
            )

    def _process_resource(
        self,
        resource: Mapping[str, object],
        profile_urls: Sequence[str] | None,
        cancel: threading.Event | None,
    ) -> ValidationResult:
        try:
            return self.validate_resource(resource, profile_urls, cancel=cancel)
        except FhirValidationError as e:
            return _failure_result(
                str(resource.get("id") or "Unknown"),
                "VALIDATION_ERROR",
                f"Validation failed with exception: {e}",
                "Resource",
                {"Exception": type(e).__name__},
                profile_urls,
                resource_type=e.resource_type or "Unknown",
            )

    def _run_ordered[ItemT](
        self,
        items: list[ItemT],
        worker: Callable[[ItemT], ValidationResult],
        name_of: Callable[[ItemT], str],
        on_progress: ProgressCallback | None,
        cancel: threading.Event | None,
        stage: str,
    ) -> list[ValidationResult]:
        """Run ``worker`` over items, returning results in item order.

        Progress is reported in item order with strictly increasing ordinals, also
        when a worker pool is used.
        """
        total = len(items)
        results: list[ValidationResult] = []

        def notify(index: int, item: ItemT) -> None:
            if on_progress is None:
                return
            on_progress(
                BatchValidationProgress(
                    current_resource=index,
                    total_resources=total,
                    current_resource_name=name_of(item),
                    stage=stage,
                )
            )

        if self.max_workers == 1 or total <= 1:
            for index, item in enumerate(items, start=1):
                _raise_if_cancelled(cancel)
                results.append(worker(item))
                notify(index, item)
            return results

        executor = concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = [executor.submit(worker, item) for item in items]
            for index, (item, future) in enumerate(zip(items, futures, strict=True), start=1):
                _raise_if_cancelled(cancel)
                results.append(future.result())
                notify(index, item)
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
        return results

    def _filter_issues(self, issues: list[ValidationIssue]) -> list[ValidationIssue]:
        """Apply the information and per-resource cap settings.

        Capping keeps checker order but never drops every blocking issue, so a
        truncated result stays invalid when the full one was.
        """
        kept = [
            i
            for i in issues
            if self.configuration.include_information or i.severity != IssueSeverity.INFORMATION
        ]
        limit = self.configuration.max_issues_per_resource
        if len(kept) <= limit:
            return kept

        blocking_slots = min(sum(1 for i in kept if i.severity.is_blocking), limit)
        other_slots = limit - blocking_slots
        trimmed: list[ValidationIssue] = []
        for issue in kept:
            if issue.severity.is_blocking:
                if blocking_slots:
                    trimmed.append(issue)
                    blocking_slots -= 1
            elif other_slots:
                trimmed.append(issue)
                other_slots -= 1
        return trimmed

    def _run_configuration(
        self, profile_urls: Sequence[str] | None, pattern: str | None
    ) -> ValidationConfiguration:
        return self.configuration.model_copy(
            update={"profile_urls": list(profile_urls or []), "file_pattern": pattern}
        )

    @staticmethod
    def _log_completion(report: BatchValidationReport) -> None:
        logger.info(
            "Batch validation completed. Total: %d, Passed: %d, Failed: %d",
            report.summary.total_resources,
            report.summary.passed_resources,
            report.summary.failed_resources,
        )
