"""Tests for the validation orchestrator."""

import json
import threading
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from fhirgate.errors import (
    FhirValidationError,
    ResourceLoadError,
    ResourceParseError,
    ValidationCancelledError,
)
from fhirgate.types import IssueSeverity, ValidationIssue
from fhirgate.validation.checker import BASE_PROFILE_PREFIX
from fhirgate.validation.models import BatchValidationProgress, ValidationConfiguration
from fhirgate.validation.orchestrator import ResourceValidator
from fhirgate.validation.parser import ContentType

WriteResource = Callable[[str, object], Path]


def _invalid_observation(resource_id: str) -> dict[str, object]:
    return {"resourceType": "Observation", "id": resource_id}


class _SlowChecker:
    """Checker whose delay is longest for the first resources."""

    def __init__(self, delays: Mapping[str, float]) -> None:
        self.delays = delays

    def check(self, resource: Mapping[str, object], profile_url: str) -> list[ValidationIssue]:
        time.sleep(self.delays.get(str(resource.get("id")), 0.0))
        return []


class TestValidateResource:
    """Test single-resource validation."""

    def test_default_profile(self, patient_resource: dict[str, object]) -> None:
        result = ResourceValidator().validate_resource(patient_resource)

        assert result.is_valid
        assert result.resource_name == "patient-001"
        assert result.resource_type == "Patient"
        assert result.validated_profiles == [f"{BASE_PROFILE_PREFIX}Patient"]

    def test_configured_default_profile(self, patient_resource: dict[str, object]) -> None:
        checker = MagicMock()
        checker.check.return_value = []
        validator = ResourceValidator(
            checker=checker, default_profiles={"Patient": "http://example.org/p"}
        )

        validator.validate_resource(patient_resource)

        checker.check.assert_called_once_with(patient_resource, "http://example.org/p")

    def test_checker_called_once_per_profile(self, patient_resource: dict[str, object]) -> None:
        checker = MagicMock()
        checker.check.side_effect = [
            [ValidationIssue(severity=IssueSeverity.WARNING, code="a", description="first")],
            [ValidationIssue(severity=IssueSeverity.ERROR, code="b", description="second")],
        ]

        result = ResourceValidator(checker=checker).validate_resource(
            patient_resource, ["http://p/1", "http://p/2"]
        )

        assert checker.check.call_count == 2
        assert [i.code for i in result.issues] == ["a", "b"]
        assert result.validated_profiles == ["http://p/1", "http://p/2"]
        assert not result.is_valid

    def test_checker_failure_wrapped(self, patient_resource: dict[str, object]) -> None:
        checker = MagicMock()
        checker.check.side_effect = RuntimeError("engine crashed")

        with pytest.raises(FhirValidationError) as exc_info:
            ResourceValidator(checker=checker).validate_resource(patient_resource, ["http://p/1"])

        error = exc_info.value
        assert error.resource_type == "Patient"
        assert error.profile_url == "http://p/1"
        assert error.errors == ["engine crashed"]
        assert isinstance(error.__cause__, RuntimeError)

    def test_information_kept_by_default(self, patient_resource: dict[str, object]) -> None:
        result = ResourceValidator().validate_resource(patient_resource, ["http://custom/p"])
        assert [i.severity for i in result.issues] == [IssueSeverity.INFORMATION]

    def test_information_dropped_when_configured(
        self, patient_resource: dict[str, object]
    ) -> None:
        validator = ResourceValidator(
            configuration=ValidationConfiguration(include_information=False)
        )
        result = validator.validate_resource(patient_resource, ["http://custom/p"])
        assert result.issues == []

    def test_truncation_keeps_blocking_issues(self, patient_resource: dict[str, object]) -> None:
        """Warnings ahead of an error cannot push the error past the cap."""
        checker = MagicMock()
        checker.check.return_value = [
            *(
                ValidationIssue(severity=IssueSeverity.WARNING, code=f"w{n}", description="w")
                for n in range(3)
            ),
            ValidationIssue(severity=IssueSeverity.ERROR, code="e0", description="e"),
        ]
        validator = ResourceValidator(
            checker=checker, configuration=ValidationConfiguration(max_issues_per_resource=3)
        )

        result = validator.validate_resource(patient_resource)

        assert not result.is_valid
        assert [i.code for i in result.issues] == ["w0", "w1", "e0"]

    def test_truncation_with_only_blocking_room(
        self, patient_resource: dict[str, object]
    ) -> None:
        checker = MagicMock()
        checker.check.return_value = [
            ValidationIssue(severity=IssueSeverity.WARNING, code="w", description="w"),
            ValidationIssue(severity=IssueSeverity.FATAL, code="f", description="f"),
            ValidationIssue(severity=IssueSeverity.ERROR, code="e", description="e"),
        ]
        validator = ResourceValidator(
            checker=checker, configuration=ValidationConfiguration(max_issues_per_resource=2)
        )

        result = validator.validate_resource(patient_resource)

        assert [i.code for i in result.issues] == ["f", "e"]

    def test_issues_truncated_in_order(self, patient_resource: dict[str, object]) -> None:
        checker = MagicMock()
        checker.check.return_value = [
            ValidationIssue(severity=IssueSeverity.ERROR, code=str(n), description="e")
            for n in range(5)
        ]
        validator = ResourceValidator(
            checker=checker, configuration=ValidationConfiguration(max_issues_per_resource=3)
        )

        result = validator.validate_resource(patient_resource)

        assert [i.code for i in result.issues] == ["0", "1", "2"]

    def test_cancelled_before_start(self, patient_resource: dict[str, object]) -> None:
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ValidationCancelledError):
            ResourceValidator().validate_resource(patient_resource, cancel=cancel)

    def test_cancelled_during_check(self, patient_resource: dict[str, object]) -> None:
        """A check finishing after cancellation raises instead of returning."""
        cancel = threading.Event()

        def check(resource: Mapping[str, object], profile_url: str) -> list[ValidationIssue]:
            cancel.set()
            return []

        checker = MagicMock()
        checker.check.side_effect = check

        with pytest.raises(ValidationCancelledError):
            ResourceValidator(checker=checker).validate_resource(patient_resource, cancel=cancel)


class TestValidateContent:
    """Test content parsing plus validation."""

    def test_json(self, observation_resource: dict[str, object]) -> None:
        result = ResourceValidator().validate_content(
            json.dumps(observation_resource), ContentType.JSON
        )
        assert result.is_valid
        assert result.resource_type == "Observation"

    def test_xml(self) -> None:
        content = (
            '<Observation xmlns="http://hl7.org/fhir"><id value="o1"/>'
            '<status value="final"/></Observation>'
        )
        result = ResourceValidator().validate_content(content, ContentType.XML)

        assert not result.is_valid
        assert [i.location for i in result.issues] == ["Observation.code"]

    def test_parse_error_raised(self) -> None:
        with pytest.raises(ResourceParseError):
            ResourceValidator().validate_content("{oops", ContentType.JSON)


class TestValidateFile:
    """Test file validation."""

    def test_uses_file_name(
        self, write_resource: WriteResource, patient_resource: dict[str, object]
    ) -> None:
        path = write_resource("patient.json", patient_resource)
        result = ResourceValidator().validate_file(path)
        assert result.resource_name == "patient.json"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ResourceLoadError):
            ResourceValidator().validate_file(tmp_path / "missing.json")


class TestValidateDirectory:
    """Test directory batch validation."""

    def test_counts_and_progress(
        self,
        write_resource: WriteResource,
        patient_resource: dict[str, object],
        tmp_path: Path,
    ) -> None:
        """N files with M failures: summary matches and progress fires N times."""
        write_resource("a_patient.json", patient_resource)
        write_resource("b_obs.json", _invalid_observation("b"))
        write_resource("c_patient.json", patient_resource)
        write_resource("d_obs.json", _invalid_observation("d"))
        write_resource("e_broken.json", "{not json")

        progress: list[BatchValidationProgress] = []
        report = ResourceValidator().validate_directory(
            tmp_path / "resources", on_progress=progress.append
        )

        assert report.summary.total_resources == 5
        assert report.summary.failed_resources == 3
        assert report.summary.passed_resources == 2
        assert [p.current_resource for p in progress] == [1, 2, 3, 4, 5]
        assert all(p.total_resources == 5 for p in progress)
        assert progress[-1].progress_percentage == 100.0

    def test_discovery_order_is_lexical(
        self, write_resource: WriteResource, patient_resource: dict[str, object], tmp_path: Path
    ) -> None:
        write_resource("z.json", patient_resource)
        write_resource("sub/m.json", patient_resource)
        write_resource("a.xml", "<Patient xmlns='http://hl7.org/fhir'/>")
        write_resource("notes.txt", "ignored")

        report = ResourceValidator().validate_directory(tmp_path / "resources")

        assert [r.resource_name for r in report.results] == ["a.xml", "m.json", "z.json"]

    def test_pattern(
        self, write_resource: WriteResource, patient_resource: dict[str, object], tmp_path: Path
    ) -> None:
        write_resource("patient.json", patient_resource)
        write_resource("patient.xml", "<Patient xmlns='http://hl7.org/fhir'/>")

        report = ResourceValidator().validate_directory(tmp_path / "resources", "*.json")

        assert [r.resource_name for r in report.results] == ["patient.json"]
        assert report.configuration.file_pattern == "*.json"

    def test_parse_error_recorded(self, write_resource: WriteResource, tmp_path: Path) -> None:
        write_resource("broken.json", "{not json")

        report = ResourceValidator().validate_directory(tmp_path / "resources")

        result = report.results[0]
        assert not result.is_valid
        assert result.issues[0].severity == IssueSeverity.FATAL
        assert result.issues[0].code == "PARSE_ERROR"
        assert result.issues[0].details is not None
        assert result.issues[0].details["Exception"] == "ResourceParseError"

    def test_empty_bundle_entry_is_parse_error(
        self, write_resource: WriteResource, tmp_path: Path
    ) -> None:
        write_resource(
            "bundle.xml",
            '<Bundle xmlns="http://hl7.org/fhir"><entry><resource/></entry></Bundle>',
        )

        report = ResourceValidator().validate_directory(tmp_path / "resources")

        assert report.results[0].issues[0].code == "PARSE_ERROR"

    def test_checker_failure_recorded(
        self, write_resource: WriteResource, patient_resource: dict[str, object], tmp_path: Path
    ) -> None:
        write_resource("patient.json", patient_resource)
        checker = MagicMock()
        checker.check.side_effect = RuntimeError("engine crashed")

        report = ResourceValidator(checker=checker).validate_directory(tmp_path / "resources")

        result = report.results[0]
        assert result.issues[0].code == "VALIDATION_ERROR"
        assert result.resource_type == "Patient"
        assert "engine crashed" in result.issues[0].description

    def test_unreadable_file_recorded(self, write_resource: WriteResource, tmp_path: Path) -> None:
        path = write_resource("bad.json", "x")
        path.write_bytes(b"\xff\xfe\x00")

        report = ResourceValidator().validate_directory(tmp_path / "resources")

        assert report.results[0].issues[0].code == "FILE_PROCESSING_ERROR"

    def test_empty_directory(self, tmp_path: Path) -> None:
        (tmp_path / "empty").mkdir()
        report = ResourceValidator().validate_directory(tmp_path / "empty")

        assert report.results == []
        assert report.summary.total_resources == 0
        assert report.summary.pass_rate == 0.0

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ResourceLoadError, match="Directory not found"):
            ResourceValidator().validate_directory(tmp_path / "nope")

    def test_cancel_between_files(
        self, write_resource: WriteResource, patient_resource: dict[str, object], tmp_path: Path
    ) -> None:
        for name in ("a.json", "b.json", "c.json"):
            write_resource(name, patient_resource)
        cancel = threading.Event()
        seen: list[int] = []

        def on_progress(progress: BatchValidationProgress) -> None:
            seen.append(progress.current_resource)
            cancel.set()

        with pytest.raises(ValidationCancelledError):
            ResourceValidator().validate_directory(
                tmp_path / "resources", on_progress=on_progress, cancel=cancel
            )

        assert seen == [1]

    def test_parallel_keeps_discovery_order(
        self, write_resource: WriteResource, tmp_path: Path
    ) -> None:
        """Early files finish last, yet results and progress stay in order."""
        ids = ["r1", "r2", "r3", "r4"]
        for resource_id in ids:
            write_resource(
                f"{resource_id}.json", {"resourceType": "Patient", "id": resource_id}
            )
        checker = _SlowChecker({"r1": 0.2, "r2": 0.1})

        progress: list[BatchValidationProgress] = []
        report = ResourceValidator(checker=checker, max_workers=4).validate_directory(
            tmp_path / "resources", on_progress=progress.append
        )

        assert [r.resource_name for r in report.results] == [f"{i}.json" for i in ids]
        assert [p.current_resource for p in progress] == [1, 2, 3, 4]
        assert [p.current_resource_name for p in progress] == [f"{i}.json" for i in ids]
        assert report.performance.workers == 4

    def test_invalid_worker_count(self) -> None:
        with pytest.raises(ValueError):
            ResourceValidator(max_workers=0)


class TestValidateBatch:
    """Test in-memory batch validation."""

    def test_batch(
        self, patient_resource: dict[str, object], observation_resource: dict[str, object]
    ) -> None:
        progress: list[BatchValidationProgress] = []
        report = ResourceValidator().validate_batch(
            [patient_resource, observation_resource, _invalid_observation("x")],
            on_progress=progress.append,
            batch_name="Nightly import",
        )

        assert report.batch_name == "Nightly import"
        assert report.summary.total_resources == 3
        assert report.summary.failed_resources == 1
        assert [p.current_resource_name for p in progress] == ["patient-001", "obs-001", "x"]
        assert all(p.stage == "Validating resources" for p in progress)

    def test_checker_failure_recorded(self, patient_resource: dict[str, object]) -> None:
        checker = MagicMock()
        checker.check.side_effect = RuntimeError("boom")

        report = ResourceValidator(checker=checker).validate_batch([patient_resource])

        assert report.results[0].issues[0].code == "VALIDATION_ERROR"
        assert report.summary.failed_resources == 1

    def test_default_batch_name(self) -> None:
        report = ResourceValidator().validate_batch([])
        assert report.batch_name == "Batch Validation: 0 resources"
