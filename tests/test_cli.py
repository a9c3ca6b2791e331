"""Smoke tests for the fhirgate CLI."""

import json
from collections.abc import Callable
from pathlib import Path

from typer.testing import CliRunner

from fhirgate.cli.main import app

runner = CliRunner()

WriteResource = Callable[[str, object], Path]


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0-dev" in result.output


def test_subcommands_listed_in_help() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for cmd in ("validate", "validate-directory", "normalize"):
        assert cmd in result.output


def test_validate_valid_resource(
    write_resource: WriteResource, patient_resource: dict[str, object]
) -> None:
    path = write_resource("patient.json", patient_resource)

    result = runner.invoke(app, ["validate", "--resource", str(path)])

    assert result.exit_code == 0
    assert "OVERALL STATUS: PASSED" in result.output


def test_validate_invalid_resource(write_resource: WriteResource) -> None:
    path = write_resource("obs.json", {"resourceType": "Observation"})

    result = runner.invoke(app, ["validate", "-r", str(path), "--verbose"])

    assert result.exit_code == 1
    assert "OVERALL STATUS: FAILED" in result.output


def test_validate_directory_writes_reports(
    write_resource: WriteResource, patient_resource: dict[str, object], tmp_path: Path
) -> None:
    write_resource("a.json", patient_resource)
    write_resource("nested/b.json", patient_resource)
    output = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "validate-directory",
            "--directory",
            str(tmp_path / "resources"),
            "--output",
            str(output),
            "-f",
            "json",
            "-f",
            "csv",
            "--workers",
            "2",
        ],
    )

    assert result.exit_code == 0
    assert "Validation passed: 2/2 resources passed" in result.output
    assert len(list(output.glob("validation-report-*.json"))) == 1
    assert len(list(output.glob("validation-report-*.csv"))) == 1


def test_validate_directory_below_threshold(
    write_resource: WriteResource, patient_resource: dict[str, object]
) -> None:
    directory = write_resource("a.json", patient_resource).parent
    write_resource("b.json", {"resourceType": "Observation"})

    result = runner.invoke(
        app, ["validate-directory", "-d", str(directory), "--pass-threshold", "75"]
    )

    assert result.exit_code == 1
    assert "Validation failed" in result.output


def test_validate_directory_missing(tmp_path: Path) -> None:
    result = runner.invoke(app, ["validate-directory", "-d", str(tmp_path / "nope")])

    assert result.exit_code == 1
    assert "Directory not found" in result.output


def test_threshold_from_environment(
    write_resource: WriteResource, patient_resource: dict[str, object]
) -> None:
    directory = write_resource("a.json", patient_resource).parent
    write_resource("b.json", {"resourceType": "Observation"})

    result = runner.invoke(
        app,
        ["validate-directory", "-d", str(directory)],
        env={"FHIRGATE_PASS_THRESHOLD": "50"},
    )

    assert result.exit_code == 0


def test_invalid_environment_exits_one(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["validate-directory", "-d", str(tmp_path)],
        env={"FHIRGATE_PASS_THRESHOLD": "abc"},
    )

    assert result.exit_code == 1
    assert "FHIRGATE_PASS_THRESHOLD" in result.output


def test_normalize_json(tmp_path: Path) -> None:
    path = tmp_path / "record.json"
    path.write_text(json.dumps({"PatientId": "P-1", "Gender": "M"}), encoding="utf-8")

    result = runner.invoke(app, ["normalize", "--record", str(path), "--format", "json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["kind"] == "patient"
    assert payload["values"]["Gender"] == "male"


def test_normalize_rejects_unknown_kind(tmp_path: Path) -> None:
    path = tmp_path / "record.json"
    path.write_text("{}", encoding="utf-8")

    result = runner.invoke(app, ["normalize", "-r", str(path), "--kind", "encounter"])

    assert result.exit_code != 0
