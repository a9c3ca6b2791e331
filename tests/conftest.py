"""Shared test fixtures."""

import json
import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep FHIRGATE_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("FHIRGATE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Remove handlers installed by CLI runs so tests stay independent."""
    yield
    logger = logging.getLogger("fhirgate")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def patient_resource() -> dict[str, object]:
    """A Patient that passes the base Patient profile."""
    return {
        "resourceType": "Patient",
        "id": "patient-001",
        "identifier": [{"system": "urn:oid:1.2.36.146.595.217.0.1", "value": "12345"}],
        "name": [{"family": "Chalmers", "given": ["Peter", "James"]}],
        "gender": "male",
        "birthDate": "1974-12-25",
    }


@pytest.fixture
def observation_resource() -> dict[str, object]:
    """An Observation that passes the base Observation profile."""
    return {
        "resourceType": "Observation",
        "id": "obs-001",
        "status": "final",
        "code": {"coding": [{"system": "http://loinc.org", "code": "8867-4"}]},
        "subject": {"reference": "Patient/patient-001"},
        "valueQuantity": {"value": 72, "unit": "beats/minute"},
    }


@pytest.fixture
def write_resource(tmp_path: Path) -> Callable[[str, object], Path]:
    """Write a resource (dict as JSON, str as-is) under tmp_path/resources."""
    root = tmp_path / "resources"
    root.mkdir(exist_ok=True)

    def _write(relative: str, content: object) -> Path:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        text = content if isinstance(content, str) else json.dumps(content)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
