"""Conformance checker interface and the built-in structural checker.

Any object with a ``check(resource, profile_url)`` method returning an ordered
list of ValidationIssue can be plugged into the orchestrator. StructuralChecker
is the default: it covers element presence, id syntax and required bindings for
the base FHIR profiles and a set of US Core profiles. It does not evaluate
StructureDefinitions.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from fhirgate.types import IssueSeverity, ValidationIssue

BASE_PROFILE_PREFIX = "http://hl7.org/fhir/StructureDefinition/"

US_CORE_PROFILES: dict[str, str] = {
    "http://hl7.org/fhir/us/core/StructureDefinition/us-core-patient": "Patient",
    "http://hl7.org/fhir/us/core/StructureDefinition/us-core-practitioner": "Practitioner",
    "http://hl7.org/fhir/us/core/StructureDefinition/us-core-organization": "Organization",
    "http://hl7.org/fhir/us/core/StructureDefinition/us-core-condition": "Condition",
    "http://hl7.org/fhir/us/core/StructureDefinition/us-core-observation-lab": "Observation",
    "http://hl7.org/fhir/us/core/StructureDefinition/us-core-medicationrequest": "MedicationRequest",
    "http://hl7.org/fhir/us/core/StructureDefinition/us-core-encounter": "Encounter",
}

# Elements with minimum cardinality 1 in the base resource definitions
BASE_REQUIRED: dict[str, list[str]] = {
    "Observation": ["status", "code"],
    "Condition": ["subject"],
    "Encounter": ["status", "class"],
    "MedicationRequest": ["status", "intent", "medication[x]", "subject"],
}

US_CORE_REQUIRED: dict[str, dict[str, list[str]]] = {
    "Patient": {
        "must_have": ["identifier", "name", "gender"],
        "must_support": ["birthDate", "address", "telecom", "communication"],
    },
    "Practitioner": {"must_have": ["identifier", "name"], "must_support": ["telecom"]},
    "Organization": {"must_have": ["active", "name"], "must_support": ["identifier", "address"]},
    "Condition": {
        "must_have": ["category", "code", "subject"],
        "must_support": ["clinicalStatus", "verificationStatus", "onset[x]", "recordedDate"],
    },
    "Observation": {
        "must_have": ["status", "category", "code", "subject"],
        "must_support": ["effective[x]", "value[x]", "dataAbsentReason"],
    },
    "MedicationRequest": {
        "must_have": ["status", "intent", "medication[x]", "subject", "requester"],
        "must_support": ["authoredOn", "dosageInstruction"],
    },
    "Encounter": {
        "must_have": ["status", "class", "type", "subject"],
        "must_support": ["period", "reasonCode", "hospitalization"],
    },
}

REQUIRED_BINDINGS: dict[str, frozenset[str]] = {
    "Patient.gender": frozenset({"male", "female", "other", "unknown"}),
    "Observation.status": frozenset(
        {
            "registered",
            "preliminary",
            "final",
            "amended",
            "corrected",
            "cancelled",
            "entered-in-error",
            "unknown",
        }
    ),
    "Encounter.status": frozenset(
        {
            "planned",
            "arrived",
            "triaged",
            "in-progress",
            "onleave",
            "finished",
            "cancelled",
            "entered-in-error",
            "unknown",
        }
    ),
    "MedicationRequest.status": frozenset(
        {
            "active",
            "on-hold",
            "cancelled",
            "completed",
            "entered-in-error",
            "stopped",
            "draft",
            "unknown",
        }
    ),
}

_ID_RE = re.compile(r"^[A-Za-z0-9\-.]{1,64}$")


@runtime_checkable
class ConformanceChecker(Protocol):
    """External conformance engine contract."""

    def check(self, resource: Mapping[str, object], profile_url: str) -> list[ValidationIssue]:
        """Check a parsed resource against a profile, returning issues in order."""
        ...


def default_profile_url(resource_type: str, overrides: Mapping[str, str] | None = None) -> str:
    """Resolve the profile used when none is requested.

    Args:
        resource_type: FHIR resource type name
        overrides: Configured per-type default profiles

    Returns:
        Configured profile, else the base StructureDefinition URL
    """
    if not resource_type:
        raise ValueError("Resource type cannot be empty")
    if overrides and resource_type in overrides:
        return overrides[resource_type]
    return f"{BASE_PROFILE_PREFIX}{resource_type}"


def _has_element(resource: Mapping[str, object], element: str) -> bool:
    if element.endswith("[x]"):
        prefix = element[:-3]
        return any(
            key.startswith(prefix)
            and key[len(prefix) : len(prefix) + 1].isupper()
            and resource[key] not in (None, "", [], {})
            for key in resource
        )
    return resource.get(element) not in (None, "", [], {})


class StructuralChecker:
    """Built-in checker covering presence, id syntax and required bindings."""

    def check(self, resource: Mapping[str, object], profile_url: str) -> list[ValidationIssue]:
        resource_type = str(resource.get("resourceType") or "")
        issues: list[ValidationIssue] = []

        if not resource_type:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.FATAL,
                    code="structure",
                    description="Resource has no resourceType",
                    location="Resource",
                )
            )
            return issues

        us_core_type = US_CORE_PROFILES.get(profile_url)
        base_url = f"{BASE_PROFILE_PREFIX}{resource_type}"

        if us_core_type is not None and us_core_type != resource_type:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    code="structure",
                    description=(
                        f"Profile {profile_url} constrains {us_core_type}, "
                        f"not {resource_type}"
                    ),
                    location=resource_type,
                )
            )
            return issues

        if us_core_type is None and profile_url != base_url:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.INFORMATION,
                    code="informational",
                    description=f"Profile {profile_url} is not known; base rules applied",
                    location=resource_type,
                )
            )

        issues.extend(self._check_id(resource, resource_type))

        for element in BASE_REQUIRED.get(resource_type, []):
            if not _has_element(resource, element):
                issues.append(self._missing(resource_type, element, IssueSeverity.ERROR))

        if us_core_type is not None:
            rules = US_CORE_REQUIRED.get(resource_type, {})
            for element in rules.get("must_have", []):
                if element in BASE_REQUIRED.get(resource_type, []):
                    continue
                if not _has_element(resource, element):
                    issues.append(self._missing(resource_type, element, IssueSeverity.ERROR))
            for element in rules.get("must_support", []):
                if not _has_element(resource, element):
                    issues.append(self._missing(resource_type, element, IssueSeverity.WARNING))

        issues.extend(self._check_bindings(resource, resource_type))
        return issues

    def _check_id(
        self, resource: Mapping[str, object], resource_type: str
    ) -> list[ValidationIssue]:
        resource_id = resource.get("id")
        if resource_id is None:
            return []
        if isinstance(resource_id, str) and _ID_RE.match(resource_id):
            return []
        return [
            ValidationIssue(
                severity=IssueSeverity.ERROR,
                code="value",
                description=f"Invalid resource id {resource_id!r}",
                location=f"{resource_type}.id",
            )
        ]

    def _check_bindings(
        self, resource: Mapping[str, object], resource_type: str
    ) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for path, codes in REQUIRED_BINDINGS.items():
            bound_type, _, element = path.partition(".")
            if bound_type != resource_type:
                continue
            value = resource.get(element)
            if value is None:
                continue
            if not isinstance(value, str) or value not in codes:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.ERROR,
                        code="code-invalid",
                        description=(
                            f"Value {value!r} is not in the required value set for {path}"
                        ),
                        location=path,
                    )
                )
        return issues

    @staticmethod
    def _missing(resource_type: str, element: str, severity: IssueSeverity) -> ValidationIssue:
        kind = "required" if severity.is_blocking else "must-support"
        return ValidationIssue(
            severity=severity,
            code="required",
            description=f"Missing {kind} element {element}",
            location=f"{resource_type}.{element}",
        )
