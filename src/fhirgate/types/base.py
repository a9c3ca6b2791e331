"""Foundational types for conformance findings.

These types are shared across all modules and form the core vocabulary of the system:
- IssueSeverity: ordered severity scale (information < warning < error < fatal)
- ValidationIssue: a single finding reported by a conformance checker

These types have no dependencies on other fhirgate modules (pure foundation layer).
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

_SEVERITY_RANK = {
    "information": 0,
    "warning": 1,
    "error": 2,
    "fatal": 3,
}


class IssueSeverity(StrEnum):
    """Severity of a validation issue.

    Serializes as the FHIR OperationOutcome severity code. Comparisons follow the
    severity scale, not string order.
    """

    INFORMATION = "information"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self.value]

    @property
    def is_blocking(self) -> bool:
        """Error and fatal issues make a resource invalid."""
        return self.rank >= _SEVERITY_RANK["error"]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, IssueSeverity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, IssueSeverity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, IssueSeverity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, IssueSeverity):
            return NotImplemented
        return self.rank >= other.rank


class ValidationIssue(BaseModel):
    """One conformance finding.

    Location is the element path inside the resource (FHIRPath style) when the
    checker reports one.
    """

    severity: IssueSeverity
    code: str | None = None
    description: str
    location: str | None = None
    details: dict[str, str] | None = None

    model_config = ConfigDict(frozen=True)
