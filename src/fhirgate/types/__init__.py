"""Foundation types shared by every fhirgate module."""

from fhirgate.types.base import IssueSeverity, ValidationIssue

__all__ = ["IssueSeverity", "ValidationIssue"]
