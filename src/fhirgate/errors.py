"""Exception taxonomy for fhirgate.

Normalization never raises for bad data; everything here is reserved for input
errors, parse failures, checker failures, cancellation and report output.
"""

from __future__ import annotations

from pathlib import Path


class FhirGateError(Exception):
    """Base exception for fhirgate operations."""


class ConfigurationError(FhirGateError):
    """Settings are invalid or cannot be loaded."""


class ResourceLoadError(FhirGateError):
    """A resource file or directory cannot be found, read, or is unsupported."""

    def __init__(self, path: Path | str, message: str | None = None) -> None:
        self.path = Path(path)
        super().__init__(message or f"Failed to load resource from: {path}")


class ResourceParseError(FhirGateError):
    """Content does not conform to its declared encoding."""

    def __init__(self, content_type: str, message: str) -> None:
        self.content_type = content_type
        super().__init__(message)


class FhirValidationError(FhirGateError):
    """The conformance checker itself failed while validating a resource."""

    def __init__(
        self,
        message: str,
        resource_type: str | None = None,
        profile_url: str | None = None,
        errors: list[str] | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.profile_url = profile_url
        self.errors = errors or []
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        parts = [base]
        if self.resource_type:
            parts.append(f"resource_type={self.resource_type}")
        if self.profile_url:
            parts.append(f"profile={self.profile_url}")
        if self.errors:
            parts.append(f"cause={'; '.join(self.errors)}")
        return " | ".join(parts)


class ValidationCancelledError(FhirGateError):
    """Validation was cancelled before it could complete."""


class ReportGenerationError(FhirGateError):
    """A single report format failed to render or be written."""

    def __init__(self, report_format: str, message: str) -> None:
        self.report_format = report_format
        super().__init__(message)
