"""fhirgate validation: parse resources and run conformance checks.

Public API for validation module. CLI command functions live in
``fhirgate.validation.cli`` and are imported from there directly.
"""

from fhirgate.validation.checker import (
    ConformanceChecker,
    StructuralChecker,
    default_profile_url,
)
from fhirgate.validation.models import (
    BatchValidationProgress,
    BatchValidationReport,
    CiSummary,
    ValidationConfiguration,
    ValidationPerformanceMetrics,
    ValidationResult,
    ValidationSummary,
)
from fhirgate.validation.orchestrator import ProgressCallback, ResourceValidator
from fhirgate.validation.parser import ContentType, parse_resource, read_resource_file

__all__ = [
    "BatchValidationProgress",
    "BatchValidationReport",
    "CiSummary",
    "ConformanceChecker",
    "ContentType",
    "ProgressCallback",
    "ResourceValidator",
    "StructuralChecker",
    "ValidationConfiguration",
    "ValidationPerformanceMetrics",
    "ValidationResult",
    "ValidationSummary",
    "default_profile_url",
    "parse_resource",
    "read_resource_file",
]
