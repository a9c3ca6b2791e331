"""fhirgate normalization: vendor value conversion and log redaction.

Public API for normalization module.
"""

from fhirgate.normalize.converters import (
    map_gender,
    map_observation_status,
    normalize_phone,
    normalize_postal_code,
    parse_date,
    parse_observation_value,
    validate_email,
    validate_field_length,
)
from fhirgate.normalize.models import (
    AdministrativeGender,
    FieldProblem,
    NormalizationConfig,
    NormalizationOutcome,
    ObservationStatus,
    RecordKind,
)
from fhirgate.normalize.record import (
    normalize_observation_record,
    normalize_patient_record,
    normalize_record,
)
from fhirgate.normalize.redaction import (
    SENSITIVE_FIELDS,
    RedactingFilter,
    is_sensitive_field,
    sanitize_log_value,
)

__all__ = [
    "SENSITIVE_FIELDS",
    "AdministrativeGender",
    "FieldProblem",
    "NormalizationConfig",
    "NormalizationOutcome",
    "ObservationStatus",
    "RecordKind",
    "RedactingFilter",
    "is_sensitive_field",
    "map_gender",
    "map_observation_status",
    "normalize_observation_record",
    "normalize_patient_record",
    "normalize_phone",
    "normalize_postal_code",
    "normalize_record",
    "parse_date",
    "parse_observation_value",
    "sanitize_log_value",
    "validate_email",
    "validate_field_length",
]
