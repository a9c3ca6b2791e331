"""Normalization data models."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class AdministrativeGender(StrEnum):
    """FHIR administrative-gender codes."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    UNKNOWN = "unknown"


class ObservationStatus(StrEnum):
    """FHIR observation-status codes."""

    REGISTERED = "registered"
    PRELIMINARY = "preliminary"
    FINAL = "final"
    AMENDED = "amended"
    CORRECTED = "corrected"
    CANCELLED = "cancelled"
    ENTERED_IN_ERROR = "entered-in-error"
    UNKNOWN = "unknown"


class RecordKind(StrEnum):
    """Vendor record kinds understood by record-level normalization."""

    PATIENT = "patient"
    OBSERVATION = "observation"


class NormalizationConfig(BaseModel):
    """Vendor-specific normalization rules.

    Date formats are strptime patterns tried in order. Mapping keys are matched
    exactly (case-sensitive) before the built-in tables are consulted.
    """

    date_formats: list[str] = Field(
        default_factory=lambda: [
            "%Y-%m-%d",
            "%m/%d/%Y",
            "%d/%m/%Y",
            "%Y-%m-%dT%H:%M:%S",
            "%Y-%m-%dT%H:%M:%SZ",
            "%Y%m%d",
        ]
    )
    gender_mappings: dict[str, str] = Field(
        default_factory=lambda: {"M": "male", "F": "female", "O": "other", "U": "unknown"}
    )
    observation_status_mappings: dict[str, str] = Field(
        default_factory=lambda: {
            "complete": "final",
            "partial": "preliminary",
            "reviewed": "final",
        }
    )
    field_max_lengths: dict[str, int] = Field(
        default_factory=lambda: {
            "FirstName": 100,
            "LastName": 100,
            "Email": 254,
            "PhoneNumber": 20,
            "Street": 200,
            "City": 100,
            "State": 50,
            "PostalCode": 20,
        }
    )
    default_country_code: str = "US"
    default_phone_prefix: str = "+1"
    required_patient_fields: list[str] = Field(default_factory=lambda: ["PatientId"])
    required_observation_fields: list[str] = Field(
        default_factory=lambda: ["PatientId", "ObservationType"]
    )


class FieldProblem(BaseModel):
    """A vendor field that could not be normalized safely."""

    field: str
    reason: str
    value: str

    model_config = ConfigDict(frozen=True)


class NormalizationOutcome(BaseModel):
    """Result of normalizing one vendor record.

    ``value`` in a problem is always the redacted log-safe representation.
    """

    kind: RecordKind
    values: dict[str, object]
    problems: list[FieldProblem] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems

    @property
    def rejected_fields(self) -> list[str]:
        return [p.field for p in self.problems]
