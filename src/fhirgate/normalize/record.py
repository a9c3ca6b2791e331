"""Record-level normalization of vendor patient and observation data.

Applies the field converters to a flat vendor record. A field that cannot be
normalized is dropped from the output and reported as a problem; the record as
a whole is never rejected by raising.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

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
    FieldProblem,
    NormalizationConfig,
    NormalizationOutcome,
    RecordKind,
)
from fhirgate.normalize.redaction import RedactingFilter, sanitize_log_value

logger = logging.getLogger(__name__)
logger.addFilter(RedactingFilter())

_PATIENT_TEXT_FIELDS = ("PatientId", "FirstName", "LastName", "Street", "City", "State")
_OBSERVATION_TEXT_FIELDS = ("PatientId", "ObservationType", "Unit")


def _text(record: Mapping[str, object], field: str) -> str | None:
    raw = record.get(field)
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


class _Collector:
    """Accumulates normalized values and field problems for one record."""

    def __init__(self, kind: RecordKind, config: NormalizationConfig) -> None:
        self.kind = kind
        self.config = config
        self.values: dict[str, object] = {}
        self.problems: list[FieldProblem] = []

    def reject(self, field: str, reason: str, raw: object) -> None:
        logger.debug(
            "Rejected %s field %s (%s): %s",
            self.kind,
            field,
            reason,
            raw,
            extra={"field": field, "value": raw},
        )
        self.problems.append(
            FieldProblem(field=field, reason=reason, value=sanitize_log_value(raw, field))
        )

    def text(self, record: Mapping[str, object], field: str) -> None:
        value = _text(record, field)
        if value is None:
            return
        if not validate_field_length(field, value, self.config.field_max_lengths):
            self.reject(field, "exceeds maximum length", value)
            return
        self.values[field] = value

    def require(self, record: Mapping[str, object], fields: list[str]) -> None:
        for field in fields:
            if _text(record, field) is None:
                self.reject(field, "required field missing", record.get(field))

    def outcome(self) -> NormalizationOutcome:
        return NormalizationOutcome(kind=self.kind, values=self.values, problems=self.problems)


def normalize_patient_record(
    record: Mapping[str, object], config: NormalizationConfig
) -> NormalizationOutcome:
    """Normalize a vendor patient record.

    Args:
        record: Flat vendor record keyed by vendor field names
        config: Vendor normalization rules

    Returns:
        NormalizationOutcome with normalized values and per-field problems
    """
    out = _Collector(RecordKind.PATIENT, config)
    out.require(record, config.required_patient_fields)

    for field in _PATIENT_TEXT_FIELDS:
        out.text(record, field)

    raw_dob = _text(record, "DateOfBirth")
    if raw_dob is not None:
        parsed = parse_date(raw_dob, config.date_formats)
        if parsed is None:
            out.reject("DateOfBirth", "unrecognized date", raw_dob)
        else:
            out.values["DateOfBirth"] = parsed.date().isoformat()

    out.values["Gender"] = map_gender(_text(record, "Gender"), config.gender_mappings).value

    raw_phone = _text(record, "PhoneNumber")
    if raw_phone is not None:
        phone = normalize_phone(raw_phone, config.default_phone_prefix)
        if phone is None:
            out.reject("PhoneNumber", "not a dialable number", raw_phone)
        elif not validate_field_length("PhoneNumber", phone, config.field_max_lengths):
            out.reject("PhoneNumber", "exceeds maximum length", phone)
        else:
            out.values["PhoneNumber"] = phone

    raw_email = _text(record, "Email")
    if raw_email is not None:
        email = validate_email(raw_email)
        if email is None:
            out.reject("Email", "invalid address", raw_email)
        elif not validate_field_length("Email", email, config.field_max_lengths):
            out.reject("Email", "exceeds maximum length", email)
        else:
            out.values["Email"] = email

    raw_postal = _text(record, "PostalCode")
    if raw_postal is not None:
        country = _text(record, "Country") or config.default_country_code
        postal = normalize_postal_code(raw_postal, country)
        if postal is None:
            out.reject("PostalCode", f"invalid postal code for {country.upper()}", raw_postal)
        else:
            out.values["PostalCode"] = postal
        out.values["Country"] = country.upper()

    return out.outcome()


def normalize_observation_record(
    record: Mapping[str, object], config: NormalizationConfig
) -> NormalizationOutcome:
    """Normalize a vendor observation record.

    Args:
        record: Flat vendor record keyed by vendor field names
        config: Vendor normalization rules

    Returns:
        NormalizationOutcome with normalized values and per-field problems
    """
    out = _Collector(RecordKind.OBSERVATION, config)
    out.require(record, config.required_observation_fields)

    for field in _OBSERVATION_TEXT_FIELDS:
        out.text(record, field)

    out.values["Status"] = map_observation_status(
        _text(record, "Status"), config.observation_status_mappings
    ).value

    raw_value = _text(record, "Value")
    if raw_value is not None:
        number = parse_observation_value(raw_value)
        if number is None:
            out.reject("Value", "not a numeric value", raw_value)
        else:
            out.values["Value"] = number

    raw_effective = _text(record, "EffectiveDate")
    if raw_effective is not None:
        effective = parse_date(raw_effective, config.date_formats)
        if effective is None:
            out.reject("EffectiveDate", "unrecognized date", raw_effective)
        else:
            out.values["EffectiveDate"] = effective.isoformat()

    return out.outcome()


def normalize_record(
    record: Mapping[str, object], kind: RecordKind, config: NormalizationConfig
) -> NormalizationOutcome:
    """Dispatch to the normalizer for ``kind``."""
    if kind == RecordKind.PATIENT:
        return normalize_patient_record(record, config)
    return normalize_observation_record(record, config)
