"""Safe conversions from loosely-typed vendor values to validator-ready values.

Every converter is pure. Failure is reported by returning ``None`` (or ``False``
for length checks), never by raising, so callers can skip, default or escalate
per field. Coded-value mapping never fails: unmapped input resolves to the
``unknown`` code.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import StrEnum

from dateutil import parser as dateutil_parser
from email_validator import EmailNotValidError
from email_validator import validate_email as _check_email

from fhirgate.normalize.models import AdministrativeGender, ObservationStatus
from fhirgate.normalize.redaction import sanitize_log_value

logger = logging.getLogger(__name__)

DEFAULT_GENDER_MAPPINGS: dict[str, AdministrativeGender] = {
    "m": AdministrativeGender.MALE,
    "male": AdministrativeGender.MALE,
    "1": AdministrativeGender.MALE,
    "f": AdministrativeGender.FEMALE,
    "female": AdministrativeGender.FEMALE,
    "2": AdministrativeGender.FEMALE,
    "o": AdministrativeGender.OTHER,
    "other": AdministrativeGender.OTHER,
    "3": AdministrativeGender.OTHER,
    "u": AdministrativeGender.UNKNOWN,
    "unknown": AdministrativeGender.UNKNOWN,
    "4": AdministrativeGender.UNKNOWN,
}

DEFAULT_OBSERVATION_STATUS_MAPPINGS: dict[str, ObservationStatus] = {
    "final": ObservationStatus.FINAL,
    "preliminary": ObservationStatus.PRELIMINARY,
    "amended": ObservationStatus.AMENDED,
    "corrected": ObservationStatus.CORRECTED,
    "cancelled": ObservationStatus.CANCELLED,
    "entered-in-error": ObservationStatus.ENTERED_IN_ERROR,
    "unknown": ObservationStatus.UNKNOWN,
    "complete": ObservationStatus.FINAL,
    "partial": ObservationStatus.PRELIMINARY,
    "reviewed": ObservationStatus.FINAL,
}

NULL_TOKENS = frozenset({"NULL", "N/A", "UNKNOWN"})

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
_CA_POSTAL_RE = re.compile(r"^[A-Z]\d[A-Z]\d[A-Z]\d$")


def parse_date(value: str | None, formats: Iterable[str]) -> datetime | None:
    """Parse a vendor date string.

    Each strptime format is tried in the given order; the first match wins. When
    none match, a single general-purpose dateutil parse is attempted.

    Args:
        value: Raw date string
        formats: Ordered strptime patterns

    Returns:
        Parsed datetime, or None when nothing matches
    """
    if value is None or not value.strip():
        return None

    clean = value.strip()

    for fmt in formats:
        try:
            return datetime.strptime(clean, fmt)
        except ValueError:
            continue

    try:
        return dateutil_parser.parse(clean)
    except (ValueError, OverflowError):
        logger.debug("Unparseable date value %s", sanitize_log_value(value, "Date"))
        return None


def _map_code[CodeT: StrEnum](
    value: str | None,
    mappings: Mapping[str, str],
    defaults: Mapping[str, CodeT],
    code_type: type[CodeT],
    unknown: CodeT,
) -> CodeT:
    if value is None or not value.strip():
        return unknown

    clean = value.strip()

    # Caller table: exact key match, target parsed case-insensitively
    if clean in mappings:
        target = mappings[clean].strip().lower()
        try:
            return code_type(target)
        except ValueError:
            logger.warning(
                "Mapping for %s points at unknown %s code %r",
                sanitize_log_value(clean, "code"),
                code_type.__name__,
                target,
            )
            return unknown

    return defaults.get(clean.lower(), unknown)


def map_gender(value: str | None, mappings: Mapping[str, str]) -> AdministrativeGender:
    """Map a vendor gender code to an AdministrativeGender.

    Empty and unrecognized input map to ``unknown``.
    """
    return _map_code(
        value,
        mappings,
        DEFAULT_GENDER_MAPPINGS,
        AdministrativeGender,
        AdministrativeGender.UNKNOWN,
    )


def map_observation_status(value: str | None, mappings: Mapping[str, str]) -> ObservationStatus:
    """Map a vendor observation status to an ObservationStatus.

    Empty and unrecognized input map to ``unknown``.
    """
    return _map_code(
        value,
        mappings,
        DEFAULT_OBSERVATION_STATUS_MAPPINGS,
        ObservationStatus,
        ObservationStatus.UNKNOWN,
    )


def normalize_phone(value: str | None, default_prefix: str) -> str | None:
    """Normalize a phone number to international format.

    Args:
        value: Raw phone number
        default_prefix: Country prefix applied to national numbers (e.g. "+1")

    Returns:
        Normalized number, or None when no safe normalization exists
    """
    if value is None or not value.strip():
        return None

    stripped = re.sub(r"[^\d+]", "", value)
    digits = stripped.replace("+", "")
    if not digits:
        return None

    if stripped.startswith("+"):
        return "+" + digits

    if len(digits) == 10:
        return default_prefix + digits

    if len(digits) == 11 and digits.startswith("1"):
        return "+" + digits

    if 7 <= len(digits) <= 15:
        return default_prefix + digits

    return None


def validate_email(value: str | None) -> str | None:
    """Validate and normalize an email address.

    The trimmed, lowercased address is accepted only if strict parsing returns
    it unchanged.
    """
    if value is None or not value.strip():
        return None

    clean = value.strip().lower()

    try:
        parsed = _check_email(clean, check_deliverability=False)
    except EmailNotValidError:
        return None

    if parsed.normalized != clean:
        return None
    return clean


def normalize_postal_code(value: str | None, country_code: str) -> str | None:
    """Normalize a postal code using country-specific rules.

    US codes must be 5 or 9 digits (ZIP / ZIP+4). Canadian codes must match
    A1A1A1. Other countries are passed through trimmed and uppercased.
    """
    if value is None or not value.strip():
        return None

    clean = value.strip().upper()
    country = country_code.strip().upper()

    if country == "US":
        digits = re.sub(r"\D", "", clean)
        if len(digits) == 5:
            return digits
        if len(digits) == 9:
            return f"{digits[:5]}-{digits[5:]}"
        return None

    if country == "CA":
        compact = clean.replace(" ", "")
        if _CA_POSTAL_RE.match(compact):
            return f"{compact[:3]} {compact[3:]}"
        return None

    return clean


def parse_observation_value(value: str | None) -> Decimal | None:
    """Parse a numeric observation value.

    NULL, N/A and UNKNOWN are explicit non-values. Thousands separators and
    currency/percent symbols are stripped before parsing.
    """
    if value is None or not value.strip():
        return None

    clean = value.strip()
    if clean.upper() in NULL_TOKENS:
        return None

    clean = clean.replace(",", "").replace("$", "").replace("%", "").strip()
    if not _NUMBER_RE.match(clean):
        return None

    try:
        return Decimal(clean)
    except InvalidOperation:
        return None


def validate_field_length(
    field_name: str, value: str | None, max_lengths: Mapping[str, int]
) -> bool:
    """Check a value against the configured maximum length for its field.

    Fields without a configured limit always pass. The limit is inclusive.
    """
    if not value:
        return True

    max_length = max_lengths.get(field_name)
    if max_length is None:
        return True
    return len(value) <= max_length
