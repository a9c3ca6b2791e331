"""Log-safe representations of vendor field values."""

import logging

SENSITIVE_FIELDS = frozenset(
    name.lower()
    for name in (
        "FirstName",
        "LastName",
        "Email",
        "PhoneNumber",
        "DateOfBirth",
        "Street",
        "PatientId",
        "MRN",
        "SSN",
    )
)

MAX_PLAIN_LENGTH = 50


def is_sensitive_field(field_name: str) -> bool:
    """Check whether a field name is always redacted (case-insensitive)."""
    return field_name.lower() in SENSITIVE_FIELDS


def _type_tag(value: object, text: str) -> str:
    return f"[{type(value).__name__}:{len(text)}chars]"


def sanitize_log_value(value: object, field_name: str) -> str:
    """Create a representation of ``value`` that is safe to log.

    Sensitive fields only ever log their type and length. Any other value longer
    than 50 characters is reduced the same way; shorter values pass through.

    Args:
        value: Original value (any type)
        field_name: Name of the field the value belongs to

    Returns:
        Log-safe string
    """
    if value is None:
        return "[null]"

    text = str(value)
    if not text:
        return "[empty]"

    if is_sensitive_field(field_name):
        return _type_tag(value, text)

    if len(text) > MAX_PLAIN_LENGTH:
        return _type_tag(value, text)

    return text


class RedactingFilter(logging.Filter):
    """Sanitize records that carry ``extra={"field": ..., "value": ...}``.

    The raw value is replaced on the record, and in the message arguments when
    it was passed there too.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        field = getattr(record, "field", None)
        if not isinstance(field, str) or not hasattr(record, "value"):
            return True
        # Records can pass both a logger filter and a handler filter
        if getattr(record, "redacted", False):
            return True

        raw = record.value
        safe = sanitize_log_value(raw, field)
        record.value = safe
        if isinstance(record.args, tuple) and raw is not None:
            record.args = tuple(safe if arg is raw else arg for arg in record.args)
        record.redacted = True
        return True
