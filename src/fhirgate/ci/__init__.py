"""fhirgate CI policy: threshold verdicts and exit codes."""

from fhirgate.ci.policy import (
    DEFAULT_PASS_THRESHOLD,
    EXIT_ERROR,
    EXIT_FAILURE,
    EXIT_SUCCESS,
    apply_threshold,
    ci_summary,
    error_ci_summary,
    evaluate,
)

__all__ = [
    "DEFAULT_PASS_THRESHOLD",
    "EXIT_ERROR",
    "EXIT_FAILURE",
    "EXIT_SUCCESS",
    "apply_threshold",
    "ci_summary",
    "error_ci_summary",
    "evaluate",
]
