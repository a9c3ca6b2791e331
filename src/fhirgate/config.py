"""Run configuration for fhirgate.

Uses BaseModel with explicit environment loading (FHIRGATE_* variables). The CLI
loads a ``.env`` file with python-dotenv before calling ``from_env``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field

from fhirgate.errors import ConfigurationError
from fhirgate.normalize.models import NormalizationConfig
from fhirgate.validation.models import ValidationConfiguration

ENV_PREFIX = "FHIRGATE_"


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from None


class FhirGateSettings(BaseModel):
    """Settings for validation runs, reporting and normalization."""

    pass_threshold: float = 95.0
    output_dir: Path = Path("./validation-output")
    formats: list[str] = Field(default_factory=lambda: ["console"])
    file_pattern: str = "*.*"
    log_level: str = "INFO"
    max_workers: int = 1
    max_issues_per_resource: int = 100
    include_information: bool = True
    default_profiles: dict[str, str] = Field(default_factory=dict)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> FhirGateSettings:
        """Build settings from FHIRGATE_* environment variables.

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        source = os.environ if env is None else env
        defaults = cls()

        formats = defaults.formats
        raw_formats = source.get(ENV_PREFIX + "FORMATS")
        if raw_formats:
            formats = [f.strip() for f in raw_formats.split(",") if f.strip()]

        normalization = defaults.normalization.model_copy(
            update={
                "default_country_code": source.get(
                    ENV_PREFIX + "DEFAULT_COUNTRY", defaults.normalization.default_country_code
                ),
                "default_phone_prefix": source.get(
                    ENV_PREFIX + "PHONE_PREFIX", defaults.normalization.default_phone_prefix
                ),
            }
        )

        return cls(
            pass_threshold=_env_float(source, "PASS_THRESHOLD", defaults.pass_threshold),
            output_dir=Path(source.get(ENV_PREFIX + "OUTPUT_DIR", str(defaults.output_dir))),
            formats=formats,
            log_level=source.get(ENV_PREFIX + "LOG_LEVEL", defaults.log_level).upper(),
            max_workers=_env_int(source, "MAX_WORKERS", defaults.max_workers),
            normalization=normalization,
        )

    def validate_settings(self) -> list[str]:
        """Check settings for problems.

        Returns:
            List of problems, empty if valid
        """
        errors: list[str] = []

        if not 0.0 <= self.pass_threshold <= 100.0:
            errors.append("pass_threshold must be between 0 and 100")

        if self.max_workers < 1:
            errors.append("max_workers must be at least 1")

        if self.max_issues_per_resource < 1:
            errors.append("max_issues_per_resource must be at least 1")

        country = self.normalization.default_country_code
        if len(country) != 2 or not country.isalpha():
            errors.append("default_country_code must be a valid 2-character country code")

        if not self.normalization.default_phone_prefix.strip():
            errors.append("default_phone_prefix cannot be empty")

        return errors

    def validation_configuration(
        self, profile_urls: list[str] | None = None
    ) -> ValidationConfiguration:
        """Project run settings onto the configuration recorded in reports."""
        return ValidationConfiguration(
            profile_urls=list(profile_urls or []),
            file_pattern=self.file_pattern,
            include_information=self.include_information,
            max_issues_per_resource=self.max_issues_per_resource,
            pass_rate_threshold=self.pass_threshold,
        )
