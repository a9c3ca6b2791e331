"""Reporting data models."""

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field


class ReportFormat(StrEnum):
    """Report output formats."""

    JSON = "json"
    CSV = "csv"
    CONSOLE = "console"
    HTML = "html"

    @property
    def extension(self) -> str:
        return "txt" if self is ReportFormat.CONSOLE else self.value

    @property
    def persisted(self) -> bool:
        """Console output goes to the terminal rather than the output directory."""
        return self is not ReportFormat.CONSOLE


class ReportOutput(BaseModel):
    """Outcome of rendering a report in several formats.

    Each format succeeds or fails on its own.
    """

    written: dict[ReportFormat, Path] = Field(default_factory=dict)
    console: str | None = None
    failures: dict[ReportFormat, str] = Field(default_factory=dict)
    skipped: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures
