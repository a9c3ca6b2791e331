"""Writing rendered reports to the output directory."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from fhirgate.errors import ReportGenerationError
from fhirgate.reporting.models import ReportFormat, ReportOutput
from fhirgate.reporting.renderers import render
from fhirgate.validation.models import BatchValidationReport

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


def parse_formats(names: Iterable[str]) -> tuple[list[ReportFormat], list[str]]:
    """Split requested format names into known formats and unknown names.

    Duplicates are dropped, first occurrence wins.
    """
    formats: list[ReportFormat] = []
    unknown: list[str] = []
    for name in names:
        try:
            fmt = ReportFormat(name.strip().lower())
        except ValueError:
            logger.warning("Unknown report format: %s", name)
            unknown.append(name)
            continue
        if fmt not in formats:
            formats.append(fmt)
    return formats, unknown


def report_path(output_dir: Path, report_format: ReportFormat, timestamp: datetime) -> Path:
    """Build ``validation-report-<yyyyMMdd-HHmmss>.<ext>`` inside ``output_dir``."""
    stamp = timestamp.strftime(TIMESTAMP_FORMAT)
    return output_dir / f"validation-report-{stamp}.{report_format.extension}"


def _write_exclusive(path: Path, content: str) -> None:
    with path.open("x", encoding="utf-8") as fh:
        fh.write(content)


def write_reports(
    report: BatchValidationReport,
    output_dir: Path,
    formats: Iterable[str],
    verbose: bool = False,
    timestamp: datetime | None = None,
) -> ReportOutput:
    """Render the report in every requested format.

    File formats are written to ``output_dir`` with exclusive creation; the
    console format is returned as text. A failure in one format is logged and
    recorded without affecting the others.

    Args:
        report: Finalized batch report
        output_dir: Directory for report files (created if missing)
        formats: Requested format names
        verbose: Include per-issue detail in the console format
        timestamp: Timestamp used in file names (local now if None)

    Returns:
        ReportOutput with written paths, console text and per-format failures
    """
    requested, unknown = parse_formats(formats)
    output = ReportOutput(skipped=unknown)
    stamp = timestamp or datetime.now()

    if any(fmt.persisted for fmt in requested):
        output_dir.mkdir(parents=True, exist_ok=True)

    for fmt in requested:
        try:
            content = render(report, fmt, verbose)
            if not fmt.persisted:
                output.console = content
                continue

            path = report_path(output_dir, fmt, stamp)
            try:
                _write_exclusive(path, content)
            except OSError as e:
                raise ReportGenerationError(
                    fmt.value, f"Failed to write {fmt.value} report to {path}: {e}"
                ) from e

            output.written[fmt] = path
            logger.info("%s report generated: %s", fmt.value.upper(), path)
        except ReportGenerationError as e:
            logger.error("Error generating %s report: %s", fmt.value, e)
            output.failures[fmt] = str(e)

    return output
