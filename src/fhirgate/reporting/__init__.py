"""fhirgate reporting: render batch reports to json, csv, console and html.

Public API for reporting module.
"""

from fhirgate.reporting.models import ReportFormat, ReportOutput
from fhirgate.reporting.renderers import (
    RENDERERS,
    render,
    render_console,
    render_csv,
    render_html,
    render_json,
)
from fhirgate.reporting.writer import parse_formats, report_path, write_reports

__all__ = [
    "RENDERERS",
    "ReportFormat",
    "ReportOutput",
    "parse_formats",
    "render",
    "render_console",
    "render_csv",
    "render_html",
    "render_json",
    "report_path",
    "write_reports",
]
