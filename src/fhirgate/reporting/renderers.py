"""Renderers projecting a finalized batch report into output formats.

Renderers only read the report. Result order is the processing order and issue
order is the checker order; neither is re-sorted.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Callable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from fhirgate.errors import ReportGenerationError
from fhirgate.reporting.models import ReportFormat
from fhirgate.types import IssueSeverity
from fhirgate.validation.models import BatchValidationReport, ValidationResult

Renderer = Callable[[BatchValidationReport, bool], str]

CSV_COLUMNS = [
    "ResourceName",
    "ResourceType",
    "IsValid",
    "IssueCount",
    "ValidationDurationMs",
    "Issues",
]

_RULE_WIDTH = 80

_SEVERITY_STYLE = {
    IssueSeverity.INFORMATION: "cyan",
    IssueSeverity.WARNING: "yellow",
    IssueSeverity.ERROR: "red",
    IssueSeverity.FATAL: "bold magenta",
}

_HTML_FORMAT = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>FHIR Validation Report</title>
<style>
{stylesheet}
body {{
    color: {foreground};
    background-color: {background};
}}
</style>
</head>
<body>
<pre style="font-family:Menlo,'DejaVu Sans Mono',consolas,'Courier New',monospace"><code style="font-family:inherit">{code}</code></pre>
</body>
</html>
"""


def format_duration(duration_ms: float) -> str:
    """Format milliseconds as mm:ss."""
    total_seconds = int(duration_ms // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


def _severity_counts(report: BatchValidationReport) -> list[tuple[str, int]]:
    def rank(item: tuple[str, int]) -> int:
        try:
            return IssueSeverity(item[0]).rank
        except ValueError:
            return -1

    return sorted(report.summary.issues_by_severity.items(), key=rank)


def _status(result: ValidationResult) -> str:
    return "VALID" if result.is_valid else "INVALID"


def render_json(report: BatchValidationReport, verbose: bool = False) -> str:
    """Full serialization; ``BatchValidationReport.model_validate_json`` reads it back."""
    return report.model_dump_json(indent=2)


def render_csv(report: BatchValidationReport, verbose: bool = False) -> str:
    """One row per resource, for spreadsheet import."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for result in report.results:
        issues = "; ".join(
            f"{i.severity.value}:{i.code or ''}:{i.description}" for i in result.issues
        )
        writer.writerow(
            [
                result.resource_name,
                result.resource_type,
                result.is_valid,
                len(result.issues),
                f"{result.duration_ms:.0f}",
                issues,
            ]
        )
    return buffer.getvalue()


def render_console(report: BatchValidationReport, verbose: bool = False) -> str:
    """Narrative terminal report; ``verbose`` adds every issue per resource."""
    summary = report.summary
    perf = report.performance
    lines = [
        "=" * _RULE_WIDTH,
        "FHIR VALIDATION REPORT",
        f"Batch: {report.batch_name}",
        f"Generated: {report.end_time:%Y-%m-%d %H:%M:%S} UTC",
        "=" * _RULE_WIDTH,
        "",
        "SUMMARY:",
        f"  Total Resources: {summary.total_resources}",
        f"  Passed:          {summary.passed_resources}",
        f"  Failed:          {summary.failed_resources}",
        f"  Warnings:        {summary.warning_resources}",
        f"  Total Issues:    {summary.total_issues}",
        f"  Pass Rate:       {summary.pass_rate:.1f}%",
        f"  Threshold:       {report.configuration.pass_rate_threshold:.1f}%",
        f"  Duration:        {format_duration(report.total_duration_ms)}",
        "",
        f"OVERALL STATUS: {'PASSED' if summary.overall_success else 'FAILED'}",
        "",
        "PERFORMANCE:",
        f"  Average Time:    {perf.average_validation_ms:.0f}ms",
        f"  Resources/Sec:   {perf.resources_per_second:.2f}",
        "",
    ]

    severity_counts = _severity_counts(report)
    if severity_counts:
        lines.append("ISSUES BY SEVERITY:")
        lines.extend(f"  {severity}: {count}" for severity, count in severity_counts)
        lines.append("")

    if verbose:
        lines.append("DETAILED RESULTS:")
        lines.append("-" * _RULE_WIDTH)
        for result in report.results:
            lines.append(
                f"{result.resource_name} ({result.resource_type}): {_status(result)} - "
                f"{len(result.issues)} issues - {result.duration_ms:.0f}ms"
            )
            for issue in result.issues:
                lines.append(f"  [{issue.severity.value}] {issue.code or '-'}: {issue.description}")
                if issue.location:
                    lines.append(f"    Path: {issue.location}")
            lines.append("")

    return "\n".join(lines) + "\n"


def render_html(report: BatchValidationReport, verbose: bool = False) -> str:
    """Self-contained HTML document with summary and per-resource detail.

    Issue detail is always included, so ``verbose`` has no effect.
    """
    console = Console(
        record=True,
        width=120,
        file=io.StringIO(),
        force_terminal=True,
        color_system="truecolor",
    )
    summary = report.summary

    console.print(
        Panel(
            f"[bold]FHIR Validation Report[/bold]\n{escape(report.batch_name)}\n"
            f"Generated: {report.end_time:%Y-%m-%d %H:%M:%S} UTC",
            border_style="blue",
        )
    )

    overview = Table(title="Summary", show_header=False)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Total Resources", str(summary.total_resources))
    overview.add_row("Passed", f"[green]{summary.passed_resources}[/green]")
    overview.add_row("Failed", f"[red]{summary.failed_resources}[/red]")
    overview.add_row("Warnings", f"[yellow]{summary.warning_resources}[/yellow]")
    overview.add_row("Total Issues", str(summary.total_issues))
    overview.add_row("Pass Rate", f"{summary.pass_rate:.1f}%")
    overview.add_row("Threshold", f"{report.configuration.pass_rate_threshold:.1f}%")
    overview.add_row("Duration", format_duration(report.total_duration_ms))
    overview.add_row("Average Time", f"{report.performance.average_validation_ms:.0f}ms")
    overview.add_row("Resources/Second", f"{report.performance.resources_per_second:.2f}")
    for severity, count in _severity_counts(report):
        overview.add_row(f"Issues ({severity})", str(count))
    console.print(overview)

    status_style = "bold green" if summary.overall_success else "bold red"
    status_text = "PASSED" if summary.overall_success else "FAILED"
    console.print(f"[{status_style}]Overall Status: {status_text}[/{status_style}]\n")

    results = Table(title="Detailed Results")
    results.add_column("Resource")
    results.add_column("Type")
    results.add_column("Status")
    results.add_column("Issues", justify="right")
    results.add_column("Duration", justify="right")
    for result in report.results:
        style = "green" if result.is_valid else "red"
        results.add_row(
            escape(result.resource_name),
            escape(result.resource_type),
            f"[{style}]{_status(result)}[/{style}]",
            str(len(result.issues)),
            f"{result.duration_ms:.0f}ms",
        )
    console.print(results)

    for result in report.results:
        if not result.issues:
            continue
        issues = Table(title=escape(result.resource_name), title_justify="left")
        issues.add_column("Severity")
        issues.add_column("Code")
        issues.add_column("Location")
        issues.add_column("Description")
        for issue in result.issues:
            style = _SEVERITY_STYLE[issue.severity]
            issues.add_row(
                f"[{style}]{issue.severity.value}[/{style}]",
                escape(issue.code or ""),
                escape(issue.location or ""),
                escape(issue.description),
            )
        console.print(issues)

    return console.export_html(inline_styles=True, code_format=_HTML_FORMAT)


RENDERERS: dict[ReportFormat, Renderer] = {
    ReportFormat.JSON: render_json,
    ReportFormat.CSV: render_csv,
    ReportFormat.CONSOLE: render_console,
    ReportFormat.HTML: render_html,
}


def render(
    report: BatchValidationReport, report_format: ReportFormat, verbose: bool = False
) -> str:
    """Render a report in one format.

    Raises:
        ReportGenerationError: If the renderer fails
    """
    renderer = RENDERERS[report_format]
    try:
        return renderer(report, verbose)
    except Exception as e:
        raise ReportGenerationError(
            report_format.value, f"Failed to generate {report_format.value} report: {e}"
        ) from e
