"""CLI commands for validation and normalization."""

import json
import logging
from pathlib import Path

import rich
from rich.markup import escape

from fhirgate.aggregation import single_result_report
from fhirgate.ci import EXIT_ERROR, EXIT_FAILURE, EXIT_SUCCESS, apply_threshold, evaluate
from fhirgate.config import FhirGateSettings
from fhirgate.errors import ResourceLoadError
from fhirgate.normalize import NormalizationOutcome, RecordKind, normalize_record
from fhirgate.reporting import write_reports
from fhirgate.validation.models import BatchValidationProgress, BatchValidationReport
from fhirgate.validation.orchestrator import ResourceValidator
from fhirgate.validation.parser import ContentType

logger = logging.getLogger(__name__)


def _build_validator(settings: FhirGateSettings, profiles: list[str] | None) -> ResourceValidator:
    return ResourceValidator(
        configuration=settings.validation_configuration(profiles),
        default_profiles=settings.default_profiles,
        max_workers=settings.max_workers,
    )


def _emit_reports(
    report: BatchValidationReport,
    output: Path,
    formats: list[str],
    verbose: bool,
) -> None:
    """Write file reports and print the console report if requested."""
    result = write_reports(report, output, formats, verbose=verbose)

    if result.console is not None:
        print(result.console, end="")

    for fmt, path in result.written.items():
        rich.print(f"[dim]{fmt.value.upper()} report: {escape(str(path))}[/dim]")

    for fmt, message in result.failures.items():
        rich.print(f"[yellow]Warning:[/yellow] {fmt.value} report failed: {escape(message)}")


def validate_command(
    resource: Path,
    profiles: list[str] | None = None,
    output: Path | None = None,
    formats: list[str] | None = None,
    verbose: bool = False,
    settings: FhirGateSettings | None = None,
) -> int:
    """Validate a single FHIR resource file.

    Args:
        resource: Path to a .json or .xml resource
        profiles: Profile URLs to validate against (default profile if None)
        output: Directory for report files
        formats: Report formats to produce
        verbose: Include per-issue detail in the console report
        settings: Run settings (environment if None)

    Returns:
        Exit code (0 = resource valid, 1 = invalid or error)
    """
    try:
        settings = settings or FhirGateSettings.from_env()
        logger.info("Starting validation for resource: %s", resource)

        if not resource.is_file():
            rich.print(f"[red]Error:[/red] Resource file not found: {escape(str(resource))}")
            return EXIT_ERROR

        try:
            ContentType.from_path(resource)
        except ResourceLoadError as e:
            rich.print(f"[red]Error:[/red] {escape(str(e))}")
            return EXIT_ERROR

        validator = _build_validator(settings, profiles)
        result = validator.validate_file(resource, profiles)

        # A single resource either passes or fails; no partial rate applies
        report = apply_threshold(
            single_result_report(result, settings.validation_configuration(profiles)), 100.0
        )

        _emit_reports(
            report,
            output or settings.output_dir,
            formats or settings.formats,
            verbose,
        )

        return EXIT_SUCCESS if result.is_valid else EXIT_FAILURE

    except Exception as e:
        logger.error("Error during validation", exc_info=True)
        rich.print(f"[red]Error:[/red] {escape(str(e))}")
        return EXIT_ERROR


def validate_directory_command(
    directory: Path,
    pattern: str | None = None,
    profiles: list[str] | None = None,
    output: Path | None = None,
    formats: list[str] | None = None,
    verbose: bool = False,
    pass_threshold: float | None = None,
    workers: int | None = None,
    settings: FhirGateSettings | None = None,
) -> int:
    """Validate every resource file in a directory and apply the CI policy.

    Args:
        directory: Root directory, searched recursively
        pattern: Glob applied to file names
        profiles: Profile URLs to validate against (default per type if None)
        output: Directory for report files
        formats: Report formats to produce
        verbose: Log per-file progress and include issue detail
        pass_threshold: Minimum pass rate percentage for success
        workers: Worker threads (1 = sequential)
        settings: Run settings (environment if None)

    Returns:
        Exit code from the CI verdict (0 = threshold met, 1 otherwise)
    """
    try:
        settings = settings or FhirGateSettings.from_env()
        threshold = settings.pass_threshold if pass_threshold is None else pass_threshold
        if workers is not None:
            settings = settings.model_copy(update={"max_workers": workers})

        logger.info("Starting batch validation for directory: %s", directory)

        if not directory.is_dir():
            rich.print(f"[red]Error:[/red] Directory not found: {escape(str(directory))}")
            return EXIT_ERROR

        def on_progress(progress: BatchValidationProgress) -> None:
            if verbose:
                logger.info(
                    "Progress: %d/%d (%.1f%%) - %s",
                    progress.current_resource,
                    progress.total_resources,
                    progress.progress_percentage,
                    progress.current_resource_name,
                )

        validator = _build_validator(settings, profiles)
        report = validator.validate_directory(
            directory,
            pattern or settings.file_pattern,
            profiles,
            on_progress=on_progress,
        )

        report, ci = evaluate(report, threshold)

        _emit_reports(
            report,
            output or settings.output_dir,
            formats or settings.formats,
            verbose,
        )

        color = "green" if ci.success else "red"
        rich.print(f"[{color}]{escape(ci.summary)}[/{color}]")
        if verbose:
            rich.print(f"[dim]{escape(ci.details)}[/dim]")

        return ci.exit_code

    except Exception as e:
        logger.error("Error during batch validation", exc_info=True)
        rich.print(f"[red]Error:[/red] {escape(str(e))}")
        return EXIT_ERROR


def normalize_command(
    record_path: Path,
    kind: str = "patient",
    format: str = "human",
    settings: FhirGateSettings | None = None,
) -> int:
    """Normalize one vendor record stored as a JSON object.

    Args:
        record_path: Path to the JSON record
        kind: Record kind: "patient" or "observation"
        format: Output format: "human" or "json"
        settings: Run settings (environment if None)

    Returns:
        Exit code (0 = every field normalized, 1 = problems or error)
    """
    try:
        settings = settings or FhirGateSettings.from_env()

        if not record_path.is_file():
            _print_error(f"Record file not found: {record_path}", format)
            return EXIT_ERROR

        try:
            record_kind = RecordKind(kind.lower())
        except ValueError:
            _print_error(f"Invalid record kind: {kind}", format)
            return EXIT_ERROR

        record = json.loads(record_path.read_text(encoding="utf-8"))
        if not isinstance(record, dict):
            _print_error("Record must be a JSON object", format)
            return EXIT_ERROR

        outcome = normalize_record(record, record_kind, settings.normalization)
        _output_outcome(outcome, format)

        return EXIT_SUCCESS if outcome.ok else EXIT_FAILURE

    except Exception as e:
        _print_error(str(e), format)
        return EXIT_ERROR


def _print_error(message: str, format: str) -> None:
    if format == "json":
        print(json.dumps({"error": message}))
    else:
        rich.print(f"[red]Error:[/red] {escape(message)}")


def _output_outcome(outcome: NormalizationOutcome, format: str) -> None:
    """Output a normalization outcome in the specified format.

    Args:
        outcome: NormalizationOutcome to output
        format: Output format ("human" or "json")
    """
    if format == "json":
        payload = outcome.model_dump(mode="json")
        payload["ok"] = outcome.ok
        print(json.dumps(payload, indent=2))
        return

    if outcome.ok:
        rich.print(f"\n[green]✓ {outcome.kind.value} record normalized[/green]\n")
    else:
        count = len(outcome.problems)
        rich.print(f"\n[red]✗ {outcome.kind.value} record has {count} rejected fields[/red]\n")

    for field, value in outcome.values.items():
        rich.print(f"  {escape(field)}: {escape(str(value))}")

    if outcome.problems:
        rich.print("")
        for problem in outcome.problems:
            rich.print(
                f"  [red]✗[/red] {escape(problem.field)}: {escape(problem.reason)} "
                f"({escape(problem.value)})"
            )

    rich.print("")
