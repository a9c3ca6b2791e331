"""fhirgate CLI application."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich import print as rprint

import fhirgate as fhirgate_pkg

if TYPE_CHECKING:
    from fhirgate.config import FhirGateSettings


class OutputFormat(StrEnum):
    """Output format for the normalize command."""

    human = "human"
    json = "json"


class RecordKindOption(StrEnum):
    """Vendor record kinds accepted by the normalize command."""

    patient = "patient"
    observation = "observation"


app = typer.Typer(
    name="fhirgate",
    help="FHIR resource validation, reporting and CI gating.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        rprint(f"fhirgate {fhirgate_pkg.__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """FHIR resource validation, reporting and CI gating."""
    from dotenv import load_dotenv

    load_dotenv()


def _settings(verbose: bool) -> FhirGateSettings:
    """Load settings from the environment and configure logging."""
    from rich.markup import escape

    from fhirgate.config import FhirGateSettings
    from fhirgate.errors import ConfigurationError
    from fhirgate.log import configure_logging

    try:
        settings = FhirGateSettings.from_env()
    except ConfigurationError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    problems = settings.validate_settings()
    if problems:
        for problem in problems:
            rprint(f"[red]Error:[/red] {problem}")
        raise typer.Exit(1)

    configure_logging(settings.log_level, verbose=verbose)
    return settings


@app.command("validate")
def validate(
    resource: Annotated[
        Path,
        typer.Option("--resource", "-r", help="Path to a FHIR resource file (.json or .xml)"),
    ],
    profiles: Annotated[
        list[str] | None,
        typer.Option("--profiles", "-p", help="Profile URLs to validate against"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output directory for reports"),
    ] = None,
    formats: Annotated[
        list[str] | None,
        typer.Option("--formats", "-f", help="Report formats: json, csv, console, html"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Include detailed issue output"),
    ] = False,
) -> None:
    """Validate a single FHIR resource."""
    from fhirgate.validation.cli import validate_command

    settings = _settings(verbose)
    exit_code = validate_command(
        resource=resource,
        profiles=profiles,
        output=output,
        formats=formats,
        verbose=verbose,
        settings=settings,
    )
    raise typer.Exit(exit_code)


@app.command("validate-directory")
def validate_directory(
    directory: Annotated[
        Path,
        typer.Option("--directory", "-d", help="Directory containing FHIR resource files"),
    ],
    pattern: Annotated[
        str | None,
        typer.Option("--pattern", help="File name pattern to match (default *.*)"),
    ] = None,
    profiles: Annotated[
        list[str] | None,
        typer.Option("--profiles", "-p", help="Profile URLs to validate against"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output directory for reports"),
    ] = None,
    formats: Annotated[
        list[str] | None,
        typer.Option("--formats", "-f", help="Report formats: json, csv, console, html"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log progress and include detailed issue output"),
    ] = False,
    pass_threshold: Annotated[
        float | None,
        typer.Option("--pass-threshold", help="Minimum pass rate percentage for CI success"),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", min=1, help="Worker threads for validation"),
    ] = None,
) -> None:
    """Validate all FHIR resources in a directory and gate on the pass rate."""
    from fhirgate.validation.cli import validate_directory_command

    settings = _settings(verbose)
    exit_code = validate_directory_command(
        directory=directory,
        pattern=pattern,
        profiles=profiles,
        output=output,
        formats=formats,
        verbose=verbose,
        pass_threshold=pass_threshold,
        workers=workers,
        settings=settings,
    )
    raise typer.Exit(exit_code)


@app.command("normalize")
def normalize(
    record: Annotated[
        Path,
        typer.Option("--record", "-r", help="Path to a vendor record (JSON object)"),
    ],
    kind: Annotated[
        RecordKindOption,
        typer.Option("--kind", "-k", help="Record kind"),
    ] = RecordKindOption.patient,
    format: Annotated[
        OutputFormat,
        typer.Option("--format", help="Output format"),
    ] = OutputFormat.human,
) -> None:
    """Normalize a vendor patient or observation record."""
    from fhirgate.validation.cli import normalize_command

    settings = _settings(verbose=False)
    exit_code = normalize_command(
        record_path=record,
        kind=kind.value,
        format=format.value,
        settings=settings,
    )
    raise typer.Exit(exit_code)
