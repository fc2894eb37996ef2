"""Command-line interface for the VC issuer conformance harness.

Example:
    >>> # From terminal:
    >>> # vc-conformance --version
    >>> # vc-conformance list-scenarios
    >>> # vc-conformance list-implementations --config issuers.json
    >>> # vc-conformance run --config issuers.json --parallel --format json
"""

import json
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer

from vc_conformance import __version__
from vc_conformance.errors import ConfigurationError
from vc_conformance.observability.logging import configure_logging
from vc_conformance.registry import ENV_CONFIG_PATH, ImplementationRegistry, load_registry
from vc_conformance.runner import run_matrix
from vc_conformance.scenarios import default_scenarios, select_scenarios

EXIT_FAILURES = 1
EXIT_CONFIGURATION = 2

app = typer.Typer(help="VC issuer conformance harness.")


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        envvar=ENV_CONFIG_PATH,
        help="JSON file mapping implementation names to issuer settings.",
    ),
]


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit.",
        ),
    ] = False,
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR.")
    ] = None,
    log_format: Annotated[
        Optional[str], typer.Option("--log-format", help="console or json.")
    ] = None,
) -> None:
    """Validate Verifiable Credential issuer services against the issuance data model."""
    configure_logging(log_format=log_format, log_level=log_level, force=True)


def _load(config: Optional[Path]) -> ImplementationRegistry:
    try:
        return load_registry(config)
    except ConfigurationError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(EXIT_CONFIGURATION) from e


@app.command("list-scenarios")
def list_scenarios() -> None:
    """List the scenario ids and the requirement each one checks."""
    for scenario in default_scenarios():
        suffix = " (skipped)" if scenario.skip_reason else ""
        typer.echo(f"{scenario.id:<36} {scenario.expectation.value:<16} {scenario.title}{suffix}")


@app.command("list-implementations")
def list_implementations(config: ConfigOption = None) -> None:
    """List configured implementations and any configuration problems."""
    registry = _load(config)
    for name, impl in registry.items():
        tags = f" [{', '.join(impl.tags)}]" if impl.tags else ""
        typer.echo(f"{name}: {impl.endpoint}{tags}")
    for error in registry.invalid:
        typer.echo(f"{error.implementation}: INVALID ({error.reason})")


@app.command()
def run(
    config: ConfigOption = None,
    implementation: Annotated[
        Optional[list[str]],
        typer.Option("--implementation", "-i", help="Only run these implementations."),
    ] = None,
    tag: Annotated[
        Optional[list[str]],
        typer.Option("--tag", "-t", help="Only run implementations with one of these tags."),
    ] = None,
    scenario: Annotated[
        Optional[list[str]],
        typer.Option("--scenario", "-s", help="Only run scenarios matching these patterns."),
    ] = None,
    exclude: Annotated[
        Optional[list[str]],
        typer.Option("--exclude", "-x", help="Skip scenarios matching these patterns."),
    ] = None,
    parallel: Annotated[
        bool, typer.Option("--parallel", help="Run implementations concurrently.")
    ] = False,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Report format.")
    ] = OutputFormat.TEXT,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Write the report to this file.")
    ] = None,
) -> None:
    """Run the scenario matrix and print a per-implementation report.

    Exits 0 when every scenario passed, 1 on conformance failures and 2 when
    the configuration could not be used.
    """
    registry = _load(config)
    try:
        registry = registry.filter(names=implementation, tags=tag)
    except ConfigurationError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(EXIT_CONFIGURATION) from e

    scenarios = select_scenarios(default_scenarios(), include=scenario, exclude=exclude)
    if not scenarios:
        typer.echo("Error: no scenarios selected", err=True)
        raise typer.Exit(EXIT_CONFIGURATION)
    if not registry and not registry.invalid:
        typer.echo("Error: no implementations selected", err=True)
        raise typer.Exit(EXIT_CONFIGURATION)

    report = run_matrix(registry, scenarios, parallel=parallel)

    if output_format is OutputFormat.JSON:
        rendered = json.dumps(report.to_dict(), indent=2)
    else:
        rendered = report.render_text()

    if output is not None:
        output.write_text(rendered + "\n", encoding="utf-8")
        typer.echo(f"Report written to {output}")
    else:
        typer.echo(rendered)

    if not report.passed:
        raise typer.Exit(EXIT_FAILURES)


if __name__ == "__main__":  # pragma: no cover
    app()
