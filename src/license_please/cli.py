from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from .aggregator import Aggregator
from .artifacts import bundle_artifacts
from .cancellation import Cancellation
from .errors import LicensePleaseError
from .license_classifier import EngineLicenseClassifier, ScanCodeEngine
from .license_finder import RecursiveLicenseFinder
from .module_resolver import GoModResolver, PythonEnvironmentResolver
from .policy import Policy, evaluate_policy, load_policy, write_github_check
from .reporting import write_report
from .types import Report, known_licenses


EXIT_POLICY_VIOLATION = 1
EXIT_PIPELINE_ERROR = 2


def _build_aggregator(
    ecosystem: str,
    scancode_bin: Optional[str],
    go_bin: Optional[str],
    workers: int,
) -> Aggregator:
    if ecosystem == "python":
        resolver = PythonEnvironmentResolver()
    else:
        resolver = GoModResolver(go_binary=go_bin)
    return Aggregator(
        resolver=resolver,
        finder=RecursiveLicenseFinder(),
        classifier=EngineLicenseClassifier(ScanCodeEngine(executable=scancode_bin)),
        max_workers=workers,
    )


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.group()
def main() -> None:
    """license-please: third-party license reports and policy gating."""


@main.command()
@click.argument(
    "project_dir",
    required=False,
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=str),
)
@click.option(
    "--ecosystem",
    type=click.Choice(["go", "python"], case_sensitive=False),
    default="go",
    show_default=True,
    help="Dependency manager used to resolve the project's modules.",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["markdown", "md", "json", "html"], case_sensitive=False),
    default="markdown",
    show_default=True,
    help="Output format for the report.",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True, path_type=str),
    help="Write the report to a file instead of stdout.",
)
@click.option(
    "--policy",
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="Policy YAML overriding the allow-list and granting per-module exceptions.",
)
@click.option(
    "--github-check-output",
    type=click.Path(dir_okay=False, writable=True, path_type=str),
    help="Write a GitHub Check-style JSON summary of the policy gate.",
)
@click.option(
    "--artifacts-dir",
    type=click.Path(file_okay=False, path_type=str),
    help="Copy every license/NOTICE file required for distribution into this directory.",
)
@click.option(
    "--timeout",
    type=float,
    envvar="LICENSE_PLEASE_TIMEOUT",
    help="Abort the run after this many seconds (env: LICENSE_PLEASE_TIMEOUT).",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Number of modules to scan concurrently.",
)
@click.option(
    "--scancode-bin",
    type=str,
    envvar="SCANCODE_BIN",
    help="ScanCode executable used to classify license text (env: SCANCODE_BIN).",
)
@click.option("--go-bin", type=str, help="Go executable used to list modules (defaults to `go`).")
@click.option("--verbose", is_flag=True, help="Log pipeline progress to stderr.")
def report(
    project_dir: str,
    ecosystem: str,
    fmt: str,
    output: Optional[str],
    policy: Optional[str],
    github_check_output: Optional[str],
    artifacts_dir: Optional[str],
    timeout: Optional[float],
    workers: int,
    scancode_bin: Optional[str],
    go_bin: Optional[str],
    verbose: bool,
) -> None:
    """Generate a third-party license report for PROJECT_DIR."""
    _configure_logging(verbose)

    aggregator = _build_aggregator(ecosystem.lower(), scancode_bin, go_bin, workers)
    try:
        license_files = aggregator.aggregate(project_dir, Cancellation(timeout=timeout))
    except LicensePleaseError as exc:
        click.echo(f"error: {exc}", err=True)
        raise SystemExit(EXIT_PIPELINE_ERROR)

    if not license_files:
        click.echo("No license files discovered; nothing to report.", err=True)

    try:
        policy_data = load_policy(Path(policy)) if policy else Policy()
    except (OSError, LicensePleaseError, ValueError, AttributeError, TypeError) as exc:
        click.echo(f"error: unable to load policy {policy}: {exc}", err=True)
        raise SystemExit(EXIT_PIPELINE_ERROR)
    evaluation = evaluate_policy(license_files, policy_data)

    report_data = Report(
        license_files=license_files,
        generated_at=datetime.now(),
        project_dir=project_dir,
        policy_evaluation=evaluation,
    )

    if github_check_output:
        write_github_check(Path(github_check_output), evaluation, report_data)
    for warning in evaluation.warnings:
        click.echo(f"warning: {warning}", err=True)

    if not evaluation.passed:
        click.echo(
            f"found {len(evaluation.violations)} dependencies with disallowed licenses:",
            err=True,
        )
        for violation in evaluation.violations:
            click.echo(f"  {violation}", err=True)
        raise SystemExit(EXIT_POLICY_VIOLATION)

    destination = Path(output) if output else None
    try:
        rendered = write_report(report_data, fmt, destination)
        if artifacts_dir:
            written = bundle_artifacts(report_data.sorted_license_files, Path(artifacts_dir))
            click.echo(f"Bundled {len(written)} license artifacts into {artifacts_dir}", err=True)
    except (LicensePleaseError, OSError) as exc:
        click.echo(f"error: {exc}", err=True)
        raise SystemExit(EXIT_PIPELINE_ERROR)

    if not destination:
        click.echo(rendered)


@main.command()
def allowed() -> None:
    """List the license identifiers accepted by the default policy."""

    for identifier, license_type in sorted(known_licenses().items()):
        click.echo(f"{identifier}: {license_type.obligations}")


if __name__ == "__main__":
    main()
