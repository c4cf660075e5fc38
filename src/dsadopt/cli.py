"""dsadopt CLI — top-level command group."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any

import click
import yaml

from dsadopt import __version__
from dsadopt.config import (
    CONFIG_FILE_NAME,
    DEFAULT_EXCLUDE,
    DEFAULT_HISTORY_DIR,
    DEFAULT_INCLUDE,
    ConfigError,
    load_config,
    validate_config,
)
from dsadopt.facts import FactsError, load_facts
from dsadopt.metrics.history import compare_reports, load_report_snapshot, save_history
from dsadopt.metrics.thresholds import check_thresholds
from dsadopt.reporters.csv_reporter import CSVReporter
from dsadopt.reporters.json_reporter import JSONReporter
from dsadopt.reporters.terminal import console, reporter
from dsadopt.scanner import run_scan

logger = logging.getLogger(__name__)


def _config_to_dict(config: Any) -> dict[str, Any]:
    """Convert AdoptionConfig to a dictionary for display."""
    result = asdict(config)
    result.pop("raw", None)
    return result


def _load_valid_config(path: str) -> Any:
    try:
        config = load_config(path)
    except ConfigError as e:
        reporter.print_error(str(e))
        raise click.Abort from e

    errors = validate_config(config)
    if errors:
        reporter.print_error(f"Found {len(errors)} configuration error(s):")
        for idx, error in enumerate(errors, start=1):
            console.print(f"  {idx}. [red]{error}[/red]")
        raise click.Abort
    return config


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging on stderr.")
@click.version_option(version=__version__, prog_name="dsadopt")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """dsadopt — measure design-system adoption across repositories."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )


@cli.group("config")
def config_group() -> None:
    """Inspect `.dsadopt.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, resolve_path=True),
    help="Project directory or config file.",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
def config_show(path: str, *, as_json: bool) -> None:
    """Display the resolved configuration."""
    try:
        config = load_config(path)
    except ConfigError as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e

    config_dict = _config_to_dict(config)
    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, resolve_path=True),
    help="Project directory or config file.",
)
def config_validate(path: str) -> None:
    """Validate `.dsadopt.yml`.

    Example:
      dsadopt config validate --path ./web
    """
    _load_valid_config(path)
    reporter.print_success("Configuration is valid!")


@cli.command()
@click.argument("facts", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.option(
    "--config",
    "config_path",
    default=".",
    type=click.Path(exists=True, resolve_path=True),
    help="Project directory or config file.",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "csv", "table"]),
    default="json",
    show_default=True,
    help="Report format. 'table' prints only the summary; --output then saves JSON.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, resolve_path=True),
    help="Write the report here instead of stdout.",
)
@click.option(
    "--baseline",
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    help="Earlier JSON report to compare against.",
)
@click.option(
    "--min-adoption",
    type=click.FloatRange(0.0, 100.0),
    help="Fail when the overall adoption rate is below this percentage.",
)
@click.option(
    "--save-history",
    "keep_history",
    is_flag=True,
    help="Also store the report in the configured history_dir.",
)
@click.option("--quiet", "-q", is_flag=True, help="Do not print the summary table.")
def analyze(
    facts: str,
    config_path: str,
    output_format: str,
    output: str | None,
    baseline: str | None,
    min_adoption: float | None,
    *,
    keep_history: bool,
    quiet: bool,
) -> None:
    """Categorize recorded usages in FACTS and report adoption metrics.

    FACTS is a YAML/JSON document with the usages and import resolutions
    recorded by the extraction step.

    Exits with a non-zero status when configured thresholds are violated.
    """
    config = _load_valid_config(config_path)
    if min_adoption is not None:
        config.thresholds = replace(config.thresholds, min_adoption_rate=min_adoption)

    try:
        repositories = load_facts(facts)
    except FactsError as e:
        reporter.print_error(str(e))
        raise click.Abort from e
    if not repositories:
        reporter.print_warning(f"No repositories recorded in {facts}")

    report = asyncio.run(run_scan([repo.to_input() for repo in repositories], config))

    if baseline:
        try:
            snapshot = load_report_snapshot(baseline)
        except (OSError, ValueError) as e:
            reporter.print_error(f"Cannot read baseline report: {e}")
            raise click.Abort from e
        report = replace(report, comparison=compare_reports(snapshot, report.to_dict()))

    if keep_history:
        try:
            saved = save_history(report, config.history_path)
        except OSError as e:
            reporter.print_error(f"Cannot save scan history: {e}")
            raise click.Abort from e
        reporter.print_info(f"History saved: {saved}")

    if output_format == "table":
        if output:
            JSONReporter().generate(Path(output), report)
            reporter.print_success(f"JSON report written to {output}")
        reporter.print_scan_summary(report)
    else:
        writer = CSVReporter() if output_format == "csv" else JSONReporter()
        if output:
            writer.generate(Path(output), report)
            reporter.print_success(f"Report written to {output}")
        else:
            text = writer.generate_string(report)
            click.echo(text, nl=not text.endswith("\n"))
        if not quiet:
            reporter.print_scan_summary(report)

    violations = check_thresholds(report.summary, config.thresholds)
    if violations:
        for violation in violations:
            reporter.print_error(violation)
        raise SystemExit(1)


@cli.command()
@click.argument("baseline", type=click.Path(exists=True, dir_okay=False))
@click.argument("current", type=click.Path(exists=True, dir_okay=False))
def compare(baseline: str, current: str) -> None:
    """Compare two JSON reports and print the differences as JSON."""
    try:
        comparison = compare_reports(load_report_snapshot(baseline), load_report_snapshot(current))
    except (OSError, ValueError) as e:
        reporter.print_error(f"Cannot compare reports: {e}")
        raise click.Abort from e
    click.echo(json.dumps(comparison.to_dict(), indent=2))


def _build_default_config() -> dict[str, Any]:
    """Starter configuration written by ``dsadopt init``."""
    return {
        "repositories": [],
        "design_systems": [
            {"name": "MyDS", "packages": ["@myds/components", "@myds/icons"]},
        ],
        "include": list(DEFAULT_INCLUDE),
        "exclude": list(DEFAULT_EXCLUDE),
        "local_library_patterns": ["@shared/components", "@shared/components/*"],
        "transitive_rules": [],
        "transitive_adoption": {"enabled": False},
        "thresholds": {"min_adoption_rate": None, "max_custom_components": None},
        "history_dir": DEFAULT_HISTORY_DIR,
    }


@cli.command()
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
def init(path: str) -> None:
    """Create a starter `.dsadopt.yml` in the project root."""
    target = Path(path) / CONFIG_FILE_NAME
    if target.exists():
        reporter.print_warning(f"Config already exists: {target}")
        return

    header = "# dsadopt configuration\n\n"
    target.write_text(
        header
        + yaml.safe_dump(_build_default_config(), sort_keys=False, default_flow_style=False),
        encoding="utf-8",
    )
    console.print(f"[green]Config written to[/green]  {target}")
    console.print("[dim]Edit design_systems, then run 'dsadopt analyze FACTS'.[/dim]")


if __name__ == "__main__":
    cli()
