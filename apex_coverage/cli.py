"""CLI entry point — command definitions using Click.

Commands:
    init    Generate a template config file
    run     Run Apex tests, print the coverage report, gate org-wide coverage
    check   Gate an already-saved JSON test result
"""

import functools
import json
import sys
from pathlib import Path
from typing import Any

import click

from apex_coverage import __version__
from apex_coverage.config import MODES, Config, ConfigError, generate_template, load


# ---------------------------------------------------------------------------
# Helpers shared by all data commands
# ---------------------------------------------------------------------------

def _load_config(ctx: click.Context, **overrides) -> Config:
    """Resolve the configuration once; CLI values win over file and env."""
    config = load(ctx.obj["config_path"]).with_overrides(**overrides)
    if ctx.obj["verbose"]:
        click.echo(
            f"[verbose] org={config.org_alias} wait={config.wait_minutes}m "
            f"threshold={config.threshold} mode={config.mode} sf={config.sf_command}",
            err=True,
        )
    return config


def _emit_json(data: Any, output_path: str, pretty: bool, ctx: click.Context) -> None:
    """Write the run result as JSON to *output_path*."""
    text = json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(text)
    if ctx.obj["verbose"]:
        click.echo(f"[verbose] Report written to '{output_path}'", err=True)


def _handle_errors(func):
    """Decorator that turns tool exceptions into a message and an exit status."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from apex_coverage.reports.coverage import ParseError
        from apex_coverage.runner import SfCommandError, SfNotFoundError

        try:
            return func(*args, **kwargs)
        except ConfigError as exc:
            click.echo(f"Configuration error: {exc}", err=True)
            sys.exit(1)
        except SfNotFoundError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(SfNotFoundError.returncode)
        except SfCommandError as exc:
            # sf output is passed through untouched; its status becomes ours
            if exc.stdout:
                click.echo(exc.stdout, nl=not exc.stdout.endswith("\n"))
            if exc.stderr:
                click.echo(exc.stderr, nl=not exc.stderr.endswith("\n"), err=True)
            sys.exit(exc.returncode)
        except ParseError as exc:
            click.echo(f"Parse error: {exc}", err=True)
            sys.exit(1)

    return wrapper


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default=None,
              help="Path to the configuration file [default: apex-coverage.yaml if present].")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable verbose logging.")
@click.version_option(__version__, prog_name="apex-coverage")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Run Apex tests through the Salesforce CLI and gate org-wide coverage."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default="apex-coverage.yaml", show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template apex-coverage.yaml file."""
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your org alias, wait budget and coverage policy.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------

@cli.command("run")
@click.argument("test_class", required=False)
@click.argument("org_alias", required=False)
@click.option("--mode", type=click.Choice(MODES), default=None,
              help="advisory: only warn below the threshold; enforcing: also exit 1.")
@click.option("--output", "output_path", default=None,
              help="Also write the parsed report and gate result as JSON to this file.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print the JSON output.")
@click.pass_context
@_handle_errors
def run_command(ctx: click.Context, test_class: str | None, org_alias: str | None,
                mode: str | None, output_path: str | None, pretty: bool) -> None:
    """Run TEST_CLASS (or every test) in ORG_ALIAS and check org-wide coverage."""
    from apex_coverage.gate import exit_code, gate
    from apex_coverage.reports.coverage import fetch_coverage_report, print_human_report
    from apex_coverage.runner import SfRunner, extract_test_run_id

    config = _load_config(ctx, org_alias=org_alias, mode=mode)
    runner = SfRunner(config.sf_command, verbose=ctx.obj["verbose"])

    click.echo(f"Running Apex tests in org: {config.org_alias}")
    if test_class:
        click.echo(f"Running test class: {test_class}")
    else:
        click.echo("Running all tests...")
    output = runner.run_tests(config.org_alias, test_class, wait_minutes=config.wait_minutes)

    test_run_id = extract_test_run_id(output)
    if ctx.obj["verbose"]:
        click.echo(f"[verbose] Test run id: {test_run_id or '(not found, using latest)'}", err=True)

    print_human_report(runner, config.org_alias, test_run_id)

    click.echo("")
    click.echo("Checking coverage requirements...")
    report = fetch_coverage_report(runner, config.org_alias, test_run_id)
    result = gate(report.org_wide_coverage, config.threshold)
    click.echo(result.message)

    if output_path:
        _emit_json({"report": report.to_dict(), "gate": result.to_dict()}, output_path, pretty, ctx)

    # failing tests (sf status 100) outrank the gate; otherwise the gate decides
    ctx.exit(runner.returncode or exit_code(result, config.mode))


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

@cli.command("check")
@click.argument("report_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--threshold", type=click.FloatRange(0, 100), default=None,
              help="Coverage threshold in percent (overrides config).")
@click.option("--mode", type=click.Choice(MODES), default=None,
              help="advisory: only warn below the threshold; enforcing: also exit 1.")
@click.pass_context
@_handle_errors
def check_command(ctx: click.Context, report_path: str, threshold: float | None,
                  mode: str | None) -> None:
    """Gate the org-wide coverage in a saved `sf apex get test` JSON file."""
    from apex_coverage.gate import exit_code, gate
    from apex_coverage.reports.coverage import parse_coverage_report

    config = _load_config(ctx, threshold=threshold, mode=mode)
    report = parse_coverage_report(Path(report_path).read_text(encoding="utf-8"))
    result = gate(report.org_wide_coverage, config.threshold)
    click.echo(result.message)
    ctx.exit(exit_code(result, config.mode))
