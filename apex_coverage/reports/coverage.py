"""Apex coverage report retrieval and parsing.

Functions:
    print_human_report(runner, org_alias, test_run_id)     -> None
    fetch_coverage_report(runner, org_alias, test_run_id)  -> CoverageReport
    parse_coverage_report(payload)                         -> CoverageReport

The structured report is the output of
``sf apex get test --code-coverage --result-format json``. Its ``summary``
section carries ``orgWideCoverage`` (e.g. ``"82%"``); the ``--json`` envelope
(``{"status": 0, "result": {...}}``) is accepted as well.
"""

import json
from typing import Callable

import click

from apex_coverage.models import CoverageReport
from apex_coverage.runner import HUMAN_FORMAT, JSON_FORMAT, SfRunner

ORG_WIDE_COVERAGE_FIELD = "orgWideCoverage"


class ParseError(Exception):
    """Raised when the structured report lacks a usable coverage figure."""


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #

def _parse_percentage(raw) -> float | None:
    """Return a float from ``82``, ``"82"`` or ``"82%"``; None if not numeric."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        text = raw.strip().rstrip("%").strip()
        try:
            return float(text)
        except ValueError:
            return None
    return None


def _parse_int(raw) -> int | None:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _summary_of(data: dict) -> dict:
    """Find the ``summary`` section in a raw or enveloped result."""
    result = data.get("result")
    if isinstance(result, dict) and "summary" in result:
        data = result
    summary = data.get("summary")
    if not isinstance(summary, dict):
        raise ParseError("Structured report has no 'summary' section.")
    return summary


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #

def parse_coverage_report(payload: str | dict) -> CoverageReport:
    """Extract the org-wide coverage (and summary extras) from a JSON report.

    Raises:
        ParseError: invalid JSON, no ``summary`` section, or a missing,
                    non-numeric or out-of-range ``orgWideCoverage`` value.
    """
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Structured report is not valid JSON: {exc}") from exc
    else:
        data = payload

    if not isinstance(data, dict):
        raise ParseError("Structured report must be a JSON object.")

    summary = _summary_of(data)

    if ORG_WIDE_COVERAGE_FIELD not in summary:
        raise ParseError(
            f"'summary.{ORG_WIDE_COVERAGE_FIELD}' is missing from the structured report; "
            "was the test run executed with --code-coverage?"
        )
    raw = summary[ORG_WIDE_COVERAGE_FIELD]
    coverage = _parse_percentage(raw)
    if coverage is None:
        raise ParseError(f"'summary.{ORG_WIDE_COVERAGE_FIELD}' is not a number: {raw!r}")
    if not 0 <= coverage <= 100:
        raise ParseError(
            f"'summary.{ORG_WIDE_COVERAGE_FIELD}' is outside 0-100: {raw!r}"
        )

    return CoverageReport(
        org_wide_coverage=coverage,
        test_run_coverage=_parse_percentage(summary.get("testRunCoverage")),
        outcome=summary.get("outcome"),
        tests_ran=_parse_int(summary.get("testsRan")),
        passing=_parse_int(summary.get("passing")),
        failing=_parse_int(summary.get("failing")),
        test_run_id=summary.get("testRunId"),
    )


def print_human_report(runner: SfRunner, org_alias: str, test_run_id: str | None = None,
                       echo: Callable[..., None] = click.echo) -> None:
    """Print the human-readable coverage report under its header."""
    echo("")
    echo("Code Coverage Report:")
    text = runner.get_test_results(org_alias, HUMAN_FORMAT, test_run_id=test_run_id)
    echo(text, nl=not text.endswith("\n"))


def fetch_coverage_report(runner: SfRunner, org_alias: str,
                          test_run_id: str | None = None) -> CoverageReport:
    """Request the JSON result for the run and parse it."""
    text = runner.get_test_results(org_alias, JSON_FORMAT, test_run_id=test_run_id)
    return parse_coverage_report(text)
