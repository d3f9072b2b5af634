"""Salesforce CLI runner.

Usage:
    runner = SfRunner()
    output = runner.run_tests("defaultOrg", test_class="AccountServiceTest")
    run_id = extract_test_run_id(output)
    data   = runner.get_test_results("defaultOrg", "json", test_run_id=run_id)
"""

import re
import subprocess
from typing import Callable

import click

HUMAN_FORMAT = "human"
JSON_FORMAT = "json"

# `sf apex` exit status for a run that completed with failing tests
TESTS_FAILED_RETURNCODE = 100

_TEST_RUN_ID_RE = re.compile(r"Test Run Id\s*:?\s*([0-9A-Za-z]{15,18})")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class SfCliError(Exception):
    """Base exception for all Salesforce CLI errors."""


class SfNotFoundError(SfCliError):
    """Raised when the sf executable cannot be started."""

    returncode = 127


class SfCommandError(SfCliError):
    """Raised when an sf command exits non-zero (failure, auth error, timeout)."""

    def __init__(self, command: list[str], returncode: int, stdout: str = "", stderr: str = "") -> None:
        super().__init__(f"`{' '.join(command)}` exited with status {returncode}")
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

class SfRunner:
    """Thin wrapper around the `sf apex` test commands."""

    def __init__(self, sf_command: str = "sf", echo: Callable[..., None] = click.echo,
                 verbose: bool = False) -> None:
        self.sf_command = sf_command
        self._echo = echo
        self._verbose = verbose
        self.returncode = 0

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def run_tests(self, org_alias: str, test_class: str | None = None,
                  wait_minutes: int = 10) -> str:
        """Run all tests, or *test_class* only, with code coverage collection.

        The human-readable result is echoed as-is and returned so the caller
        can pick the test run id out of it.

        Raises:
            SfNotFoundError: sf is not installed or not on PATH
            SfCommandError:  sf could not run the tests or they did not finish in time;
                             failing tests alone leave returncode at 100 instead
        """
        args = ["apex", "run", "test", "--target-org", org_alias]
        if test_class:
            args += ["--class-names", test_class]
        args += ["--code-coverage", "--result-format", HUMAN_FORMAT, "--wait", str(wait_minutes)]

        output = self._run(args)
        if output:
            self._echo(output, nl=not output.endswith("\n"))
        return output

    def get_test_results(self, org_alias: str, result_format: str = HUMAN_FORMAT,
                         test_run_id: str | None = None) -> str:
        """Fetch a test result with coverage data and return it unparsed."""
        args = ["apex", "get", "test", "--target-org", org_alias]
        if test_run_id:
            args += ["--test-run-id", test_run_id]
        args += ["--code-coverage", "--result-format", result_format]
        return self._run(args)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self, args: list[str]) -> str:
        command = [self.sf_command, *args]
        if self._verbose:
            self._echo(f"[verbose] $ {' '.join(command)}", err=True)
        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except OSError as exc:
            raise SfNotFoundError(
                f"Salesforce CLI not found or not executable: '{self.sf_command}' ({exc.strerror or exc}). "
                "Install it or set APEX_COVERAGE_SF to its path."
            ) from exc

        # 100 means the run finished with failing tests; the result is still complete
        completed = result.returncode == 0 or (
            result.returncode == TESTS_FAILED_RETURNCODE and result.stdout.strip()
        )
        if not completed:
            raise SfCommandError(command, result.returncode, result.stdout, result.stderr)

        self.returncode = result.returncode
        if result.returncode and result.stderr:
            self._echo(result.stderr, nl=not result.stderr.endswith("\n"), err=True)
        return result.stdout


def extract_test_run_id(output: str) -> str | None:
    """Return the test run id printed by `sf apex run test`, or None."""
    match = _TEST_RUN_ID_RE.search(output or "")
    return match.group(1) if match else None
