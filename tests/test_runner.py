"""Tests for apex_coverage/runner.py"""

import subprocess

import pytest

from apex_coverage.runner import (
    SfCliError,
    SfCommandError,
    SfNotFoundError,
    SfRunner,
    extract_test_run_id,
)

RUN_OUTPUT = """\
=== Test Summary
NAME                 VALUE
───────────────────  ─────────────────
Outcome              Passed
Tests Ran            12
Test Run Id          7071x00000AbCdE
Org Wide Coverage    82%
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FakeSubprocess:
    """Records every command and answers with a canned CompletedProcess."""

    def __init__(self, stdout: str = "", stderr: str = "", returncode: int = 0) -> None:
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode

    def __call__(self, command, **kwargs):
        self.calls.append(command)
        self.kwargs.append(kwargs)
        return subprocess.CompletedProcess(command, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def fake(monkeypatch) -> FakeSubprocess:
    fake = FakeSubprocess(stdout=RUN_OUTPUT)
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


@pytest.fixture
def echoed() -> list:
    return []


@pytest.fixture
def runner(echoed) -> SfRunner:
    return SfRunner(echo=lambda message="", **kw: echoed.append((message, kw)))


# ---------------------------------------------------------------------------
# run_tests()
# ---------------------------------------------------------------------------

def test_run_all_tests_command(runner, fake):
    runner.run_tests("defaultOrg")
    assert fake.calls == [[
        "sf", "apex", "run", "test", "--target-org", "defaultOrg",
        "--code-coverage", "--result-format", "human", "--wait", "10",
    ]]


def test_run_single_class_command(runner, fake):
    runner.run_tests("uat", test_class="AccountServiceTest", wait_minutes=5)
    command = fake.calls[0]
    assert command[command.index("--class-names") + 1] == "AccountServiceTest"
    assert command[command.index("--target-org") + 1] == "uat"
    assert command[command.index("--wait") + 1] == "5"


def test_empty_class_name_runs_all_tests(runner, fake):
    runner.run_tests("defaultOrg", test_class="")
    assert "--class-names" not in fake.calls[0]


def test_run_tests_echoes_and_returns_output(runner, fake, echoed):
    output = runner.run_tests("defaultOrg")
    assert output == RUN_OUTPUT
    assert echoed == [(RUN_OUTPUT, {"nl": False})]


def test_output_is_captured_as_text(runner, fake):
    runner.run_tests("defaultOrg")
    assert fake.kwargs[0] == {"capture_output": True, "text": True}


def test_custom_sf_command(fake):
    SfRunner("/opt/sf/bin/sf", echo=lambda *a, **k: None).run_tests("defaultOrg")
    assert fake.calls[0][0] == "/opt/sf/bin/sf"


def test_verbose_logs_command_to_stderr(fake, echoed):
    runner = SfRunner(echo=lambda message="", **kw: echoed.append((message, kw)), verbose=True)
    runner.run_tests("defaultOrg")
    message, kw = echoed[0]
    assert message.startswith("[verbose] $ sf apex run test")
    assert kw == {"err": True}


# ---------------------------------------------------------------------------
# get_test_results()
# ---------------------------------------------------------------------------

def test_get_results_json_with_run_id(runner, fake):
    fake.stdout = '{"summary": {}}'
    text = runner.get_test_results("uat", "json", test_run_id="7071x00000AbCdE")
    assert text == '{"summary": {}}'
    assert fake.calls == [[
        "sf", "apex", "get", "test", "--target-org", "uat",
        "--test-run-id", "7071x00000AbCdE",
        "--code-coverage", "--result-format", "json",
    ]]


def test_get_results_without_run_id(runner, fake):
    runner.get_test_results("defaultOrg")
    assert "--test-run-id" not in fake.calls[0]
    assert fake.calls[0][-1] == "human"


def test_get_results_is_not_echoed(runner, fake, echoed):
    runner.get_test_results("defaultOrg", "json")
    assert echoed == []


# ---------------------------------------------------------------------------
# failures
# ---------------------------------------------------------------------------

def test_nonzero_exit_raises_command_error(runner, fake, echoed):
    fake.returncode = 1
    fake.stdout = ""
    fake.stderr = "Error (1): No authorization information found for uat."
    with pytest.raises(SfCommandError) as excinfo:
        runner.run_tests("uat")
    err = excinfo.value
    assert err.returncode == 1
    assert err.stderr == fake.stderr
    assert err.command[:4] == ["sf", "apex", "run", "test"]
    assert "exited with status 1" in str(err)
    assert echoed == []


def test_missing_executable_raises_not_found(runner, monkeypatch):
    def missing(command, **kwargs):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr(subprocess, "run", missing)
    with pytest.raises(SfNotFoundError, match="not found"):
        runner.run_tests("defaultOrg")


def test_unusable_executable_raises_not_found(runner, monkeypatch):
    def not_executable(command, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(subprocess, "run", not_executable)
    with pytest.raises(SfNotFoundError, match="not executable"):
        runner.run_tests("defaultOrg")


def test_failing_tests_complete_the_run(runner, fake, echoed):
    fake.returncode = 100
    fake.stderr = "Warning: 2 tests failed\n"
    output = runner.run_tests("defaultOrg")
    assert output == RUN_OUTPUT
    assert runner.returncode == 100
    assert (RUN_OUTPUT, {"nl": False}) in echoed
    assert ("Warning: 2 tests failed\n", {"nl": False, "err": True}) in echoed


def test_status_100_without_result_is_a_failure(runner, fake):
    fake.returncode = 100
    fake.stdout = "  \n"
    with pytest.raises(SfCommandError) as excinfo:
        runner.get_test_results("defaultOrg", "json")
    assert excinfo.value.returncode == 100


def test_returncode_follows_last_command(runner, fake):
    fake.returncode = 100
    runner.run_tests("defaultOrg")
    fake.returncode = 0
    runner.get_test_results("defaultOrg", "json")
    assert runner.returncode == 0


def test_errors_share_a_base_class():
    assert issubclass(SfCommandError, SfCliError)
    assert issubclass(SfNotFoundError, SfCliError)


# ---------------------------------------------------------------------------
# extract_test_run_id()
# ---------------------------------------------------------------------------

def test_extract_test_run_id_from_table():
    assert extract_test_run_id(RUN_OUTPUT) == "7071x00000AbCdE"


def test_extract_test_run_id_with_colon():
    assert extract_test_run_id("Test Run Id: 707000000000001AAA") == "707000000000001AAA"


def test_extract_test_run_id_absent():
    assert extract_test_run_id("nothing useful here") is None
    assert extract_test_run_id("") is None
