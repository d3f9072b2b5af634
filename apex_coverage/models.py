"""Data models for Apex coverage reports.

Contains the values that cross from the Coverage Reporter to the Gate and,
optionally, into the JSON written by ``run --output``:
    - CoverageReport
    - GateStatus
    - GateResult
"""

from dataclasses import asdict, dataclass
from enum import Enum


def format_percentage(value: float) -> str:
    """Render a percentage without a redundant ``.0`` (75.0 -> "75", 74.9 -> "74.9")."""
    f = float(value)
    return str(int(f)) if f == int(f) else str(f)


@dataclass(frozen=True)
class CoverageReport:
    org_wide_coverage: float
    test_run_coverage: float | None = None
    outcome: str | None = None
    tests_ran: int | None = None
    passing: int | None = None
    failing: int | None = None
    test_run_id: str | None = None

    def to_dict(self) -> dict:
        return {"report_type": "apex_coverage", **asdict(self)}


class GateStatus(str, Enum):
    PASS = "PASS"
    WARN = "WARN"


@dataclass(frozen=True)
class GateResult:
    status: GateStatus
    coverage: float
    threshold: float
    message: str

    @property
    def passed(self) -> bool:
        return self.status is GateStatus.PASS

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "coverage": self.coverage,
            "threshold": self.threshold,
            "message": self.message,
        }
