"""Org-wide coverage threshold gate.

Functions:
    gate(coverage, threshold=75.0)  -> GateResult
    exit_code(result, mode)         -> int
"""

from apex_coverage.config import DEFAULT_THRESHOLD, MODE_ENFORCING
from apex_coverage.models import GateResult, GateStatus, format_percentage


def gate(coverage: float, threshold: float = DEFAULT_THRESHOLD) -> GateResult:
    """Compare *coverage* against *threshold*; equal to the threshold passes."""
    shown = format_percentage(coverage)
    if coverage < threshold:
        return GateResult(
            status=GateStatus.WARN,
            coverage=coverage,
            threshold=threshold,
            message=f"WARNING: Org coverage below {format_percentage(threshold)}%: {shown}%",
        )
    return GateResult(
        status=GateStatus.PASS,
        coverage=coverage,
        threshold=threshold,
        message=f"✓ Org coverage: {shown}%",
    )


def exit_code(result: GateResult, mode: str) -> int:
    """Process exit status for a gate result; only enforcing mode fails on WARN."""
    if mode == MODE_ENFORCING and not result.passed:
        return 1
    return 0
