from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from induct.spec_model import FailureKind


@dataclass(frozen=True)
class ValidationOutcome:
    passed: bool
    failure_kind: Optional[FailureKind] = None
    reason: Optional[str] = None


PASSED = ValidationOutcome(passed=True)


def validate_exit_code(actual: int, expected: int) -> ValidationOutcome:
    if actual != expected:
        return ValidationOutcome(
            passed=False,
            failure_kind=FailureKind.EXIT_CODE_MISMATCH,
            reason=f"Exit code mismatch: expected {expected}, got {actual}",
        )
    return PASSED


def validate_output(
    actual: str,
    expect_output: Optional[str],
    expect_output_contains: Optional[str],
) -> ValidationOutcome:
    if expect_output is not None and actual != expect_output:
        return ValidationOutcome(
            passed=False,
            failure_kind=FailureKind.EXACT_OUTPUT_MISMATCH,
            reason=f"Output does not match expected value: expected {expect_output!r}, got {actual!r}",
        )
    if expect_output_contains is not None and expect_output_contains not in actual:
        return ValidationOutcome(
            passed=False,
            failure_kind=FailureKind.CONTAINS_MISMATCH,
            reason=f"Output does not contain expected substring {expect_output_contains!r}",
        )
    return PASSED


def validate(
    actual_output: str,
    actual_exit_code: int,
    expect_output: Optional[str],
    expect_output_contains: Optional[str],
    expect_exit_code: int,
) -> ValidationOutcome:
    """Check a finished command against its expectations.

    The exit code is checked first; a mismatch is reported on its own even
    when the output would also fail.
    """
    exit_outcome = validate_exit_code(actual_exit_code, expect_exit_code)
    if not exit_outcome.passed:
        return exit_outcome
    return validate_output(actual_output, expect_output, expect_output_contains)
