from __future__ import annotations

import json

from induct.reporter import Reporter
from induct.spec_model import FailureKind, GenerateInfo, SpecResult, SpecStatus


def _passed(name: str = "ok") -> SpecResult:
    return SpecResult(
        id="1-1",
        spec_name=name,
        status=SpecStatus.PASSED,
        actual_output="hello\n",
        actual_exit_code=0,
        duration_ms=5,
    )


def _failed() -> SpecResult:
    return SpecResult(
        id="1-2",
        spec_name="broken",
        status=SpecStatus.FAILED,
        actual_exit_code=1,
        error_message="Exit code mismatch: expected 0, got 1",
        duration_ms=7,
        failure_kind=FailureKind.EXIT_CODE_MISMATCH,
    )


def _generate() -> SpecResult:
    return SpecResult(
        id="1-3",
        spec_name="todo",
        status=SpecStatus.GENERATE_REQUIRED,
        error_message="Test file not found. Generation required.",
        generate_info=GenerateInfo(
            target_path="src/a.test.ts",
            command="npx jest src/a.test.ts",
            framework_hint="jest",
        ),
    )


def _reporter(**kwargs) -> tuple[Reporter, list[str]]:
    lines: list[str] = []
    return Reporter(echo=lines.append, **kwargs), lines


def test_passed_result_is_one_line() -> None:
    reporter, lines = _reporter()
    reporter.report_result(_passed())
    assert len(lines) == 1
    assert "[PASS]" in lines[0]
    assert lines[0].endswith("ok (5ms)")


def test_failed_result_shows_error() -> None:
    reporter, lines = _reporter()
    reporter.report_result(_failed())
    assert "[FAIL]" in lines[0]
    assert lines[1] == "  Error: Exit code mismatch: expected 0, got 1"


def test_verbose_shows_output() -> None:
    reporter, lines = _reporter(verbose=True)
    reporter.report_result(_passed())
    assert lines[1:] == ["  Output: hello"]


def test_generate_block() -> None:
    reporter, lines = _reporter()
    reporter.report_result(_generate())
    assert "[GENERATE]" in lines[0]
    assert "  Target Path: src/a.test.ts" in lines
    assert "  Command: npx jest src/a.test.ts" in lines
    assert "  Framework: jest" in lines
    assert "  Description: (no description)" in lines


def test_summary_block() -> None:
    reporter, lines = _reporter()
    summary = reporter.report_all([_passed(), _failed(), _generate()])
    assert (summary.total, summary.passed, summary.failed) == (3, 1, 2)
    assert "Total: 3 | passed: 1 | failed: 2 | Duration: 12ms" in lines
    assert "Generation required: 1" in lines
    assert lines[-1] == "Some specs failed."


def test_all_passed_message() -> None:
    reporter, lines = _reporter()
    reporter.report_all([_passed("a"), _passed("b")])
    assert lines[-1] == "All specs passed!"


def test_json_output_lines() -> None:
    reporter, lines = _reporter(json_output=True)
    reporter.report_all([_failed(), _generate()])
    first, second, summary = (json.loads(line) for line in lines)
    assert first["spec_name"] == "broken"
    assert first["passed"] is False
    assert first["failure_kind"] == "exit_code_mismatch"
    assert "generate_info" not in first
    assert second["status"] == "generate_required"
    assert second["generate_info"]["target_path"] == "src/a.test.ts"
    assert summary == {
        "summary": {"total": 2, "passed": 0, "failed": 2, "generate_required": 1, "duration_ms": 7}
    }
