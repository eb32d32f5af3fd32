from __future__ import annotations

from typing import Callable, Iterable

import typer

from induct.schema import RunSummaryDTO, SpecResultDTO, SummaryEnvelopeDTO
from induct.spec_model import RunSummary, SpecResult, SpecStatus

Echo = Callable[[str], None]

_RULE = "-" * 40

_STATUS_LABELS = {
    SpecStatus.PASSED: ("[PASS]", typer.colors.GREEN),
    SpecStatus.FAILED: ("[FAIL]", typer.colors.RED),
    SpecStatus.GENERATE_REQUIRED: ("[GENERATE]", typer.colors.YELLOW),
}


def _default_echo(text: str) -> None:
    typer.echo(text)


class Reporter:
    def __init__(self, *, verbose: bool = False, json_output: bool = False, echo: Echo = _default_echo):
        self.verbose = verbose
        self.json_output = json_output
        self._echo = echo

    def report_result(self, result: SpecResult) -> None:
        if self.json_output:
            self._echo(SpecResultDTO.from_result(result).model_dump_json(exclude_none=True))
            return
        label, color = _STATUS_LABELS[result.status]
        self._echo(f"{typer.style(label, fg=color)} {result.spec_name} ({result.duration_ms}ms)")
        if result.status is SpecStatus.GENERATE_REQUIRED and result.generate_info is not None:
            info = result.generate_info
            self._echo(f"  Target Path: {info.target_path}")
            self._echo(f"  Command: {info.command}")
            self._echo(f"  Framework: {info.framework_hint or 'unknown'}")
            self._echo(f"  Description: {info.description or '(no description)'}")
            self._echo("  Action: Create the test file at the target path, then run this spec again.")
            return
        if (self.verbose or not result.passed) and result.error_message:
            self._echo(f"  Error: {result.error_message}")
        if self.verbose and result.actual_output:
            self._echo(f"  Output: {result.actual_output.rstrip()}")

    def report_summary(self, summary: RunSummary) -> None:
        if self.json_output:
            envelope = SummaryEnvelopeDTO(summary=RunSummaryDTO.from_summary(summary))
            self._echo(envelope.model_dump_json())
            return
        self._echo("")
        self._echo(_RULE)
        self._echo(
            f"Total: {summary.total} | passed: {summary.passed} | "
            f"failed: {summary.failed} | Duration: {summary.duration_ms}ms"
        )
        if summary.generate_required:
            self._echo(f"Generation required: {summary.generate_required}")
        self._echo("")
        self._echo("All specs passed!" if summary.failed == 0 else "Some specs failed.")

    def report_all(self, results: Iterable[SpecResult]) -> RunSummary:
        summary = RunSummary()
        for result in results:
            self.report_result(result)
            summary = summary.add(result)
        self.report_summary(summary)
        return summary
