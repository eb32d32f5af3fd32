from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from induct.spec_model import RunSummary, SpecResult


class GenerateInfoDTO(BaseModel):
    target_path: str
    command: str
    description: Optional[str] = None
    framework_hint: Optional[str] = None


class SpecResultDTO(BaseModel):
    id: str
    spec_name: str
    status: str
    passed: bool
    exit_code: int
    duration_ms: int
    output: str = ""
    error: Optional[str] = None
    failure_kind: Optional[str] = None
    generate_info: Optional[GenerateInfoDTO] = None

    @classmethod
    def from_result(cls, result: SpecResult) -> "SpecResultDTO":
        info = result.generate_info
        return cls(
            id=result.id,
            spec_name=result.spec_name,
            status=result.status.value,
            passed=result.passed,
            exit_code=result.actual_exit_code,
            duration_ms=result.duration_ms,
            output=result.actual_output,
            error=result.error_message,
            failure_kind=result.failure_kind.value if result.failure_kind else None,
            generate_info=(
                GenerateInfoDTO(
                    target_path=info.target_path,
                    command=info.command,
                    description=info.description,
                    framework_hint=info.framework_hint,
                )
                if info is not None
                else None
            ),
        )


class RunSummaryDTO(BaseModel):
    total: int
    passed: int
    failed: int
    generate_required: int = 0
    duration_ms: int

    @classmethod
    def from_summary(cls, summary: RunSummary) -> "RunSummaryDTO":
        return cls(
            total=summary.total,
            passed=summary.passed,
            failed=summary.failed,
            generate_required=summary.generate_required,
            duration_ms=summary.duration_ms,
        )


class SummaryEnvelopeDTO(BaseModel):
    summary: RunSummaryDTO
