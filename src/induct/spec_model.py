from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable, Optional, Tuple, Union

PROJECT_FILE_NAME = "inductspec.yaml"


@dataclass(frozen=True)
class TestCase:
    command: str
    input: Optional[str] = None
    expect_output: Optional[str] = None
    expect_output_contains: Optional[str] = None
    expect_exit_code: int = 0
    generate: bool = False
    target_path: Optional[str] = None

    # Keep pytest from collecting this class when imported into test modules.
    __test__ = False

    def __post_init__(self) -> None:
        if not self.command:
            raise ValueError("TestCase.command must not be empty")


@dataclass(frozen=True)
class SetupCommand:
    run: str
    background: bool = False
    name: Optional[str] = None


@dataclass(frozen=True)
class RunCommand:
    run: str


@dataclass(frozen=True)
class KillProcessByName:
    name: str


TeardownCommand = Union[RunCommand, KillProcessByName]


@dataclass(frozen=True)
class Spec:
    name: str
    test_case: TestCase
    description: Optional[str] = None
    setup: Tuple[SetupCommand, ...] = ()
    teardown: Tuple[TeardownCommand, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Spec.name must not be empty")


@dataclass(frozen=True)
class ProjectSpec:
    name: str
    description: Optional[str] = None
    specs: Tuple[Spec, ...] = ()
    include: Tuple[str, ...] = ()


class SpecStatus(StrEnum):
    PASSED = "passed"
    FAILED = "failed"
    GENERATE_REQUIRED = "generate_required"


class FailureKind(StrEnum):
    EXIT_CODE_MISMATCH = "exit_code_mismatch"
    EXACT_OUTPUT_MISMATCH = "exact_output_mismatch"
    CONTAINS_MISMATCH = "contains_mismatch"
    SPAWN_FAILED = "spawn_failed"
    SETUP_COMMAND_FAILED = "setup_command_failed"
    PARSE_FAILED = "parse_failed"
    BIND_FAILED = "bind_failed"
    FILE_NOT_FOUND = "file_not_found"
    FILE_UNREADABLE = "file_unreadable"
    DIRECTORY_UNREADABLE = "directory_unreadable"
    INCLUDE_CYCLE = "include_cycle"


@dataclass(frozen=True)
class GenerateInfo:
    target_path: str
    command: str
    description: Optional[str] = None
    framework_hint: Optional[str] = None


@dataclass(frozen=True)
class SpecResult:
    id: str
    spec_name: str
    status: SpecStatus
    actual_output: str = ""
    actual_exit_code: int = -1
    error_message: Optional[str] = None
    duration_ms: int = 0
    generate_info: Optional[GenerateInfo] = None
    failure_kind: Optional[FailureKind] = None
    actual_stderr: str = ""

    @property
    def passed(self) -> bool:
        return self.status is SpecStatus.PASSED


@dataclass(frozen=True)
class RunSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    generate_required: int = 0
    duration_ms: int = 0

    def add(self, result: SpecResult) -> "RunSummary":
        return RunSummary(
            total=self.total + 1,
            passed=self.passed + (1 if result.passed else 0),
            failed=self.failed + (0 if result.passed else 1),
            generate_required=self.generate_required
            + (1 if result.status is SpecStatus.GENERATE_REQUIRED else 0),
            duration_ms=self.duration_ms + result.duration_ms,
        )

    @classmethod
    def from_results(cls, results: Iterable[SpecResult]) -> "RunSummary":
        summary = cls()
        for result in results:
            summary = summary.add(result)
        return summary

