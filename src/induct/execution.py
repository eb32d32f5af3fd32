"""Spec execution.

One spec runs through a fixed pipeline::

    generate check -> setup -> run -> validate -> teardown

A spec in generate mode whose target test file does not exist stops before
setup with a ``GENERATE_REQUIRED`` verdict. A failed setup command skips the
run and validate phases. Teardown always runs once setup has started, and
its own failures are logged but never change the verdict.

Project specs are flattened into one ordered result list: inline specs
first, then each include in declaration order. Includes named like the
reserved project file recurse with their own directory as base. Every
per-entry failure (unreadable file, parse or bind error, include cycle)
becomes a synthetic failed result so a run always yields a complete list.
"""

from __future__ import annotations

import logging
import shlex
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from induct.exceptions import (
    BindFailure,
    DirectoryUnreadable,
    ExecutionFailure,
    FileNotFound,
    InductError,
    ParseFailure,
    ResourceFailure,
    SetupCommandFailed,
)
from induct.invariants import never
from induct.path_resolver import detect_framework, resolve_target_path
from induct.process_runner import BackgroundProcess, CommandRunner, SubprocessRunner
from induct.result_ids import ResultIdGenerator
from induct.spec_binder import load_project_spec_file, load_spec_file
from induct.spec_model import (
    PROJECT_FILE_NAME,
    FailureKind,
    GenerateInfo,
    KillProcessByName,
    ProjectSpec,
    RunCommand,
    SetupCommand,
    Spec,
    SpecResult,
    SpecStatus,
    TeardownCommand,
    TestCase,
)
from induct.validation import validate

logger = logging.getLogger(__name__)

DEFAULT_SPEC_SUFFIXES: tuple[str, ...] = (".yaml", ".yml")
GENERATE_REQUIRED_MESSAGE = "Test file not found. Generation required."


def is_project_file(path: str | Path) -> bool:
    return Path(path).name == PROJECT_FILE_NAME


def process_name(command: str) -> str:
    """Registry name for a background command: its program's basename."""
    try:
        words = shlex.split(command)
    except ValueError:
        words = command.split()
    if not words:
        return command.strip()
    return Path(words[0]).name


@dataclass(frozen=True)
class PhaseFailure:
    kind: FailureKind
    message: str


@dataclass(frozen=True)
class TestRun:
    output: str
    stderr: str
    exit_code: int
    failure: Optional[PhaseFailure] = None

    __test__ = False


class ProcessRegistry:
    """Background processes started by one spec's setup, keyed by name."""

    def __init__(self) -> None:
        self._by_name: dict[str, list[BackgroundProcess]] = {}

    def register(self, process: BackgroundProcess) -> None:
        self._by_name.setdefault(process.name, []).append(process)

    def names(self) -> list[str]:
        return list(self._by_name)

    def terminate(self, name: str) -> int:
        processes = self._by_name.pop(name, [])
        for process in processes:
            code = process.terminate()
            logger.debug("terminated %r (pid %s), exit code %s", name, process.pid, code)
        return len(processes)

    def terminate_all(self) -> int:
        count = 0
        for name in list(self._by_name):
            count += self.terminate(name)
        return count


def failure_kind_for(error: InductError) -> FailureKind:
    if isinstance(error, ParseFailure):
        return FailureKind.PARSE_FAILED
    if isinstance(error, BindFailure):
        return FailureKind.BIND_FAILED
    if isinstance(error, DirectoryUnreadable):
        return FailureKind.DIRECTORY_UNREADABLE
    if isinstance(error, FileNotFound):
        return FailureKind.FILE_NOT_FOUND
    if isinstance(error, ResourceFailure):
        return FailureKind.FILE_UNREADABLE
    if isinstance(error, ExecutionFailure):
        return FailureKind.SPAWN_FAILED
    never("unclassified induct error", error_type=type(error).__name__)


def _failure_message(error: InductError, *, document: str) -> str:
    if isinstance(error, ParseFailure):
        return f"Failed to parse {document}: {error}"
    if isinstance(error, BindFailure):
        return f"Invalid {document}: {error}"
    return str(error)


class ExecutionEngine:
    def __init__(
        self,
        *,
        runner: Optional[CommandRunner] = None,
        id_generator: Optional[ResultIdGenerator] = None,
        clock: Callable[[], float] = time.monotonic,
        working_dir: Optional[Path] = None,
        spec_suffixes: Sequence[str] = DEFAULT_SPEC_SUFFIXES,
    ) -> None:
        self.runner: CommandRunner = runner if runner is not None else SubprocessRunner()
        self.id_generator = id_generator if id_generator is not None else ResultIdGenerator()
        self._clock = clock
        self._working_dir = working_dir
        self.spec_suffixes = tuple(spec_suffixes)

    def _base_dir(self) -> Path:
        return self._working_dir if self._working_dir is not None else Path.cwd()

    def _elapsed_ms(self, start: float) -> int:
        return max(0, round((self._clock() - start) * 1000))

    def failure_result(
        self,
        name: str,
        kind: FailureKind,
        message: str,
        *,
        duration_ms: int = 0,
    ) -> SpecResult:
        return SpecResult(
            id=self.id_generator.next_id(),
            spec_name=name,
            status=SpecStatus.FAILED,
            actual_exit_code=-1,
            error_message=message,
            duration_ms=duration_ms,
            failure_kind=kind,
        )

    def _error_result(self, name: str, error: InductError, *, document: str) -> SpecResult:
        logger.debug("%s: %s", name, error)
        return self.failure_result(
            name, failure_kind_for(error), _failure_message(error, document=document)
        )

    # single spec

    def generate_info(self, spec: Spec) -> Optional[GenerateInfo]:
        """GenerateInfo when the spec's target test file is missing, else None."""
        test_case = spec.test_case
        target = test_case.target_path or resolve_target_path(test_case.command)
        if target is None:
            logger.debug("%s: no target path found in %r", spec.name, test_case.command)
            return None
        path = Path(target)
        if not path.is_absolute():
            path = self._base_dir() / path
        if path.exists():
            return None
        return GenerateInfo(
            target_path=target,
            command=test_case.command,
            description=spec.description,
            framework_hint=detect_framework(test_case.command),
        )

    def execute_spec(self, spec: Spec) -> SpecResult:
        start = self._clock()
        if spec.test_case.generate:
            info = self.generate_info(spec)
            if info is not None:
                logger.debug("%s: generate required for %s", spec.name, info.target_path)
                return SpecResult(
                    id=self.id_generator.next_id(),
                    spec_name=spec.name,
                    status=SpecStatus.GENERATE_REQUIRED,
                    actual_exit_code=-1,
                    error_message=GENERATE_REQUIRED_MESSAGE,
                    duration_ms=self._elapsed_ms(start),
                    generate_info=info,
                )

        registry = ProcessRegistry()
        test_run: Optional[TestRun] = None
        try:
            setup_failure = self._run_setup(spec.setup, registry)
            if setup_failure is None:
                test_run = self._run_test(spec.test_case)
        finally:
            self._run_teardown(spec.teardown, registry)

        if test_run is None:
            assert setup_failure is not None
            logger.debug("%s: %s", spec.name, setup_failure.message)
            return self.failure_result(
                spec.name,
                setup_failure.kind,
                setup_failure.message,
                duration_ms=self._elapsed_ms(start),
            )
        passed = test_run.failure is None
        return SpecResult(
            id=self.id_generator.next_id(),
            spec_name=spec.name,
            status=SpecStatus.PASSED if passed else SpecStatus.FAILED,
            actual_output=test_run.output,
            actual_exit_code=test_run.exit_code,
            error_message=None if passed else test_run.failure.message,
            duration_ms=self._elapsed_ms(start),
            failure_kind=None if passed else test_run.failure.kind,
            actual_stderr=test_run.stderr,
        )

    def _run_setup(
        self, commands: Iterable[SetupCommand], registry: ProcessRegistry
    ) -> Optional[PhaseFailure]:
        for command in commands:
            logger.debug("setup: %s", command.run)
            try:
                if command.background:
                    registry.register(
                        self.runner.spawn_background(
                            command.run, command.name or process_name(command.run)
                        )
                    )
                    continue
                result = self.runner.run(command.run)
            except ExecutionFailure as exc:
                return PhaseFailure(
                    FailureKind.SETUP_COMMAND_FAILED,
                    f"Setup command failed to execute: {exc}",
                )
            if result.exit_code != 0:
                return PhaseFailure(
                    FailureKind.SETUP_COMMAND_FAILED,
                    str(SetupCommandFailed(command.run, result.exit_code)),
                )
        return None

    def _run_test(self, test_case: TestCase) -> TestRun:
        stdin = test_case.input.encode("utf-8") if test_case.input is not None else None
        logger.debug("run: %s", test_case.command)
        try:
            result = self.runner.run(test_case.command, stdin=stdin)
        except ExecutionFailure as exc:
            return TestRun(
                output="",
                stderr="",
                exit_code=-1,
                failure=PhaseFailure(FailureKind.SPAWN_FAILED, f"Failed to run command: {exc}"),
            )
        output = result.stdout.decode("utf-8", errors="replace")
        stderr = result.stderr.decode("utf-8", errors="replace")
        if stderr:
            logger.debug("stderr of %r: %s", test_case.command, stderr.rstrip())
        outcome = validate(
            output,
            result.exit_code,
            test_case.expect_output,
            test_case.expect_output_contains,
            test_case.expect_exit_code,
        )
        failure = None
        if not outcome.passed:
            assert outcome.failure_kind is not None
            failure = PhaseFailure(outcome.failure_kind, outcome.reason or "validation failed")
        return TestRun(output=output, stderr=stderr, exit_code=result.exit_code, failure=failure)

    def _run_teardown(
        self, commands: Iterable[TeardownCommand], registry: ProcessRegistry
    ) -> None:
        for command in commands:
            if isinstance(command, RunCommand):
                logger.debug("teardown: %s", command.run)
                try:
                    result = self.runner.run(command.run)
                except ExecutionFailure as exc:
                    logger.warning("teardown command failed to execute: %s", exc)
                    continue
                if result.exit_code != 0:
                    logger.warning(
                        "teardown command exited with %d: %s", result.exit_code, command.run
                    )
            elif isinstance(command, KillProcessByName):
                if registry.terminate(command.name) == 0:
                    logger.warning(
                        "kill_process %r: no background process with that name (known: %s)",
                        command.name,
                        ", ".join(registry.names()) or "none",
                    )
            else:
                never("unknown teardown command", command=repr(command))
        leftover = registry.terminate_all()
        if leftover:
            logger.debug("terminated %d background process(es) left after teardown", leftover)

    # files, directories and projects

    def execute_spec_file(self, path: Path) -> SpecResult:
        try:
            spec = load_spec_file(path)
        except InductError as exc:
            return self._error_result(str(path), exc, document="spec")
        return self.execute_spec(spec)

    def execute_specs_from_dir(self, directory: Path) -> list[SpecResult]:
        try:
            entries = [
                entry
                for entry in directory.iterdir()
                if entry.is_file()
                and entry.name.endswith(self.spec_suffixes)
                and not is_project_file(entry)
            ]
        except OSError as exc:
            error = DirectoryUnreadable(str(directory), exc.strerror or str(exc))
            return [self._error_result(str(directory), error, document="directory")]
        entries.sort(key=lambda entry: entry.name)
        return [self.execute_spec_file(entry) for entry in entries]

    def execute_project_spec(
        self, project: ProjectSpec, base_dir: Optional[Path] = None
    ) -> list[SpecResult]:
        return self._flatten(project, base_dir if base_dir is not None else self._base_dir(), ())

    def execute_project_spec_file(self, path: Path) -> list[SpecResult]:
        try:
            project = load_project_spec_file(path)
        except InductError as exc:
            return [self._error_result(str(path), exc, document="project spec")]
        return self._flatten(project, path.parent, (path.resolve(),))

    def _flatten(
        self, project: ProjectSpec, base_dir: Path, chain: tuple[Path, ...]
    ) -> list[SpecResult]:
        logger.debug(
            "project %r: %d inline, %d included",
            project.name,
            len(project.specs),
            len(project.include),
        )
        results = [self.execute_spec(spec) for spec in project.specs]
        for include in project.include:
            path = base_dir / include
            if is_project_file(path):
                results.extend(self._execute_nested_project(path, chain))
            else:
                results.append(self.execute_spec_file(path))
        return results

    def _execute_nested_project(self, path: Path, chain: tuple[Path, ...]) -> list[SpecResult]:
        # Synthetic results are named by the joined include path, like spec files.
        label = str(path)
        key = path.resolve()
        if key in chain:
            cycle = " -> ".join(str(entry) for entry in (*chain, key))
            return [
                self.failure_result(
                    label, FailureKind.INCLUDE_CYCLE, f"Include cycle detected: {cycle}"
                )
            ]
        try:
            project = load_project_spec_file(path)
        except InductError as exc:
            return [self._error_result(label, exc, document="project spec")]
        return self._flatten(project, path.parent, (*chain, key))
