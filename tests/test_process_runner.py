from __future__ import annotations

import pytest

from induct.exceptions import CommandTimeout, SpawnFailed
from induct.process_runner import SubprocessRunner


@pytest.fixture
def runner(require_sh: None) -> SubprocessRunner:
    return SubprocessRunner()


def test_captures_stdout_stderr_and_exit_code(runner: SubprocessRunner) -> None:
    result = runner.run("echo out; echo err >&2; exit 3")
    assert result.stdout == b"out\n"
    assert result.stderr == b"err\n"
    assert result.exit_code == 3
    assert result.duration_ns >= 0
    assert not result.stdout_truncated


def test_pipes_input_to_stdin(runner: SubprocessRunner) -> None:
    result = runner.run("cat", stdin=b"hello\nworld\n")
    assert result.stdout == b"hello\nworld\n"
    assert result.exit_code == 0


def test_stdin_is_empty_without_input(runner: SubprocessRunner) -> None:
    result = runner.run("cat")
    assert result.stdout == b""
    assert result.exit_code == 0


def test_command_ignoring_input_does_not_fail(runner: SubprocessRunner) -> None:
    result = runner.run("true", stdin=b"x" * 1024 * 1024)
    assert result.exit_code == 0


def test_signal_termination_reports_negative_exit_code(runner: SubprocessRunner) -> None:
    result = runner.run("kill -9 $$")
    assert result.exit_code == -9


def test_output_is_capped(require_sh: None, caplog: pytest.LogCaptureFixture) -> None:
    runner = SubprocessRunner(max_output_bytes=8)
    with caplog.at_level("WARNING", logger="induct"):
        result = runner.run("printf '0123456789abcdef'")
    assert result.stdout == b"01234567"
    assert result.stdout_truncated
    assert not result.stderr_truncated
    assert "truncated" in caplog.text


def test_timeout_kills_command(runner: SubprocessRunner) -> None:
    with pytest.raises(CommandTimeout) as excinfo:
        runner.run("sleep 10", timeout=0.2)
    assert excinfo.value.timeout == 0.2


def test_spawn_failure_is_reported() -> None:
    def _refuse(*_args, **_kwargs):
        raise FileNotFoundError(2, "No such file or directory")

    runner = SubprocessRunner(process_factory=_refuse)
    with pytest.raises(SpawnFailed) as excinfo:
        runner.run("echo hi")
    assert excinfo.value.command == "echo hi"
    assert excinfo.value.reason == "No such file or directory"


def test_missing_shell_is_a_spawn_failure() -> None:
    runner = SubprocessRunner(shell="/nonexistent/shell")
    with pytest.raises(SpawnFailed):
        runner.run("echo hi")


def test_background_process_terminates(runner: SubprocessRunner) -> None:
    process = runner.spawn_background("sleep 30", "sleep")
    assert process.name == "sleep"
    assert process.is_running()
    exit_code = process.terminate()
    assert not process.is_running()
    assert exit_code != 0


def test_max_output_bytes_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SubprocessRunner(max_output_bytes=0)


def test_output_past_cap_is_drained_and_dropped(require_sh: None) -> None:
    runner = SubprocessRunner(max_output_bytes=1024)
    result = runner.run("head -c 5000000 /dev/zero; echo done >&2")
    assert result.exit_code == 0
    assert result.stdout == b"\0" * 1024
    assert result.stdout_truncated
    assert result.stderr == b"done\n"
