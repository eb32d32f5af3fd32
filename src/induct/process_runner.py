from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from contextlib import suppress
from dataclasses import dataclass
from typing import IO, Callable, Optional, Protocol

from induct.exceptions import CommandTimeout, SpawnFailed

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024
DEFAULT_SHELL = "sh"
_TERMINATE_GRACE_SECONDS = 2.0
_READ_CHUNK_BYTES = 64 * 1024


@dataclass(frozen=True)
class ProcessResult:
    stdout: bytes
    stderr: bytes
    exit_code: int
    duration_ns: int
    stdout_truncated: bool = False
    stderr_truncated: bool = False


def _signal_group(process: subprocess.Popen, sig: int) -> None:
    # Commands run in their own session, so the group id is the shell's pid.
    with suppress(ProcessLookupError, PermissionError):
        os.killpg(process.pid, sig)


class BackgroundProcess:
    """A setup command left running for the duration of one spec."""

    def __init__(self, name: str, command: str, process: subprocess.Popen) -> None:
        self.name = name
        self.command = command
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    def is_running(self) -> bool:
        return self._process.poll() is None

    def terminate(self, grace: float = _TERMINATE_GRACE_SECONDS) -> int:
        if self.is_running():
            _signal_group(self._process, signal.SIGTERM)
            try:
                self._process.wait(timeout=grace)
            except subprocess.TimeoutExpired:
                _signal_group(self._process, signal.SIGKILL)
                self._process.wait()
        return self._process.returncode


class CommandRunner(Protocol):
    def run(
        self,
        command: str,
        stdin: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult: ...

    def spawn_background(self, command: str, name: str) -> BackgroundProcess: ...


ProcessFactory = Callable[..., subprocess.Popen]



class _CappedReader(threading.Thread):
    """Drains one pipe, keeping at most ``limit`` bytes and dropping the rest."""

    def __init__(self, stream: IO[bytes], limit: int) -> None:
        super().__init__(daemon=True)
        self._stream = stream
        self._limit = limit
        self._buffer = bytearray()
        self.truncated = False

    def run(self) -> None:
        with self._stream:
            while True:
                chunk = self._stream.read1(_READ_CHUNK_BYTES)
                if not chunk:
                    return
                room = self._limit - len(self._buffer)
                if room > 0:
                    self._buffer.extend(chunk[:room])
                if len(chunk) > room:
                    self.truncated = True

    @property
    def data(self) -> bytes:
        return bytes(self._buffer)


def _feed_stdin(process: subprocess.Popen, data: bytes) -> None:
    assert process.stdin is not None
    # A command that exits without reading its input closes the pipe first.
    with suppress(BrokenPipeError):
        process.stdin.write(data)
    with suppress(BrokenPipeError):
        process.stdin.close()


class SubprocessRunner:
    """Runs shell command lines through ``sh -c``.

    Both output pipes are drained while the command runs. At most
    ``max_output_bytes`` of each stream is kept; the remainder is read and
    dropped, so a command that never stops printing neither blocks nor grows
    memory past the cap. A process killed by a signal reports the negated
    signal number as its exit code.
    """

    def __init__(
        self,
        *,
        shell: str = DEFAULT_SHELL,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        process_factory: ProcessFactory = subprocess.Popen,
        clock_ns: Callable[[], int] = time.monotonic_ns,
    ) -> None:
        if max_output_bytes <= 0:
            raise ValueError("max_output_bytes must be positive")
        self._shell = shell
        self._max_output_bytes = max_output_bytes
        self._process_factory = process_factory
        self._clock_ns = clock_ns

    def _spawn(self, command: str, **kwargs: object) -> subprocess.Popen:
        try:
            return self._process_factory(
                [self._shell, "-c", command],
                start_new_session=True,
                **kwargs,
            )
        except OSError as exc:
            raise SpawnFailed(command, exc.strerror or str(exc)) from exc

    def run(
        self,
        command: str,
        stdin: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        start_ns = self._clock_ns()
        process = self._spawn(
            command,
            stdin=subprocess.PIPE if stdin is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        logger.debug("spawned pid %s: %s", process.pid, command)
        assert process.stdout is not None and process.stderr is not None
        out = _CappedReader(process.stdout, self._max_output_bytes)
        err = _CappedReader(process.stderr, self._max_output_bytes)
        out.start()
        err.start()
        if stdin is not None:
            _feed_stdin(process, stdin)
        try:
            exit_code = process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            _signal_group(process, signal.SIGKILL)
            process.wait()
            raise CommandTimeout(command, float(timeout or 0)) from None
        finally:
            out.join()
            err.join()
        duration_ns = self._clock_ns() - start_ns
        if out.truncated or err.truncated:
            logger.warning(
                "output of %r truncated to %d bytes", command, self._max_output_bytes
            )
        return ProcessResult(
            stdout=out.data,
            stderr=err.data,
            exit_code=exit_code,
            duration_ns=duration_ns,
            stdout_truncated=out.truncated,
            stderr_truncated=err.truncated,
        )

    def spawn_background(self, command: str, name: str) -> BackgroundProcess:
        process = self._spawn(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        logger.debug("started background process %r (pid %s): %s", name, process.pid, command)
        return BackgroundProcess(name, command, process)
