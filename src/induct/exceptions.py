"""Error taxonomy for spec parsing, binding and execution."""

from __future__ import annotations


class InductError(Exception):
    """Base class for every error raised by induct."""


class ParseFailure(InductError):
    """The document text is not in the accepted structured-text subset.

    Parse failures are fatal to the whole document: no partial tree is ever
    returned.
    """

    def __init__(self, message: str, *, line: int | None = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class InvalidSyntax(ParseFailure):
    pass


class UnexpectedValueShape(ParseFailure):
    pass


class BindFailure(InductError):
    """The parsed tree does not project onto the spec model."""

    def __init__(self, message: str, *, field: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class MissingRequiredField(BindFailure):
    def __init__(self, field: str):
        super().__init__("required field is missing", field=field)


class InvalidFieldType(BindFailure):
    pass


class ExecutionFailure(InductError):
    pass


class SpawnFailed(ExecutionFailure):
    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"failed to spawn {command!r}: {reason}")


class SetupCommandFailed(ExecutionFailure):
    def __init__(self, command: str, exit_code: int):
        self.command = command
        self.exit_code = exit_code
        super().__init__(f"Setup command failed with exit code {exit_code}: {command}")


class CommandTimeout(ExecutionFailure):
    def __init__(self, command: str, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"command timed out after {timeout}s: {command}")


class ResourceFailure(InductError):
    def __init__(self, message: str, *, path: str):
        self.path = path
        super().__init__(message)


class FileNotFound(ResourceFailure):
    def __init__(self, path: str):
        super().__init__(f"File not found: {path}", path=path)


class DirectoryUnreadable(ResourceFailure):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to open directory {path}: {reason}", path=path)


class NeverThrown(RuntimeError):
    """Raised by ``never()`` when a code path assumed unreachable is reached."""

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.env = dict(env or {})
