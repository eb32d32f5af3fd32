from __future__ import annotations

import logging
import shutil
import textwrap
from pathlib import Path

import pytest

from induct.execution import ExecutionEngine
from induct.process_runner import SubprocessRunner


@pytest.fixture(autouse=True)
def _reset_induct_logger():
    # The CLI installs its own handler on the package logger; undo it so
    # caplog keeps seeing records in later tests.
    logger = logging.getLogger("induct")
    yield
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def require_sh() -> None:
    if shutil.which("sh") is None:
        pytest.skip("requires a POSIX shell")


@pytest.fixture
def engine(tmp_path: Path, require_sh: None) -> ExecutionEngine:
    return ExecutionEngine(runner=SubprocessRunner(), working_dir=tmp_path)


@pytest.fixture
def write_spec():
    def _write(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
        return path

    return _write
