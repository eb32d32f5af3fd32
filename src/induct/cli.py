from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from induct import __version__
from induct.config import (
    TomlTable,
    merge_payload,
    run_defaults,
    run_flag,
    run_log_level,
    run_max_output_bytes,
    run_spec_suffixes,
)
from induct.exceptions import InductError
from induct.execution import DEFAULT_SPEC_SUFFIXES, ExecutionEngine, is_project_file
from induct.process_runner import DEFAULT_MAX_OUTPUT_BYTES, SubprocessRunner
from induct.reporter import Reporter
from induct.spec_binder import load_project_spec_file
from induct.spec_model import PROJECT_FILE_NAME, SpecResult

app = typer.Typer(add_completion=False, help="Run executable specs for command-line tools.")

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

SCHEMA_TEXT = """\
# Induct Spec Schema

## Single Spec (*.yaml)

name: spec name              # Required: name of the spec
description: optional desc   # Optional: description

setup:                       # Optional: pre-test commands, run in order
  - echo "setup"             # bare string is shorthand for run
  - run: ./server --port 8080
    background: true         # Optional: keep running until teardown
    name: server             # Optional: name used by kill_process

test:                        # Required (alias: test_case)
  command: echo hello        # Required: command to execute
  input: "stdin data"        # Optional: stdin input
  expect_output: "hello\\n"   # Optional: exact output match
  expect_output_contains: x  # Optional: substring match
  expect_exit_code: 0        # Optional: expected exit code (default: 0)
  generate: false            # Optional: report missing test files instead of running
  target_path: tests/x.test.ts  # Optional: test file checked in generate mode

teardown:                    # Optional: always runs after the test
  - run: rm -f /tmp/test.txt
  - kill_process: server

## Project Spec (inductspec.yaml)

name: project name           # Required: project name
description: optional desc   # Optional: description

specs:                       # Optional: inline spec definitions
  - name: test1
    test:
      command: echo hello
      expect_output_contains: "hello"

include:                     # Optional: spec files relative to this file
  - tests/auth.yaml
  - nested/inductspec.yaml   # project files are flattened recursively
"""


def _configure_logging(level: str) -> None:
    logger = logging.getLogger("induct")
    if logger.handlers:
        logger.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def _resolve_settings(
    *,
    verbose: bool,
    json_output: bool,
    config: Optional[Path],
) -> TomlTable:
    defaults = run_defaults(config_path=config)
    payload: TomlTable = {
        "verbose": True if verbose else None,
        "json": True if json_output else None,
    }
    return merge_payload(payload, defaults)


def _build_engine(settings: TomlTable) -> ExecutionEngine:
    runner = SubprocessRunner(
        max_output_bytes=run_max_output_bytes(settings, DEFAULT_MAX_OUTPUT_BYTES),
    )
    return ExecutionEngine(
        runner=runner,
        spec_suffixes=run_spec_suffixes(settings, DEFAULT_SPEC_SUFFIXES),
    )


def _prepare(
    *, verbose: bool, json_output: bool, config: Optional[Path]
) -> tuple[ExecutionEngine, Reporter]:
    settings = _resolve_settings(verbose=verbose, json_output=json_output, config=config)
    verbose = run_flag(settings, "verbose")
    _configure_logging("DEBUG" if verbose else run_log_level(settings))
    reporter = Reporter(verbose=verbose, json_output=run_flag(settings, "json"))
    return _build_engine(settings), reporter


def _finish(reporter: Reporter, results: list[SpecResult]) -> None:
    summary = reporter.report_all(results)
    if summary.failed > 0:
        raise typer.Exit(code=1)


@app.command("run")
def run(
    path: Path = typer.Argument(..., help="Spec file or inductspec.yaml project file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show errors and output for every spec."),
    json_output: bool = typer.Option(False, "--json", help="Emit one JSON object per result."),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to induct.toml."),
) -> None:
    """Run a single spec file or a project spec."""
    engine, reporter = _prepare(verbose=verbose, json_output=json_output, config=config)
    if is_project_file(path):
        results = engine.execute_project_spec_file(path)
    else:
        results = [engine.execute_spec_file(path)]
    _finish(reporter, results)


@app.command("run-dir")
def run_dir(
    directory: Path = typer.Argument(..., help="Directory of spec files."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show errors and output for every spec."),
    json_output: bool = typer.Option(False, "--json", help="Emit one JSON object per result."),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to induct.toml."),
) -> None:
    """Run every spec file in a directory, in name order."""
    engine, reporter = _prepare(verbose=verbose, json_output=json_output, config=config)
    _finish(reporter, engine.execute_specs_from_dir(directory))


def _list_directory(directory: Path, suffixes: tuple[str, ...]) -> list[str]:
    names = [
        entry.name
        for entry in directory.iterdir()
        if entry.is_file() and entry.name.endswith(suffixes) and not is_project_file(entry)
    ]
    return sorted(names)


def _list_project(path: Path) -> list[str]:
    project = load_project_spec_file(path)
    lines = [f"[inline #{index}] {spec.name}" for index, spec in enumerate(project.specs, start=1)]
    lines.extend(f"[include] {include}" for include in project.include)
    return lines


@app.command("list")
def list_specs(
    path: Path = typer.Argument(Path(PROJECT_FILE_NAME), help="Directory or project spec file."),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to induct.toml."),
) -> None:
    """List the specs a directory or project file would run."""
    settings = run_defaults(config_path=config)
    try:
        if path.is_dir():
            lines = _list_directory(path, run_spec_suffixes(settings, DEFAULT_SPEC_SUFFIXES))
        else:
            lines = _list_project(path)
    except (InductError, OSError) as exc:
        typer.secho(f"Error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not lines:
        typer.echo("No spec files found")
        return
    for line in lines:
        typer.echo(line)


@app.command("schema")
def schema() -> None:
    """Print the spec file schema."""
    typer.echo(SCHEMA_TEXT, nl=False)


@app.command("version")
def version() -> None:
    """Print the induct version."""
    typer.echo(f"induct v{__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
