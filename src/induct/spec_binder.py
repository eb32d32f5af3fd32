from __future__ import annotations

from pathlib import Path
from typing import Mapping

from induct.exceptions import FileNotFound, InvalidFieldType, MissingRequiredField, ResourceFailure
from induct.spec_model import (
    KillProcessByName,
    ProjectSpec,
    RunCommand,
    SetupCommand,
    Spec,
    TeardownCommand,
    TestCase,
)
from induct.tree_parser import parse_tree
from induct.tree_types import ParsedMapping, ParsedValue


def _optional_str(value: ParsedValue) -> str | None:
    return value if isinstance(value, str) else None


def _optional_int(value: ParsedValue, default: int) -> int:
    # bool is an int subclass; `expect_exit_code: true` is not an exit code.
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


def _optional_bool(value: ParsedValue, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _required_str(mapping: Mapping[str, ParsedValue], key: str, *, path: str) -> str:
    if key not in mapping or mapping[key] is None:
        raise MissingRequiredField(path)
    value = mapping[key]
    if not isinstance(value, str):
        raise InvalidFieldType(f"expected a string, got {type(value).__name__}", field=path)
    if not value:
        raise InvalidFieldType("must not be empty", field=path)
    return value


def _sequence(value: ParsedValue) -> list[ParsedValue]:
    return value if isinstance(value, list) else []


def _bind_test_case(document: Mapping[str, ParsedValue], *, path: str) -> TestCase:
    if "test_case" in document:
        key = "test_case"
    elif "test" in document:
        key = "test"
    else:
        raise MissingRequiredField(f"{path}test")
    block = document[key]
    if block is None:
        raise MissingRequiredField(f"{path}{key}")
    if not isinstance(block, dict):
        raise InvalidFieldType(
            f"expected a mapping, got {type(block).__name__}", field=f"{path}{key}"
        )
    return TestCase(
        command=_required_str(block, "command", path=f"{path}{key}.command"),
        input=_optional_str(block.get("input")),
        expect_output=_optional_str(block.get("expect_output")),
        expect_output_contains=_optional_str(block.get("expect_output_contains")),
        expect_exit_code=_optional_int(block.get("expect_exit_code"), 0),
        generate=_optional_bool(block.get("generate"), False),
        target_path=_optional_str(block.get("target_path")),
    )


def _bind_setup(value: ParsedValue, *, path: str) -> tuple[SetupCommand, ...]:
    commands: list[SetupCommand] = []
    for index, item in enumerate(_sequence(value)):
        item_path = f"{path}setup[{index}]"
        if isinstance(item, str) and item:
            commands.append(SetupCommand(run=item))
        elif isinstance(item, dict) and "run" in item:
            commands.append(
                SetupCommand(
                    run=_required_str(item, "run", path=f"{item_path}.run"),
                    background=_optional_bool(item.get("background"), False),
                    name=_optional_str(item.get("name")),
                )
            )
        else:
            raise InvalidFieldType(
                "setup items must be a command string or a mapping with 'run'",
                field=item_path,
            )
    return tuple(commands)


def _bind_teardown(value: ParsedValue, *, path: str) -> tuple[TeardownCommand, ...]:
    commands: list[TeardownCommand] = []
    for index, item in enumerate(_sequence(value)):
        item_path = f"{path}teardown[{index}]"
        if isinstance(item, dict) and "run" in item:
            commands.append(RunCommand(run=_required_str(item, "run", path=f"{item_path}.run")))
        elif isinstance(item, dict) and "kill_process" in item:
            commands.append(
                KillProcessByName(
                    name=_required_str(item, "kill_process", path=f"{item_path}.kill_process")
                )
            )
        else:
            raise InvalidFieldType(
                "teardown items must be a mapping with 'run' or 'kill_process'",
                field=item_path,
            )
    return tuple(commands)


def _bind_spec(document: Mapping[str, ParsedValue], *, path: str = "") -> Spec:
    return Spec(
        name=_required_str(document, "name", path=f"{path}name"),
        description=_optional_str(document.get("description")),
        setup=_bind_setup(document.get("setup"), path=path),
        test_case=_bind_test_case(document, path=path),
        teardown=_bind_teardown(document.get("teardown"), path=path),
    )


def bind_spec(tree: ParsedMapping) -> Spec:
    """Project a parsed document onto a ``Spec``.

    Raises ``MissingRequiredField`` when ``name`` or the test block (``test``
    or ``test_case``) or its ``command`` is absent, and ``InvalidFieldType``
    when a required field or a setup/teardown item has the wrong shape.
    Optional fields of the wrong shape fall back to their defaults.
    """
    return _bind_spec(tree)


def bind_project_spec(tree: ParsedMapping) -> ProjectSpec:
    name = _required_str(tree, "name", path="name")
    specs: list[Spec] = []
    for index, item in enumerate(_sequence(tree.get("specs"))):
        if not isinstance(item, dict):
            raise InvalidFieldType("inline specs must be mappings", field=f"specs[{index}]")
        specs.append(_bind_spec(item, path=f"specs[{index}]."))
    include: list[str] = []
    for index, item in enumerate(_sequence(tree.get("include"))):
        if not isinstance(item, str) or not item:
            raise InvalidFieldType("include entries must be paths", field=f"include[{index}]")
        include.append(item)
    return ProjectSpec(
        name=name,
        description=_optional_str(tree.get("description")),
        specs=tuple(specs),
        include=tuple(include),
    )


def parse_spec(text: str) -> Spec:
    return bind_spec(parse_tree(text))


def parse_project_spec(text: str) -> ProjectSpec:
    return bind_project_spec(parse_tree(text))


def _read_document(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise FileNotFound(str(path)) from None
    except (OSError, UnicodeError) as exc:
        raise ResourceFailure(f"Failed to read {path}: {exc}", path=str(path)) from exc


def load_spec_file(path: Path) -> Spec:
    return parse_spec(_read_document(path))


def load_project_spec_file(path: Path) -> ProjectSpec:
    return parse_project_spec(_read_document(path))
