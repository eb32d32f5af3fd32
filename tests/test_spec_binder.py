from __future__ import annotations

from pathlib import Path

import pytest

from induct.exceptions import (
    BindFailure,
    FileNotFound,
    InvalidFieldType,
    MissingRequiredField,
    ParseFailure,
)
from induct.spec_binder import (
    bind_spec,
    load_project_spec_file,
    load_spec_file,
    parse_project_spec,
    parse_spec,
)
from induct.spec_model import KillProcessByName, RunCommand, SetupCommand, TestCase


def test_minimal_spec_uses_defaults() -> None:
    spec = parse_spec("name: basic\ntest:\n  command: echo hi\n")
    assert spec.name == "basic"
    assert spec.description is None
    assert spec.setup == ()
    assert spec.teardown == ()
    assert spec.test_case == TestCase(command="echo hi")
    assert spec.test_case.expect_exit_code == 0
    assert spec.test_case.generate is False


def test_full_spec_binds_every_field() -> None:
    spec = parse_spec(
        "name: full\n"
        "description: all fields\n"
        "setup:\n"
        "  - mkdir -p /tmp/x\n"
        "  - run: ./server --port 8080\n"
        "    background: true\n"
        "    name: server\n"
        "test:\n"
        "  command: cat\n"
        '  input: "hello\\n"\n'
        '  expect_output: "hello\\n"\n'
        "  expect_output_contains: hell\n"
        "  expect_exit_code: 3\n"
        "  generate: true\n"
        "  target_path: tests/cat_test.py\n"
        "teardown:\n"
        "  - run: rm -rf /tmp/x\n"
        "  - kill_process: server\n"
    )
    assert spec.description == "all fields"
    assert spec.setup == (
        SetupCommand(run="mkdir -p /tmp/x"),
        SetupCommand(run="./server --port 8080", background=True, name="server"),
    )
    assert spec.test_case == TestCase(
        command="cat",
        input="hello\n",
        expect_output="hello\n",
        expect_output_contains="hell",
        expect_exit_code=3,
        generate=True,
        target_path="tests/cat_test.py",
    )
    assert spec.teardown == (RunCommand(run="rm -rf /tmp/x"), KillProcessByName(name="server"))


def test_test_case_key_is_accepted_and_wins_over_test() -> None:
    spec = parse_spec(
        "name: alias\n"
        "test:\n"
        "  command: echo old\n"
        "test_case:\n"
        "  command: echo new\n"
    )
    assert spec.test_case.command == "echo new"


def test_wrongly_typed_optional_fields_fall_back_to_defaults() -> None:
    spec = parse_spec(
        "name: loose\n"
        "description: 12\n"
        "setup: not-a-list\n"
        "test:\n"
        "  command: ls\n"
        "  expect_exit_code: true\n"
        "  generate: yes\n"
        "  input: 5\n"
    )
    assert spec.description is None
    assert spec.setup == ()
    assert spec.test_case.expect_exit_code == 0
    assert spec.test_case.generate is False
    assert spec.test_case.input is None


@pytest.mark.parametrize(
    ("text", "field"),
    [
        ("test:\n  command: ls\n", "name"),
        ("name: x\n", "test"),
        ("name: x\ntest:\n  input: a\n", "test.command"),
        ("name: x\ntest:\n", "test"),
    ],
)
def test_missing_required_fields(text: str, field: str) -> None:
    with pytest.raises(MissingRequiredField) as excinfo:
        parse_spec(text)
    assert excinfo.value.field == field


def test_non_string_name_is_invalid() -> None:
    with pytest.raises(InvalidFieldType) as excinfo:
        parse_spec("name: 42\ntest:\n  command: ls\n")
    assert excinfo.value.field == "name"


def test_test_block_must_be_mapping() -> None:
    with pytest.raises(InvalidFieldType):
        parse_spec("name: x\ntest: echo hi\n")


def test_bad_setup_item_shape_fails_document() -> None:
    with pytest.raises(InvalidFieldType) as excinfo:
        parse_spec(
            "name: x\n"
            "setup:\n"
            "  - shell: echo hi\n"
            "test:\n"
            "  command: ls\n"
        )
    assert excinfo.value.field == "setup[0]"


def test_teardown_bare_string_is_rejected() -> None:
    with pytest.raises(BindFailure):
        parse_spec(
            "name: x\n"
            "test:\n"
            "  command: ls\n"
            "teardown:\n"
            "  - rm -f out.txt\n"
        )


def test_bind_spec_accepts_prebuilt_tree() -> None:
    spec = bind_spec({"name": "tree", "test": {"command": "true"}})
    assert spec.test_case.command == "true"


def test_project_spec_binds_inline_specs_and_includes() -> None:
    project = parse_project_spec(
        "name: project\n"
        "description: demo project\n"
        "specs:\n"
        "  - name: one\n"
        "    test:\n"
        "      command: echo 1\n"
        "  - name: two\n"
        "    test_case:\n"
        "      command: echo 2\n"
        "include:\n"
        "  - specs/a.yaml\n"
        "  - nested/inductspec.yaml\n"
    )
    assert project.name == "project"
    assert project.description == "demo project"
    assert [spec.name for spec in project.specs] == ["one", "two"]
    assert project.include == ("specs/a.yaml", "nested/inductspec.yaml")


def test_project_spec_requires_name_before_specs() -> None:
    with pytest.raises(MissingRequiredField) as excinfo:
        parse_project_spec("specs:\n  - bogus: 1\n")
    assert excinfo.value.field == "name"


def test_project_inline_spec_errors_carry_their_index() -> None:
    with pytest.raises(MissingRequiredField) as excinfo:
        parse_project_spec(
            "name: p\n"
            "specs:\n"
            "  - name: ok\n"
            "    test:\n"
            "      command: ls\n"
            "  - name: broken\n"
        )
    assert excinfo.value.field == "specs[1].test"


def test_project_include_entries_must_be_strings() -> None:
    with pytest.raises(InvalidFieldType):
        parse_project_spec("name: p\ninclude:\n  - 7\n")


def test_parse_errors_propagate_from_parse_spec() -> None:
    with pytest.raises(ParseFailure):
        parse_spec("name: x\nnot a key line\n")


def test_load_spec_file_reads_from_disk(tmp_path: Path) -> None:
    path = tmp_path / "hello.yaml"
    path.write_text("name: hello\ntest:\n  command: echo hello\n", encoding="utf-8")
    assert load_spec_file(path).name == "hello"


def test_load_missing_files_raise_file_not_found(tmp_path: Path) -> None:
    with pytest.raises(FileNotFound) as excinfo:
        load_spec_file(tmp_path / "absent.yaml")
    assert "File not found" in str(excinfo.value)
    with pytest.raises(FileNotFound):
        load_project_spec_file(tmp_path / "inductspec.yaml")


def test_wide_digit_expectation_stays_a_string() -> None:
    spec = parse_spec(
        "name: digits\n"
        "test:\n"
        "  command: echo nope\n"
        "  expect_output: 123456789012345678901\n"
    )
    assert spec.test_case.expect_output == "123456789012345678901"
