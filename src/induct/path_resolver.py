"""Heuristics that read test-runner command lines.

``resolve_target_path`` guesses which test file a command would run, so a
spec in generate mode can tell whether that file still has to be written.
``detect_framework`` names the runner the command invokes. Both are driven
by ordered rule tables and return ``None`` when nothing matches.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TargetPathRule:
    marker: str
    skip: int
    prefix_only: bool = False

    def remainder(self, command: str) -> Optional[str]:
        if self.prefix_only:
            index = 0 if command.startswith(self.marker) else -1
        else:
            index = command.find(self.marker)
        if index < 0:
            return None
        rest = command[index + self.skip :].strip()
        return rest or None


TARGET_PATH_RULES: tuple[TargetPathRule, ...] = (
    TargetPathRule("npm test -- ", len("npm test -- ")),
    TargetPathRule("npx jest", len("npx jest")),
    TargetPathRule("jest ", len("jest "), prefix_only=True),
    TargetPathRule("python -m pytest", len("python -m pytest")),
    TargetPathRule("pytest", len("pytest")),
    TargetPathRule("go test", len("go test")),
    TargetPathRule("cargo test", len("cargo test")),
    TargetPathRule("zig test", len("zig test")),
    TargetPathRule("npx vitest", len("npx vitest")),
    TargetPathRule("mocha", len("mocha")),
)

TEST_FILE_SUFFIXES: tuple[str, ...] = (
    ".test.ts",
    ".test.js",
    ".test.tsx",
    ".test.jsx",
    ".spec.ts",
    ".spec.js",
    "_test.py",
    "_test.go",
    ".test.zig",
)

SOURCE_SUFFIXES: tuple[str, ...] = (".py", ".ts", ".tsx", ".js", ".jsx", ".go", ".zig", ".rs")

FRAMEWORK_CATALOG: tuple[tuple[str, str], ...] = (
    ("jest", "jest"),
    ("npm test", "jest"),
    ("pytest", "pytest"),
    # "cargo test" contains "go test", so it must come first.
    ("cargo test", "cargo-test"),
    ("go test", "go-test"),
    ("zig test", "zig-test"),
    ("vitest", "vitest"),
    ("mocha", "mocha"),
)


def looks_like_test_path(token: str) -> bool:
    if token.endswith(TEST_FILE_SUFFIXES) or token.endswith(SOURCE_SUFFIXES):
        return True
    return "/" in token


def first_path_argument(arguments: str) -> Optional[str]:
    for token in arguments.split():
        if token.startswith("-"):
            continue
        if looks_like_test_path(token):
            return token
    return None


def find_test_file_token(command: str) -> Optional[str]:
    for token in command.split():
        if token.endswith(TEST_FILE_SUFFIXES):
            return token
    return None


def resolve_target_path(command: str) -> Optional[str]:
    command = command.strip()
    for rule in TARGET_PATH_RULES:
        remainder = rule.remainder(command)
        if remainder is not None:
            return first_path_argument(remainder)
    return find_test_file_token(command)


def detect_framework(command: str) -> Optional[str]:
    for needle, hint in FRAMEWORK_CATALOG:
        if needle in command:
            return hint
    return None
