"""Indentation-sensitive parser for spec documents.

Only the subset of YAML that spec files use is accepted:

  * block mappings (``key: value`` lines sharing an indentation),
  * block sequences (``- item`` lines, including ``- key: value`` items that
    open a mapping on the dash line),
  * plain and quoted scalars, coerced to bool / int / str / None,
  * literal block scalars introduced by ``|``,
  * ``#`` line comments and trailing comments on plain scalars.

The parser walks the document line by line with a cursor; every block is
parsed by a recursive call that owns the lines indented at or beyond the
block's indentation. Any structural error aborts the whole document.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from induct.exceptions import InvalidSyntax, UnexpectedValueShape
from induct.tree_types import ParsedMapping, ParsedScalar, ParsedSequence, ParsedValue

# A key ends at the first colon that is followed by whitespace or the end of the line.
_KEY_SEPARATOR = re.compile(r":(?=\s|$)")
_INLINE_MAPPING = re.compile(r"^[^\s\"'#][^\n]*?:(?=\s|$)")
_TRAILING_COMMENT = re.compile(r"(?:^|\s)#.*$")
_INTEGER = re.compile(r"[+-]?[0-9]+")
# Integers are 64-bit signed; anything wider stays a string.
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1
_INT_MAX_DIGITS = len(str(_INT_MAX))

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


@dataclass(frozen=True)
class _Line:
    number: int
    indent: int
    content: str


def _is_sequence_item(content: str) -> bool:
    return content == "-" or content.startswith("- ")


def _strip_trailing_comment(text: str) -> str:
    return _TRAILING_COMMENT.sub("", text)


def _parse_quoted(text: str, line_number: int) -> str:
    quote = text[0]
    chars: list[str] = []
    index = 1
    while index < len(text):
        char = text[index]
        if char == quote:
            return "".join(chars)
        if char == "\\" and index + 1 < len(text):
            index += 1
            escaped = text[index]
            chars.append(_ESCAPES.get(escaped, escaped))
        else:
            chars.append(char)
        index += 1
    raise InvalidSyntax(f"unterminated {quote} quoted string", line=line_number)


def _parse_int64(text: str) -> int | None:
    sign = "-" if text.startswith("-") else ""
    digits = text.lstrip("+-").lstrip("0") or "0"
    if len(digits) > _INT_MAX_DIGITS:
        return None
    value = int(sign + digits)
    if _INT_MIN <= value <= _INT_MAX:
        return value
    return None


def parse_scalar(text: str, *, line_number: int = 0) -> ParsedScalar:
    """Coerce inline scalar text to its typed value."""
    text = text.strip()
    if not text:
        return None
    if text[0] in "\"'":
        return _parse_quoted(text, line_number)
    text = _strip_trailing_comment(text).strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if _INTEGER.fullmatch(text):
        value = _parse_int64(text)
        if value is not None:
            return value
    return text


class TreeParser:
    def __init__(self, text: str) -> None:
        self._lines = [raw.rstrip("\r") for raw in text.split("\n")]
        self._pos = 0

    def parse(self) -> ParsedMapping:
        first = self._peek()
        if first is None:
            return {}
        if _is_sequence_item(first.content):
            raise UnexpectedValueShape(
                "document must be a mapping, found a sequence item",
                line=first.number,
            )
        document = self._parse_mapping(first.indent)
        leftover = self._peek()
        if leftover is not None:
            raise UnexpectedValueShape(
                f"line is indented less than the document (indent {leftover.indent})",
                line=leftover.number,
            )
        return document

    # cursor

    def _line_at(self, index: int) -> _Line | None:
        raw = self._lines[index]
        stripped = raw.lstrip(" \t")
        if not stripped or stripped.startswith("#"):
            return None
        leading = raw[: len(raw) - len(stripped)]
        if "\t" in leading:
            raise InvalidSyntax("tabs are not allowed in indentation", line=index + 1)
        return _Line(number=index + 1, indent=len(leading), content=stripped.rstrip())

    def _peek(self) -> _Line | None:
        while self._pos < len(self._lines):
            line = self._line_at(self._pos)
            if line is not None:
                return line
            self._pos += 1
        return None

    def _advance(self) -> None:
        self._pos += 1

    # blocks

    def _parse_mapping(self, indent: int) -> ParsedMapping:
        mapping: ParsedMapping = {}
        while True:
            line = self._peek()
            if line is None or line.indent < indent:
                return mapping
            if _is_sequence_item(line.content):
                raise UnexpectedValueShape(
                    "sequence item where a mapping entry was expected",
                    line=line.number,
                )
            self._advance()
            key, value = self._parse_entry(line.content, line.indent, line.number)
            mapping[key] = value

    def _parse_sequence(self, indent: int) -> ParsedSequence:
        items: ParsedSequence = []
        while True:
            line = self._peek()
            if line is None or line.indent < indent:
                return items
            if not _is_sequence_item(line.content):
                raise UnexpectedValueShape(
                    "mapping entry where a sequence item was expected",
                    line=line.number,
                )
            self._advance()
            items.append(self._parse_sequence_item(line))

    def _parse_sequence_item(self, line: _Line) -> ParsedValue:
        rest = line.content[1:]
        text = rest.lstrip(" ")
        if not text or text.startswith("#"):
            nested = self._peek()
            if nested is None or nested.indent < line.indent + 2:
                return None
            return self._parse_mapping(line.indent + 2)
        key_column = line.indent + 1 + len(rest) - len(text)
        if text.startswith("|"):
            return self._parse_block_scalar(line.indent)
        if _INLINE_MAPPING.match(text):
            key, value = self._parse_entry(text, key_column, line.number)
            mapping: ParsedMapping = {key: value}
            mapping.update(self._parse_mapping(key_column))
            return mapping
        return parse_scalar(text, line_number=line.number)

    def _parse_entry(
        self, text: str, owner_indent: int, line_number: int
    ) -> tuple[str, ParsedValue]:
        separator = _KEY_SEPARATOR.search(text)
        if separator is None:
            raise InvalidSyntax(f"expected 'key: value', got {text!r}", line=line_number)
        key = text[: separator.start()].strip()
        if not key:
            raise InvalidSyntax("mapping entry has an empty key", line=line_number)
        rest = text[separator.end() :].strip()
        if not rest or rest.startswith("#"):
            return key, self._parse_nested(owner_indent)
        if rest.startswith("|"):
            return key, self._parse_block_scalar(owner_indent)
        return key, parse_scalar(rest, line_number=line_number)

    def _parse_nested(self, owner_indent: int) -> ParsedValue:
        nested = self._peek()
        if nested is None or nested.indent <= owner_indent:
            return None
        if _is_sequence_item(nested.content):
            return self._parse_sequence(nested.indent)
        return self._parse_mapping(nested.indent)

    def _parse_block_scalar(self, base_indent: int) -> str:
        lines: list[str] = []
        content_indent: int | None = None
        while self._pos < len(self._lines):
            raw = self._lines[self._pos]
            if not raw.strip():
                lines.append("")
                self._pos += 1
                continue
            indent = len(raw) - len(raw.lstrip(" "))
            if content_indent is None:
                if indent <= base_indent:
                    break
                content_indent = indent
            elif indent < content_indent:
                break
            lines.append(raw[content_indent:])
            self._pos += 1
        while lines and not lines[-1]:
            lines.pop()
        if not lines:
            return ""
        return "\n".join(lines) + "\n"


def parse_tree(text: str) -> ParsedMapping:
    """Parse a whole document into a mapping tree.

    Raises ``ParseFailure`` (``InvalidSyntax`` / ``UnexpectedValueShape``)
    when the text falls outside the accepted subset.
    """
    return TreeParser(text).parse()
