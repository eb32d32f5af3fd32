from __future__ import annotations

"""Value types produced by the spec document parser.

The parser emits plain Python containers; these aliases name the value space
so the binder can be explicit about which shapes it accepts.
"""

from typing import TypeAlias


ParsedScalar: TypeAlias = str | int | bool | None
ParsedValue: TypeAlias = ParsedScalar | list["ParsedValue"] | dict[str, "ParsedValue"]
ParsedMapping: TypeAlias = dict[str, ParsedValue]
ParsedSequence: TypeAlias = list[ParsedValue]
