"""Locations of items within rules content, used to report problems."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Mapping

DEFAULT_SNIPPET_WIDTH = 160

_SIZE_MODULUS = 2**64


def _wrap(value: int) -> int:
    """Interpret a possibly negative difference as an unsigned size."""
    return value if value >= 0 else value + _SIZE_MODULUS


class ItemType(enum.IntEnum):
    """Kinds of items that can appear in rules content."""

    VALUE_FOR = 0
    EXCEPTIONS = 1
    EXCEPTION = 2
    EXCEPTION_VALUES = 3
    EXCEPTION_VALUE = 4
    RULES_CONTENT = 5
    RULES_CONTENT_ITEM = 6
    REQUIRED_ENGINE_VERSION = 7
    REQUIRED_PLUGIN_VERSIONS = 8
    REQUIRED_PLUGIN_VERSIONS_ENTRY = 9
    REQUIRED_PLUGIN_VERSIONS_ALTERNATIVE = 10
    LIST = 11
    LIST_ITEM = 12
    MACRO = 13
    MACRO_CONDITION = 14
    RULE = 15
    RULE_CONDITION = 16
    CONDITION_EXPRESSION = 17
    RULE_OUTPUT = 18
    RULE_OUTPUT_EXPRESSION = 19
    RULE_PRIORITY = 20

    def label(self) -> str:
        """Human readable description of this item type."""
        return _LABELS[self]


_LABELS = {
    ItemType.VALUE_FOR: "value for",
    ItemType.EXCEPTIONS: "exceptions",
    ItemType.EXCEPTION: "exception",
    ItemType.EXCEPTION_VALUES: "exception values",
    ItemType.EXCEPTION_VALUE: "exception value",
    ItemType.RULES_CONTENT: "rules content",
    ItemType.RULES_CONTENT_ITEM: "rules content item",
    ItemType.REQUIRED_ENGINE_VERSION: "required_engine_version",
    ItemType.REQUIRED_PLUGIN_VERSIONS: "required plugin versions",
    ItemType.REQUIRED_PLUGIN_VERSIONS_ENTRY: "required plugin versions entry",
    ItemType.REQUIRED_PLUGIN_VERSIONS_ALTERNATIVE: "required plugin versions alternative",
    ItemType.LIST: "list",
    ItemType.LIST_ITEM: "list item",
    ItemType.MACRO: "macro",
    ItemType.MACRO_CONDITION: "macro condition",
    ItemType.RULE: "rule",
    ItemType.RULE_CONDITION: "rule condition",
    ItemType.CONDITION_EXPRESSION: "condition expression",
    ItemType.RULE_OUTPUT: "rule output",
    ItemType.RULE_OUTPUT_EXPRESSION: "rule output expression",
    ItemType.RULE_PRIORITY: "rule priority",
}


@dataclass(frozen=True)
class Position:
    """Offset, line and column within a document (0-indexed)."""

    pos: int = 0
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class Location:
    """One step in a context chain: which item, and where it is."""

    # Name of the content: generally a filename, or a short form of a
    # condition when the location points into a condition string.
    name: str
    position: Position = field(default_factory=Position)
    item_type: ItemType = ItemType.VALUE_FOR
    item_name: str = ""


@dataclass(frozen=True)
class Context:
    """A chain of locations from the document down to the current item."""

    locations: tuple[Location, ...]
    # When non-empty, snippets are built from this text instead of the
    # rules contents. Used for condition expressions.
    alt_content: str = ""

    def __post_init__(self) -> None:
        if not self.locations:
            raise ValueError("context without location")
        object.__setattr__(self, "locations", tuple(self.locations))

    @classmethod
    def root(cls, name: str) -> "Context":
        """Context covering the whole document called ``name``."""
        return cls((Location(name, Position(), ItemType.RULES_CONTENT, ""),))

    def child(self, item_type: ItemType, item_name: str, position: Position) -> "Context":
        """Context for an item nested within this one."""
        loc = Location(self.name(), position, item_type, item_name)
        return Context(self.locations + (loc,))

    def for_condition(self, position: Position, condition: str) -> "Context":
        """Context pointing into a condition expression.

        ``position`` is relative to the start of the condition; it is
        shifted by the position of the last location of this context.
        """
        if len(condition) > 20:
            name = '"' + condition[:17] + '..."'
        else:
            name = '"' + condition + '"'
        name = name.replace("\n", " ").replace("\r", " ")
        last = self.locations[-1].position
        condpos = Position(
            position.pos + last.pos,
            position.line + last.line,
            position.column + last.column,
        )
        loc = Location(name, condpos, ItemType.CONDITION_EXPRESSION, "")
        return Context(self.locations + (loc,), alt_content=condition)

    def name(self) -> str:
        """The content name (generally the filename) of this context."""
        return self.locations[0].name

    def snippet(
        self,
        rules_contents: Mapping[str, str],
        snippet_width: int = DEFAULT_SNIPPET_WIDTH,
    ) -> str:
        """Excerpt of the content around this context's position, with a marker."""
        loc = self.locations[-1]
        if not self.alt_content and loc.name not in rules_contents:
            return "<No context for file + " + loc.name + ">\n"

        content = self.alt_content or rules_contents[loc.name]
        if not content:
            return "<No context available>\n"

        size = len(content)
        half = snippet_width // 2

        # The position may lie past the end, e.g. a dangling "tags:".
        pos = loc.position.pos
        while pos > 0 and (pos >= size or content[pos] == "\n"):
            pos -= 1

        start = pos
        while start > 0 and content[start] != "\n" and (pos - start) < half:
            start -= 1

        end = pos
        while end < size - 1 and content[end] != "\n" and (end - pos) < half:
            end += 1

        if start < size and content[start] == "\n":
            start += 1
        if end < size and content[end] == "\n":
            end -= 1

        length = _wrap(end - start + 1)
        ret = content[start:start + length]
        if not ret:
            return "<No context available>\n"

        back = _wrap(pos - start)
        if back >= half:
            ret = "..." + ret[3:]
        if _wrap(end - pos) >= half:
            ret = ret[:max(len(ret) - 3, 0)] + "..."

        ret += "\n"
        if back <= len(ret) - 1:
            ret += " " * back + "^\n"
        return ret

    def as_string(self) -> str:
        """Multi-line description of every location in the chain."""
        lines = []
        for index, loc in enumerate(self.locations):
            text = ("In " if index == 0 else "    ") + loc.item_type.label()
            if loc.item_name:
                text += f" '{loc.item_name}'"
            text += f": ({loc.name}:{loc.position.line}:{loc.position.column})\n"
            lines.append(text)
        return "".join(lines)

    def as_json(self) -> dict:
        """JSON-ready description of every location in the chain."""
        return {
            "locations": [
                {
                    "item_type": loc.item_type.label(),
                    "item_name": loc.item_name,
                    "position": {
                        "name": loc.name,
                        "line": loc.position.line,
                        "column": loc.position.column,
                        "offset": loc.position.pos,
                    },
                }
                for loc in self.locations
            ]
        }