"""Definitions collected from rules content before compilation."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ruleload.context import Context
from ruleload.result import LoadResult
from ruleload.source import Source

_NO_FILENAME = "no-filename-given"


def _default_context() -> Context:
    return Context.root(_NO_FILENAME)


class Priority(enum.IntEnum):
    """Severity of a rule; lower values are more severe."""

    EMERGENCY = 0
    ALERT = 1
    CRITICAL = 2
    ERROR = 3
    WARNING = 4
    NOTICE = 5
    INFORMATIONAL = 6
    DEBUG = 7

    @classmethod
    def parse(cls, text: str) -> "Priority":
        """Priority named by ``text`` (case-insensitive); ValueError if unknown."""
        lowered = text.lower()
        if lowered == "info":
            return cls.INFORMATIONAL
        for member in cls:
            if member.name.lower() == lowered:
                return member
        raise ValueError(f"invalid priority '{text}'")

    def format(self, shortfmt: bool = False) -> str:
        """Display name; with ``shortfmt`` informational becomes 'Info'."""
        if shortfmt and self is Priority.INFORMATIONAL:
            return "Info"
        return self.name.capitalize()


@dataclass
class Configuration:
    """What is needed to load one piece of rules content."""

    content: str
    sources: Mapping[str, Source]
    name: str
    res: Optional[LoadResult] = None
    output_extra: str = ""
    default_ruleset_id: int = 0
    replace_output_container_info: bool = False
    min_priority: Priority = Priority.DEBUG

    def __post_init__(self) -> None:
        if self.res is None:
            self.res = LoadResult(self.name)


@dataclass
class EngineVersionInfo:
    """A required engine version."""

    ctx: Context = field(default_factory=_default_context)
    version: int = 0


@dataclass
class PluginRequirement:
    """A plugin name with the minimum version required."""

    name: str = ""
    version: str = ""


@dataclass
class PluginVersionInfo:
    """A plugin requirement together with its acceptable alternatives."""

    ctx: Context = field(default_factory=_default_context)
    alternatives: list[PluginRequirement] = field(default_factory=list)


@dataclass
class ListInfo:
    """A named list of values."""

    ctx: Context
    used: bool = False
    index: int = 0
    visibility: int = 0
    name: str = ""
    items: list[str] = field(default_factory=list)


@dataclass
class MacroInfo:
    """A named, reusable condition."""

    ctx: Context
    cond_ctx: Optional[Context] = None
    used: bool = False
    index: int = 0
    visibility: int = 0
    name: str = ""
    cond: str = ""
    cond_ast: Any = None

    def __post_init__(self) -> None:
        if self.cond_ctx is None:
            self.cond_ctx = self.ctx


@dataclass
class ExceptionEntry:
    """A rule exception's fields, comps or values: one string or a list of entries."""

    is_list: bool = False
    item: str = ""
    items: list["ExceptionEntry"] = field(default_factory=list)

    def is_valid(self) -> bool:
        """True for a non-empty list or a non-empty single value."""
        return bool(self.items) if self.is_list else bool(self.item)


@dataclass
class RuleExceptionInfo:
    """A single exception of a rule."""

    ctx: Context
    name: str = ""
    fields: ExceptionEntry = field(default_factory=ExceptionEntry)
    comps: ExceptionEntry = field(default_factory=ExceptionEntry)
    values: list[ExceptionEntry] = field(default_factory=list)


@dataclass
class RuleInfo:
    """A rule as read from rules content."""

    ctx: Context
    cond_ctx: Optional[Context] = None
    output_ctx: Optional[Context] = None
    index: int = 0
    visibility: int = 0
    name: str = ""
    cond: str = ""
    source: str = ""
    desc: str = ""
    output: str = ""
    tags: set[str] = field(default_factory=set)
    exceptions: list[RuleExceptionInfo] = field(default_factory=list)
    priority: Priority = Priority.DEBUG
    enabled: bool = True
    warn_evttypes: bool = True
    skip_if_unknown_filter: bool = False

    def __post_init__(self) -> None:
        if self.cond_ctx is None:
            self.cond_ctx = self.ctx
        if self.output_ctx is None:
            self.output_ctx = self.ctx