"""Outcome of loading rules content: errors, warnings and their reports."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ruleload.context import Context

_NO_FILENAME = "no-filename-given"


class ErrorCode(enum.IntEnum):
    """Kinds of errors that stop rules content from loading."""

    LOAD_ERR_FILE_READ = 0
    LOAD_ERR_YAML_PARSE = 1
    LOAD_ERR_YAML_VALIDATE = 2
    LOAD_ERR_COMPILE_CONDITION = 3
    LOAD_ERR_COMPILE_OUTPUT = 4
    LOAD_ERR_VALIDATE = 5

    @property
    def code(self) -> str:
        """Stable identifier of the error kind."""
        return self.name

    @property
    def brief(self) -> str:
        """Short human readable summary."""
        return _ERROR_TEXT[self][0]

    @property
    def description(self) -> str:
        """Longer human readable explanation."""
        return _ERROR_TEXT[self][1]


_ERROR_TEXT = {
    ErrorCode.LOAD_ERR_FILE_READ: (
        "File read error",
        "The rules content could not be read.",
    ),
    ErrorCode.LOAD_ERR_YAML_PARSE: (
        "YAML parse error",
        "The rules content is not valid YAML.",
    ),
    ErrorCode.LOAD_ERR_YAML_VALIDATE: (
        "Error validating internal structure of YAML file",
        "The YAML is valid, but its structure does not match the expected rules format.",
    ),
    ErrorCode.LOAD_ERR_COMPILE_CONDITION: (
        "Error compiling condition",
        "A rule or macro condition could not be parsed or compiled.",
    ),
    ErrorCode.LOAD_ERR_COMPILE_OUTPUT: (
        "Error compiling output",
        "A rule output string could not be compiled into a formatter.",
    ),
    ErrorCode.LOAD_ERR_VALIDATE: (
        "Error validating rule/macro/list/exception objects",
        "A rule, macro, list or exception is inconsistent with previous definitions or with itself.",
    ),
}


class WarningCode(enum.IntEnum):
    """Kinds of non-fatal problems found while loading rules content."""

    LOAD_UNKNOWN_SOURCE = 0
    LOAD_UNSAFE_NA_CHECK = 1
    LOAD_NO_EVTTYPE = 2
    LOAD_UNKNOWN_FIELD = 3
    LOAD_UNUSED_MACRO = 4
    LOAD_UNUSED_LIST = 5
    LOAD_UNKNOWN_ITEM = 6

    @property
    def code(self) -> str:
        """Stable identifier of the warning kind."""
        return self.name

    @property
    def brief(self) -> str:
        """Short human readable summary."""
        return _WARNING_TEXT[self][0]

    @property
    def description(self) -> str:
        """Longer human readable explanation."""
        return _WARNING_TEXT[self][1]


_WARNING_TEXT = {
    WarningCode.LOAD_UNKNOWN_SOURCE: (
        "Unknown event source",
        "A rule refers to an event source that is not loaded; the rule is skipped.",
    ),
    WarningCode.LOAD_UNSAFE_NA_CHECK: (
        "Unsafe <NA> comparison in condition",
        "A condition compares a field with <NA>, which may not behave as intended.",
    ),
    WarningCode.LOAD_NO_EVTTYPE: (
        "Condition has no event-type restriction",
        "A rule matches too many event types, which costs a lot of performance.",
    ),
    WarningCode.LOAD_UNKNOWN_FIELD: (
        "Unknown field in condition",
        "A rule uses a field that does not exist and was skipped on request.",
    ),
    WarningCode.LOAD_UNUSED_MACRO: (
        "Unused macro",
        "A macro is not referred to by any rule or macro.",
    ),
    WarningCode.LOAD_UNUSED_LIST: (
        "Unused list",
        "A list is not referred to by any rule, macro or list.",
    ),
    WarningCode.LOAD_UNKNOWN_ITEM: (
        "Unknown rules file item",
        "A top level item of the rules content has an unknown kind and was ignored.",
    ),
}


def _default_context() -> Context:
    return Context.root(_NO_FILENAME)


@dataclass
class LoadWarning:
    """A warning raised while loading, with where it happened."""

    code: WarningCode = WarningCode.LOAD_UNKNOWN_SOURCE
    msg: str = ""
    ctx: Context = field(default_factory=_default_context)


@dataclass
class LoadError:
    """An error raised while loading, with where it happened."""

    code: ErrorCode = ErrorCode.LOAD_ERR_FILE_READ
    msg: str = ""
    ctx: Context = field(default_factory=_default_context)


class RuleLoadError(Exception):
    """Raised when rules content cannot be loaded at a given location."""

    def __init__(self, code: ErrorCode, msg: str, ctx: Context) -> None:
        super().__init__(f"{code.code}: {msg}")
        self.code = code
        self.msg = msg
        self.ctx = ctx


def _status_line(name: str, success: bool, has_warnings: bool) -> str:
    head = f"{name}: " if name else ""
    if success:
        return head + ("Ok, with warnings" if has_warnings else "Ok")
    return head + "Invalid"


class LoadResult:
    """Collected errors and warnings from loading one piece of rules content."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.success = True
        self.errors: list[LoadError] = []
        self.warnings: list[LoadWarning] = []
        self._summary: Optional[str] = None
        self._verbose: Optional[str] = None
        self._json: Optional[dict] = None

    def successful(self) -> bool:
        """True if no error has been recorded."""
        return self.success

    def has_warnings(self) -> bool:
        """True if at least one warning has been recorded."""
        return bool(self.warnings)

    def _invalidate(self) -> None:
        self._summary = self._verbose = self._json = None

    def add_error(self, code: ErrorCode, msg: str, ctx: Context) -> None:
        """Record an error; the result becomes unsuccessful."""
        self.success = False
        self.errors.append(LoadError(code, msg, ctx))
        self._invalidate()

    def add_warning(self, code: WarningCode, msg: str, ctx: Context) -> None:
        """Record a warning."""
        self.warnings.append(LoadWarning(code, msg, ctx))
        self._invalidate()

    def as_string(self, verbose: bool, contents: Mapping[str, str]) -> str:
        """Report as text: a one-line summary, or full detail with snippets."""
        if verbose:
            return self._verbose_string(contents)
        return self._summary_string()

    def _summary_string(self) -> str:
        if self._summary is not None:
            return self._summary
        parts = [_status_line(self.name, self.success, bool(self.warnings))]
        if self.errors:
            items = " ".join(f"{e.code.code} ({e.code.brief})" for e in self.errors)
            parts.append(f"\n {len(self.errors)} errors: [{items}]")
        if self.warnings:
            items = " ".join(f"{w.code.code} ({w.code.brief})" for w in self.warnings)
            parts.append(f"\n {len(self.warnings)} warnings: [{items}]")
        self._summary = "".join(parts)
        return self._summary

    def _verbose_string(self, contents: Mapping[str, str]) -> str:
        if self._verbose is not None:
            return self._verbose
        parts = [_status_line(self.name, self.success, bool(self.warnings))]
        if self.errors:
            parts.append(f"\n{len(self.errors)} Errors:\n")
            for err in self.errors:
                parts.append(err.ctx.as_string())
                parts.append("------\n")
                parts.append(err.ctx.snippet(contents))
                parts.append("------\n")
                parts.append(f"{err.code.code} ({err.code.brief}): {err.msg}\n")
        if self.warnings:
            parts.append(f"\n{len(self.warnings)} Warnings:\n")
            for warn in self.warnings:
                parts.append(warn.ctx.as_string())
                parts.append("------\n")
                parts.append(warn.ctx.snippet(contents))
                parts.append("------\n")
                parts.append(f"{warn.code.code} ({warn.code.brief}): {warn.msg}\n")
        self._verbose = "".join(parts)
        return self._verbose

    def as_json(self, contents: Mapping[str, str]) -> dict:
        """Report as a JSON-ready dictionary."""
        if self._json is not None:
            return self._json

        def entry(item, code) -> dict:
            ctx = item.ctx.as_json()
            ctx["snippet"] = item.ctx.snippet(contents)
            return {
                "context": ctx,
                "code": code.code,
                "codedesc": code.description,
                "message": item.msg,
            }

        self._json = {
            "name": self.name,
            "successful": self.success,
            "errors": [entry(e, e.code) for e in self.errors],
            "warnings": [entry(w, w.code) for w in self.warnings],
        }
        return self._json