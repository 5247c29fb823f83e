"""Collects list, macro and rule definitions read from rules content."""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping, TypeVar, Union

from ruleload.infos import (
    Configuration,
    EngineVersionInfo,
    ExceptionEntry,
    ListInfo,
    MacroInfo,
    PluginRequirement,
    PluginVersionInfo,
    RuleExceptionInfo,
    RuleInfo,
)
from ruleload.context import Context
from ruleload.result import ErrorCode, RuleLoadError, WarningCode
from ruleload.source import Source, engine_version

# Comparison operators understood by the filter language.
SUPPORTED_OPERATORS = (
    "=",
    "==",
    "!=",
    "<=",
    ">=",
    "<",
    ">",
    "contains",
    "icontains",
    "bcontains",
    "glob",
    "bstartswith",
    "startswith",
    "endswith",
    "in",
    "intersects",
    "pmatch",
    "exists",
)

_SINGLE_FIELD_COMPS = ("in", "pmatch", "intersects")

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)")

_Info = TypeVar("_Info", ListInfo, MacroInfo, RuleInfo)


def _check(cond: bool, msg: str, ctx: Context) -> None:
    if cond:
        raise RuleLoadError(ErrorCode.LOAD_ERR_VALIDATE, msg, ctx)


def _is_operator_defined(op: str) -> bool:
    return op in SUPPORTED_OPERATORS


def _is_version_valid(version: str) -> bool:
    return _VERSION_RE.match(version) is not None


def _define_info(infos: dict, info: _Info, id_: int) -> None:
    prev = infos.get(info.name)
    if prev is not None:
        info.index = prev.index
    else:
        info.index = id_
    info.visibility = id_
    infos[info.name] = info


def _validate_exception_info(source: Source, ex: RuleExceptionInfo) -> None:
    if ex.fields.is_list:
        if not ex.comps.is_valid():
            ex.comps.is_list = True
            ex.comps.items.extend(ExceptionEntry(item="=") for _ in ex.fields.items)
        _check(
            len(ex.fields.items) != len(ex.comps.items),
            "Fields and comps lists must have equal length",
            ex.ctx,
        )
        for comp in ex.comps.items:
            _check(
                not _is_operator_defined(comp.item),
                f"'{comp.item}' is not a supported comparison operator",
                ex.ctx,
            )
        for fld in ex.fields.items:
            _check(
                not source.is_field_defined(fld.item),
                f"'{fld.item}' is not a supported filter field",
                ex.ctx,
            )
    else:
        if not ex.comps.is_valid():
            ex.comps.is_list = False
            ex.comps.item = "in"
        _check(ex.comps.is_list, "Fields and comps must both be strings", ex.ctx)
        _check(
            ex.comps.item not in _SINGLE_FIELD_COMPS,
            "When fields is a single value, comps must be one of (in, pmatch, intersects)",
            ex.ctx,
        )
        _check(
            not source.is_field_defined(ex.fields.item),
            f"'{ex.fields.item}' is not a supported filter field",
            ex.ctx,
        )


class Collector:
    """Stores definitions in the order they are read, resolving redefinitions."""

    def __init__(self) -> None:
        self._cur_index = 0
        self._rules: dict[str, RuleInfo] = {}
        self._macros: dict[str, MacroInfo] = {}
        self._lists: dict[str, ListInfo] = {}
        self._required_plugin_versions: list[list[PluginRequirement]] = []
        self._required_engine_version = EngineVersionInfo()

    def _next_index(self) -> int:
        index = self._cur_index
        self._cur_index += 1
        return index

    def clear(self) -> None:
        """Erase all definitions."""
        self._cur_index = 0
        self._rules.clear()
        self._lists.clear()
        self._macros.clear()
        self._required_plugin_versions.clear()

    def required_plugin_versions(self) -> list[list[PluginRequirement]]:
        """Every group of alternative plugin requirements defined so far."""
        return list(self._required_plugin_versions)

    def required_engine_version(self) -> EngineVersionInfo:
        """The highest required engine version defined so far."""
        return self._required_engine_version

    def lists(self) -> Mapping[str, ListInfo]:
        """Defined lists, by name, in definition order."""
        return MappingProxyType(self._lists)

    def macros(self) -> Mapping[str, MacroInfo]:
        """Defined macros, by name, in definition order."""
        return MappingProxyType(self._macros)

    def rules(self) -> Mapping[str, RuleInfo]:
        """Defined rules, by name, in definition order."""
        return MappingProxyType(self._rules)

    def define_engine_version(self, cfg: Configuration, info: EngineVersionInfo) -> None:
        """Record a required engine version; fail if this engine is too old."""
        current = engine_version()
        _check(
            current < info.version,
            f"Rules require engine version {info.version}, but engine version is {current}",
            info.ctx,
        )
        if self._required_engine_version.version < info.version:
            self._required_engine_version = info

    def define_plugin_versions(self, cfg: Configuration, info: PluginVersionInfo) -> None:
        """Record a plugin requirement with its alternatives."""
        names: set[str] = set()
        for req in info.alternatives:
            _check(
                not _is_version_valid(req.version),
                f"Invalid required version '{req.version}' for plugin '{req.name}'",
                info.ctx,
            )
            _check(
                req.name in names,
                f"Defined multiple alternative version requirements for plugin '{req.name}'",
                info.ctx,
            )
            names.add(req.name)
        self._required_plugin_versions.append(list(info.alternatives))

    def define_list(self, cfg: Configuration, info: ListInfo) -> None:
        """Define a list, replacing any previous one of the same name."""
        _define_info(self._lists, info, self._next_index())

    def append_list(self, cfg: Configuration, info: ListInfo) -> None:
        """Append items to an existing list."""
        prev = self._lists.get(info.name)
        _check(
            prev is None,
            "List has 'append' key but no list by that name already exists",
            info.ctx,
        )
        prev.items.extend(info.items)
        prev.visibility = self._next_index()

    def define_macro(self, cfg: Configuration, info: MacroInfo) -> None:
        """Define a macro, replacing any previous one of the same name."""
        _define_info(self._macros, info, self._next_index())

    def append_macro(self, cfg: Configuration, info: MacroInfo) -> None:
        """Append a condition to an existing macro."""
        prev = self._macros.get(info.name)
        _check(
            prev is None,
            "Macro has 'append' key but no macro by that name already exists",
            info.ctx,
        )
        prev.cond += " " + info.cond
        prev.visibility = self._next_index()

    def define_rule(self, cfg: Configuration, info: RuleInfo) -> None:
        """Define a rule; rules of unknown sources are skipped with a warning."""
        source = cfg.sources.get(info.source)
        if source is None:
            cfg.res.add_warning(
                WarningCode.LOAD_UNKNOWN_SOURCE,
                f"Unknown source {info.source}, skipping",
                info.ctx,
            )
            return

        prev = self._rules.get(info.name)
        _check(
            prev is not None and prev.source != info.source,
            "Rule has been re-defined with a different source",
            info.ctx,
        )

        for ex in info.exceptions:
            _check(
                not ex.fields.is_valid(),
                "Rule exception item must have fields property with a list of fields",
                ex.ctx,
            )
            _validate_exception_info(source, ex)

        _define_info(self._rules, info, self._next_index())

    def append_rule(self, cfg: Configuration, info: RuleInfo) -> None:
        """Append a condition and/or exceptions to an existing rule."""
        prev = self._rules.get(info.name)
        _check(
            prev is None,
            "Rule has 'append' key but no rule by that name already exists",
            info.ctx,
        )
        _check(
            not info.cond and not info.exceptions,
            "Appended rule must have exceptions or condition property",
            info.ctx,
        )

        source = cfg.sources.get(prev.source)
        _check(source is None, f"Unknown source {prev.source}", info.ctx)

        if info.cond:
            prev.cond += " " + info.cond

        for ex in info.exceptions:
            prev_ex = next((e for e in prev.exceptions if e.name == ex.name), None)
            if prev_ex is None:
                _check(
                    not ex.fields.is_valid(),
                    "Rule exception must have fields property with a list of fields",
                    ex.ctx,
                )
                _check(
                    not ex.values,
                    "Rule exception must have values property with a list of values",
                    ex.ctx,
                )
                _validate_exception_info(source, ex)
                prev.exceptions.append(ex)
            else:
                _check(
                    ex.fields.is_valid(),
                    "Can not append exception fields to existing exception, only values",
                    ex.ctx,
                )
                _check(
                    ex.comps.is_valid(),
                    "Can not append exception comps to existing exception, only values",
                    ex.ctx,
                )
                prev_ex.values.extend(ex.values)

        prev.visibility = self._next_index()

    def enable_rule(self, cfg: Configuration, info: RuleInfo) -> None:
        """Set the enabled flag of an existing rule."""
        prev = self._rules.get(info.name)
        _check(
            prev is None,
            "Rule has 'enabled' key but no rule by that name already exists",
            info.ctx,
        )
        prev.enabled = info.enabled


InfoType = Union[ListInfo, MacroInfo, RuleInfo]