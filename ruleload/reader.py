"""Reads YAML rules content and hands each definition to a collector."""

from __future__ import annotations

import re
from typing import Callable, Optional, TypeVar

import yaml
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from ruleload.collector import Collector
from ruleload.context import Context, ItemType, Position
from ruleload.infos import (
    Configuration,
    EngineVersionInfo,
    ExceptionEntry,
    ListInfo,
    MacroInfo,
    PluginRequirement,
    PluginVersionInfo,
    Priority,
    RuleExceptionInfo,
    RuleInfo,
)
from ruleload.result import ErrorCode, RuleLoadError, WarningCode

SYSCALL_SOURCE = "syscall"

_NULL_TAG = "tag:yaml.org,2002:null"
_TRIM_CHARS = " \t\n\r\f\v"
_UINT32_RE = re.compile(r"^\d+$")
_UINT32_MAX = 2**32 - 1

_TRUE_WORDS = frozenset(
    {"y", "Y", "yes", "Yes", "YES", "true", "True", "TRUE", "on", "On", "ON"}
)
_FALSE_WORDS = frozenset(
    {"n", "N", "no", "No", "NO", "false", "False", "FALSE", "off", "Off", "OFF"}
)

_T = TypeVar("_T")


def _check(cond: bool, msg: str, ctx: Context) -> None:
    if cond:
        raise RuleLoadError(ErrorCode.LOAD_ERR_YAML_VALIDATE, msg, ctx)


def _position(node: Node) -> Position:
    mark = node.start_mark
    return Position(mark.index, mark.line, mark.column)


def _child(parent: Context, item_type: ItemType, item_name: str, node: Node) -> Context:
    return parent.child(item_type, item_name, _position(node))


def _is_null(node: Node) -> bool:
    return isinstance(node, ScalarNode) and node.tag == _NULL_TAG


def _is_scalar(node: Node) -> bool:
    return isinstance(node, ScalarNode) and not _is_null(node)


def _is_map(node: Node) -> bool:
    return isinstance(node, MappingNode)


def _is_sequence(node: Node) -> bool:
    return isinstance(node, SequenceNode)


def _get(item: Node, key: str) -> Optional[Node]:
    """Value node for ``key`` in a mapping node, or None if not defined."""
    if not isinstance(item, MappingNode):
        return None
    for key_node, value_node in item.value:
        if isinstance(key_node, ScalarNode) and key_node.value == key:
            return value_node
    return None


def _decode_str(text: str) -> Optional[str]:
    return text


def _decode_bool(text: str) -> Optional[bool]:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    return None


def _decode_uint32(text: str) -> Optional[int]:
    if not _UINT32_RE.match(text):
        return None
    value = int(text)
    return value if value <= _UINT32_MAX else None


def _decode_val(
    item: Node,
    key: str,
    decode: Callable[[str], Optional[_T]],
    ctx: Context,
    optional: bool = False,
    default: Optional[_T] = None,
) -> Optional[_T]:
    val = _get(item, key)
    if val is None:
        if optional:
            return default
        raise RuleLoadError(
            ErrorCode.LOAD_ERR_YAML_VALIDATE, f"Item has no mapping for key '{key}'", ctx
        )
    _check(_is_null(val), f"Mapping for key '{key}' is empty", ctx)

    valctx = _child(ctx, ItemType.VALUE_FOR, key, val)
    _check(not _is_scalar(val), "Value is not a scalar value", valctx)
    _check(val.value == "", "Value must be non-empty", valctx)

    result = decode(val.value)
    _check(result is None, "Can't decode YAML scalar value", valctx)
    return result


def _decode_seq(item: Node, key: str, ctx: Context, optional: bool) -> list[str]:
    val = _get(item, key)
    if val is None:
        if optional:
            return []
        raise RuleLoadError(
            ErrorCode.LOAD_ERR_YAML_VALIDATE, f"Item has no mapping for key '{key}'", ctx
        )

    valctx = _child(ctx, ItemType.VALUE_FOR, key, val)
    _check(not _is_sequence(val), "Value is not a sequence", valctx)

    values = []
    for node in val.value:
        ictx = _child(valctx, ItemType.LIST_ITEM, "", node)
        _check(not _is_scalar(node), "sequence value is not scalar", ictx)
        values.append(node.value)
    return values


def _decode_entry(
    item: Node, key: Optional[str], ctx: Context, optional: bool
) -> ExceptionEntry:
    val = item if key is None else _get(item, key)
    out = ExceptionEntry()
    if val is None:
        if optional:
            return out
        raise RuleLoadError(
            ErrorCode.LOAD_ERR_YAML_VALIDATE, f"Item has no mapping for key '{key}'", ctx
        )

    valctx = _child(ctx, ItemType.VALUE_FOR, key or "", val)
    if _is_scalar(val):
        _check(val.value == "", "Value must be non-empty", valctx)
        out.is_list = False
        out.item = val.value
    elif _is_sequence(val):
        out.is_list = True
        for node in val.value:
            lctx = _child(valctx, ItemType.EXCEPTION, "", node)
            out.items.append(_decode_entry(node, None, lctx, False))
    return out


def _read_rule_exceptions(
    item: Node, rule: RuleInfo, parent: Context, append: bool
) -> None:
    exs = _get(item, "exceptions")
    # A missing or empty exceptions property is allowed.
    if exs is None or _is_null(exs):
        return

    exes_ctx = _child(parent, ItemType.EXCEPTIONS, "", exs)
    _check(not _is_sequence(exs), "Rule exceptions must be a sequence", exes_ctx)

    for ex in exs.value:
        tmp = _child(exes_ctx, ItemType.EXCEPTION, "", ex)
        _check(not _is_map(ex), "Rule exception must be a mapping", tmp)
        name = _decode_val(ex, "name", _decode_str, tmp)

        ex_ctx = _child(parent, ItemType.EXCEPTION, name, ex)
        info = RuleExceptionInfo(ctx=ex_ctx, name=name)
        # Fields may be left out when appending to an existing exception.
        info.fields = _decode_entry(ex, "fields", ex_ctx, append)
        info.comps = _decode_entry(ex, "comps", ex_ctx, True)

        exvals = _get(ex, "values")
        if exvals is not None:
            vals_ctx = _child(ex_ctx, ItemType.EXCEPTION_VALUES, "", exvals)
            _check(
                not _is_sequence(exvals),
                "Rule exception values must be a sequence",
                vals_ctx,
            )
            for val in exvals.value:
                vctx = _child(vals_ctx, ItemType.EXCEPTION_VALUE, "", val)
                info.values.append(_decode_entry(val, None, vctx, False))
        rule.exceptions.append(info)


def _read_plugin_versions(
    cfg: Configuration, collector: Collector, node: Node, parent: Context
) -> None:
    ctx = _child(parent, ItemType.REQUIRED_PLUGIN_VERSIONS, "", node)
    _check(
        not _is_sequence(node),
        "Value of required_plugin_versions must be a sequence",
        ctx,
    )

    for plugin in node.value:
        tmp = _child(ctx, ItemType.REQUIRED_PLUGIN_VERSIONS_ENTRY, "", plugin)
        _check(not _is_map(plugin), "Plugin version must be a mapping", tmp)
        name = _decode_val(plugin, "name", _decode_str, tmp)
        pctx = _child(ctx, ItemType.REQUIRED_PLUGIN_VERSIONS_ENTRY, name, plugin)
        version = _decode_val(plugin, "version", _decode_str, pctx)
        info = PluginVersionInfo(ctx=pctx, alternatives=[PluginRequirement(name, version)])

        alternatives = _get(plugin, "alternatives")
        if alternatives is not None:
            _check(
                not _is_sequence(alternatives),
                "Value of plugin version alternatives must be a sequence",
                pctx,
            )
            for req in alternatives.value:
                tmp = _child(pctx, ItemType.REQUIRED_PLUGIN_VERSIONS_ALTERNATIVE, "", req)
                _check(not _is_map(req), "Plugin version alternative must be a mapping", tmp)
                alt_name = _decode_val(req, "name", _decode_str, tmp)
                tmp = _child(
                    pctx, ItemType.REQUIRED_PLUGIN_VERSIONS_ALTERNATIVE, alt_name, req
                )
                alt_version = _decode_val(req, "version", _decode_str, tmp)
                info.alternatives.append(PluginRequirement(alt_name, alt_version))

        collector.define_plugin_versions(cfg, info)


def _read_list(cfg: Configuration, collector: Collector, item: Node, parent: Context) -> None:
    tmp = _child(parent, ItemType.LIST, "", item)
    name = _decode_val(item, "list", _decode_str, tmp)

    ctx = _child(parent, ItemType.LIST, name, item)
    info = ListInfo(ctx=ctx, name=_decode_val(item, "list", _decode_str, ctx))
    info.items = _decode_seq(item, "items", ctx, optional=False)

    if _decode_val(item, "append", _decode_bool, ctx, optional=True, default=False):
        collector.append_list(cfg, info)
    else:
        collector.define_list(cfg, info)


def _read_macro(cfg: Configuration, collector: Collector, item: Node, parent: Context) -> None:
    tmp = _child(parent, ItemType.MACRO, "", item)
    name = _decode_val(item, "macro", _decode_str, tmp)

    ctx = _child(parent, ItemType.MACRO, name, item)
    info = MacroInfo(ctx=ctx, name=name)
    info.cond = _decode_val(item, "condition", _decode_str, ctx)
    info.cond_ctx = _child(ctx, ItemType.MACRO_CONDITION, "", _get(item, "condition"))

    if _decode_val(item, "append", _decode_bool, ctx, optional=True, default=False):
        collector.append_macro(cfg, info)
    else:
        collector.define_macro(cfg, info)


def _read_rule(cfg: Configuration, collector: Collector, item: Node, parent: Context) -> None:
    tmp = _child(parent, ItemType.RULE, "", item)
    name = _decode_val(item, "rule", _decode_str, tmp)

    ctx = _child(parent, ItemType.RULE, name, item)
    info = RuleInfo(ctx=ctx, name=name)
    info.enabled = True
    info.warn_evttypes = True
    info.skip_if_unknown_filter = False

    append = _decode_val(item, "append", _decode_bool, ctx, optional=True, default=False)

    if append:
        info.cond = _decode_val(item, "condition", _decode_str, ctx, optional=True, default="")
        cond_node = _get(item, "condition")
        if cond_node is not None:
            info.cond_ctx = _child(ctx, ItemType.RULE_CONDITION, "", cond_node)
        _read_rule_exceptions(item, info, ctx, True)
        collector.append_rule(cfg, info)
        return

    # A rule with none of condition/output/desc/priority only toggles
    # the enabled status of an earlier rule.
    if all(_get(item, key) is None for key in ("condition", "output", "desc", "priority")):
        info.enabled = _decode_val(item, "enabled", _decode_bool, ctx)
        collector.enable_rule(cfg, info)
        return

    info.cond = _decode_val(item, "condition", _decode_str, ctx)
    info.cond_ctx = _child(ctx, ItemType.RULE_CONDITION, "", _get(item, "condition"))

    info.output = _decode_val(item, "output", _decode_str, ctx)
    info.output_ctx = _child(ctx, ItemType.RULE_OUTPUT, "", _get(item, "output"))

    info.desc = _decode_val(item, "desc", _decode_str, ctx)
    priority = _decode_val(item, "priority", _decode_str, ctx)

    info.output = info.output.strip(_TRIM_CHARS)
    info.source = SYSCALL_SOURCE
    prictx = _child(ctx, ItemType.RULE_PRIORITY, "", _get(item, "priority"))
    try:
        info.priority = Priority.parse(priority)
    except ValueError:
        raise RuleLoadError(ErrorCode.LOAD_ERR_YAML_VALIDATE, "Invalid priority", prictx)

    info.source = _decode_val(item, "source", _decode_str, ctx, optional=True, default=info.source)
    info.enabled = _decode_val(item, "enabled", _decode_bool, ctx, optional=True, default=True)
    info.warn_evttypes = _decode_val(
        item, "warn_evttypes", _decode_bool, ctx, optional=True, default=True
    )
    info.skip_if_unknown_filter = _decode_val(
        item, "skip-if-unknown-filter", _decode_bool, ctx, optional=True, default=False
    )
    info.tags = set(_decode_seq(item, "tags", ctx, optional=True))
    _read_rule_exceptions(item, info, ctx, False)
    collector.define_rule(cfg, info)


def _read_item(cfg: Configuration, collector: Collector, item: Node, parent: Context) -> None:
    tmp = _child(parent, ItemType.RULES_CONTENT_ITEM, "", item)
    _check(
        not _is_map(item),
        "Unexpected element type. Each element should be a yaml associative array.",
        tmp,
    )

    engine_node = _get(item, "required_engine_version")
    plugins_node = _get(item, "required_plugin_versions")
    if engine_node is not None:
        ctx = _child(parent, ItemType.REQUIRED_ENGINE_VERSION, "", item)
        version = _decode_val(item, "required_engine_version", _decode_uint32, ctx)
        collector.define_engine_version(cfg, EngineVersionInfo(ctx=ctx, version=version))
    elif plugins_node is not None:
        _read_plugin_versions(cfg, collector, plugins_node, parent)
    elif _get(item, "list") is not None:
        _read_list(cfg, collector, item, parent)
    elif _get(item, "macro") is not None:
        _read_macro(cfg, collector, item, parent)
    elif _get(item, "rule") is not None:
        _read_rule(cfg, collector, item, parent)
    else:
        cfg.res.add_warning(WarningCode.LOAD_UNKNOWN_ITEM, "Unknown top level item", tmp)


def _mark_context(error: yaml.YAMLError, ctx: Context) -> Context:
    mark = getattr(error, "problem_mark", None) or getattr(error, "context_mark", None)
    if mark is None:
        return ctx
    return ctx.child(ItemType.VALUE_FOR, "", Position(mark.index, mark.line, mark.column))


class Reader:
    """Reads rules content and stores its definitions through a collector."""

    def read(self, cfg: Configuration, collector: Collector) -> bool:
        """Read ``cfg.content``; problems go to ``cfg.res``. False on the first error."""
        ctx = Context.root(cfg.name)
        try:
            docs = list(yaml.compose_all(cfg.content, Loader=yaml.SafeLoader))
        except yaml.YAMLError as exc:
            cfg.res.add_error(ErrorCode.LOAD_ERR_YAML_PARSE, str(exc), _mark_context(exc, ctx))
            return False
        except Exception as exc:  # noqa: BLE001 - any parse failure is reported
            cfg.res.add_error(ErrorCode.LOAD_ERR_YAML_PARSE, str(exc), ctx)
            return False

        for doc in docs:
            if doc is None or _is_null(doc):
                continue
            try:
                _check(not _is_map(doc) and not _is_sequence(doc), "Rules content is not yaml", ctx)
                _check(not _is_sequence(doc), "Rules content is not yaml array of objects", ctx)
                for item in doc.value:
                    if not _is_null(item):
                        _read_item(cfg, collector, item, ctx)
            except RuleLoadError as exc:
                # Stop at the first error, for consistency across documents.
                cfg.res.add_error(exc.code, exc.msg, exc.ctx)
                return False
            except yaml.YAMLError as exc:
                cfg.res.add_error(
                    ErrorCode.LOAD_ERR_YAML_VALIDATE, str(exc), _mark_context(exc, ctx)
                )
                return False
            except Exception as exc:  # noqa: BLE001 - reported as a validation error
                cfg.res.add_error(ErrorCode.LOAD_ERR_VALIDATE, str(exc), ctx)
                return False
        return True