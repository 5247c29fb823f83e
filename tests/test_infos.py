import pytest

from ruleload.context import Context
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


@pytest.mark.parametrize("member", list(Priority))
@pytest.mark.parametrize("shortfmt", [True, False])
def test_priority_format_parse_round_trip(member, shortfmt):
    assert Priority.parse(member.format(shortfmt)) is member


def test_priority_parse_is_case_insensitive():
    assert Priority.parse("WARNING") is Priority.WARNING
    assert Priority.parse("warning") is Priority.WARNING
    assert Priority.parse("Info") is Priority.INFORMATIONAL


@pytest.mark.parametrize("text", ["", "bogus", "warn ing"])
def test_priority_parse_rejects_unknown(text):
    with pytest.raises(ValueError):
        Priority.parse(text)


def test_priority_order_debug_is_least_severe():
    debug = Priority.parse("debug")
    emergency = Priority.parse("emergency")
    assert max(Priority) is debug
    assert min(Priority) is emergency
    assert Priority.parse("warning") < Priority.parse("notice")


def test_priority_short_format_changes_informational():
    short = Priority.INFORMATIONAL.format(True)
    full = Priority.INFORMATIONAL.format(False)
    assert short != full
    assert Priority.parse(short) is Priority.INFORMATIONAL
    assert Priority.parse(full) is Priority.INFORMATIONAL


@pytest.mark.parametrize(
    "member", [p for p in Priority if p is not Priority.INFORMATIONAL]
)
def test_priority_short_format_same_for_others(member):
    short = member.format(True)
    assert short == member.format(False)
    assert Priority.parse(short) is member


def test_configuration_creates_result_with_its_name():
    cfg = Configuration(content="", sources={}, name="rules.yaml")
    assert cfg.res.name == "rules.yaml"
    assert cfg.res.successful() is True
    assert cfg.min_priority is Priority.DEBUG
    assert cfg.default_ruleset_id == 0
    assert cfg.replace_output_container_info is False


def test_version_infos_defaults():
    ev = EngineVersionInfo()
    pv = PluginVersionInfo()
    assert ev.version == 0
    assert ev.ctx.name() == "no-filename-given"
    assert pv.alternatives == []
    req = PluginRequirement("k8saudit", "0.1.0")
    assert (req.name, req.version) == ("k8saudit", "0.1.0")


def test_list_and_macro_defaults():
    ctx = Context.root("f")
    lst = ListInfo(ctx)
    macro = MacroInfo(ctx)
    assert lst.used is False and lst.items == []
    assert macro.cond_ctx is ctx
    assert macro.cond_ast is None


def test_rule_info_defaults():
    ctx = Context.root("f")
    rule = RuleInfo(ctx)
    assert rule.cond_ctx is ctx and rule.output_ctx is ctx
    assert rule.priority is Priority.DEBUG
    assert rule.enabled is True
    assert rule.warn_evttypes is True
    assert rule.skip_if_unknown_filter is False
    assert rule.tags == set() and rule.exceptions == []


def test_infos_do_not_share_mutable_defaults():
    ctx = Context.root("f")
    a, b = ListInfo(ctx), ListInfo(ctx)
    a.items.append("x")
    assert b.items == []


@pytest.mark.parametrize(
    "entry, valid",
    [
        (ExceptionEntry(), False),
        (ExceptionEntry(item="proc.name"), True),
        (ExceptionEntry(is_list=True), False),
        (ExceptionEntry(is_list=True, item="ignored"), False),
        (ExceptionEntry(is_list=True, items=[ExceptionEntry(item="a")]), True),
        (ExceptionEntry(is_list=False, items=[ExceptionEntry(item="a")]), False),
    ],
)
def test_exception_entry_validity(entry, valid):
    assert entry.is_valid() is valid


def test_rule_exception_info_defaults():
    ex = RuleExceptionInfo(Context.root("f"), name="ex1")
    assert ex.name == "ex1"
    assert ex.fields.is_valid() is False
    assert ex.comps.is_valid() is False
    assert ex.values == []