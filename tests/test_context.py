import pytest

from ruleload.context import Context, ItemType, Location, Position


def test_item_type_labels():
    assert ItemType.VALUE_FOR.label() == "value for"
    assert ItemType.RULE_PRIORITY.label() == "rule priority"
    assert ItemType.REQUIRED_ENGINE_VERSION.label() == "required_engine_version"


def test_empty_context_rejected():
    with pytest.raises(ValueError):
        Context(())


def test_root_context_has_one_location():
    ctx = Context.root("rules.yaml")
    assert ctx.name() == "rules.yaml"
    assert len(ctx.locations) == 1
    assert ctx.locations[0].item_type is ItemType.RULES_CONTENT


def test_child_keeps_document_name_and_chain():
    root = Context.root("rules.yaml")
    rule = root.child(ItemType.RULE, "my rule", Position(10, 2, 4))
    value = rule.child(ItemType.VALUE_FOR, "output", Position(30, 4, 10))
    assert value.name() == "rules.yaml"
    assert value.locations[:2] == rule.locations
    assert value.locations[-1] == Location(
        "rules.yaml", Position(30, 4, 10), ItemType.VALUE_FOR, "output"
    )
    assert len(root.locations) == 1


def test_as_string_format():
    ctx = Context.root("f").child(ItemType.RULE, "r", Position(3, 1, 2))
    lines = ctx.as_string().splitlines()
    assert lines[0] == "In rules content: (f:0:0)"
    assert lines[1] == "    rule 'r': (f:1:2)"


def test_as_json_structure():
    ctx = Context.root("f").child(ItemType.LIST, "l", Position(7, 3, 5))
    data = ctx.as_json()
    assert len(data["locations"]) == 2
    last = data["locations"][1]
    assert last["item_type"] == ItemType.LIST.label()
    assert last["item_name"] == "l"
    assert last["position"] == {"name": "f", "line": 3, "column": 5, "offset": 7}


def test_condition_context_short_name_and_offsets():
    parent = Context.root("f").child(ItemType.RULE_CONDITION, "", Position(100, 5, 8))
    ctx = parent.for_condition(Position(4, 0, 4), "evt.type = open")
    last = ctx.locations[-1]
    assert last.name == '"evt.type = open"'
    assert last.item_type is ItemType.CONDITION_EXPRESSION
    assert last.position == Position(104, 5, 12)
    assert ctx.name() == "f"
    assert ctx.alt_content == "evt.type = open"


def test_condition_context_long_name_truncated():
    cond = "proc.name = cat and\nevt.type = open"
    ctx = Context.root("f").for_condition(Position(), cond)
    name = ctx.locations[-1].name
    assert name.endswith('..."')
    assert len(name) == 1 + 17 + 4
    assert "\n" not in name


def test_snippet_missing_file():
    ctx = Context.root("missing")
    assert ctx.snippet({}) == "<No context for file + missing>\n"


def test_snippet_empty_content():
    ctx = Context.root("f")
    assert ctx.snippet({"f": ""}) == "<No context available>\n"


def test_snippet_marks_position_in_line():
    content = "line one\nline two\nline three"
    ctx = Context.root("f").child(ItemType.RULE, "", Position(content.index("two"), 1, 5))
    lines = ctx.snippet({"f": content}).split("\n")
    assert lines[0] == "line two"
    assert lines[1].index("^") == 5


def test_snippet_position_past_end():
    content = "tags:\n"
    ctx = Context.root("f").child(ItemType.VALUE_FOR, "tags", Position(len(content), 1, 0))
    lines = ctx.snippet({"f": content}).split("\n")
    assert lines[0] == "tags:"
    assert lines[1].index("^") == len("tags:") - 1


def test_snippet_long_line_is_elided():
    content = "x" * 400
    width = 160
    ctx = Context.root("f").child(ItemType.RULE, "", Position(200, 0, 200))
    lines = ctx.snippet({"f": content}, width).split("\n")
    assert lines[0].startswith("...")
    assert lines[0].endswith("...")
    assert lines[1] == " " * (width // 2) + "^"


def test_snippet_uses_condition_text():
    cond = "evt.type = open"
    ctx = Context.root("f").for_condition(Position(cond.index("open"), 0, 11), cond)
    lines = ctx.snippet({}).split("\n")
    assert lines[0] == cond
    assert lines[1].index("^") == cond.index("open")