# ruleload

`ruleload` reads YAML rule files made of lists, macros, rules, rule
exceptions and version requirements. It checks each item as it reads it,
merges items that are appended, redefined or re-enabled, and records the
outcome in a load result. The result reports errors and warnings together
with their location in the text.

## Installation

```
pip install ruleload
```

For running the tests:

```
pip install "ruleload[test]"
pytest
```

## Loading rules

A load starts from a `ruleload.infos.Configuration`. It holds the rules text,
the known event sources (a mapping of source name to
`ruleload.source.Source`) and a name for the content, which is usually a file
name. `ruleload.reader.Reader.read` parses the text and sends each item to a
`ruleload.collector.Collector`. Problems are recorded in the configuration's
`res`, a `ruleload.result.LoadResult`. `read` returns `False` and stops at the
first error.

```python
from ruleload.infos import Configuration
from ruleload.collector import Collector
from ruleload.reader import Reader
from ruleload.source import Source

content = """
- required_plugin_versions:
  - name: k8saudit
    version: 0.1.0
- list: shells
  items: [bash, sh]
- macro: spawned_process
  condition: evt.type = execve
"""

sources = {"syscall": Source(name="syscall")}
cfg = Configuration(content=content, sources=sources, name="rules.yaml")
collector = Collector()

ok = Reader().read(cfg, collector)
print(ok, cfg.res.successful())
print(cfg.res.as_string(True, {"rules.yaml": content}))
for alternatives in collector.required_plugin_versions():
    print([(req.name, req.version) for req in alternatives])
```

The collector exposes what it has gathered through `lists()`, `macros()` and
`rules()` (read-only mappings by name, in definition order),
`required_plugin_versions()` and `required_engine_version()`. It raises
`ruleload.result.RuleLoadError` when an item conflicts with earlier ones,
for example when appending to a list that does not exist, or when rules
require a newer engine than `ruleload.source.engine_version()`.

Rules whose source is not in the configuration are skipped with a warning.
Rule exceptions are checked against the source: their comparison operators
must be supported and their fields must be known to the source's
`filter_factory`, an object with a `new_filtercheck(field)` method. A
`Source` with no filter factory cannot check fields, so rules that carry
exceptions need one.

Priorities are `ruleload.infos.Priority` values; `Priority.parse` accepts
names such as `warning` or `info` in any case.

## Results

`LoadResult.as_string(verbose, contents)` gives either a short summary or a
detailed report. The detailed report shows each location together with a
snippet of the offending text. `LoadResult.as_json(contents)` returns the
same information as plain dictionaries and lists. Error and warning kinds
are `ErrorCode` and `WarningCode`.

## Contexts

A `ruleload.context.Context` is a chain of `Location`s. The chain runs from
the whole document down to the item at fault. `Context.snippet` cuts out the
line around a position and places a caret under it. `Context.for_condition`
points into a condition string instead of the file.

## Statistics

`ruleload.stats.StatsManager` counts matched events, in total and by priority
and rule. Each rule (an object with `id`, `priority` and `name`) must first be
passed to `on_rule_loaded`; `on_event` then counts a match. `format(rules)`,
with `rules` indexed by rule id, renders the counts as a short text report.

## Signal handling

`ruleload.signal_handler.AtomicSignalHandler` coordinates a triggered signal
across threads. When several threads call `handle(action)` at once, exactly
one of them runs the action, and the others wait until it has finished.

## What it does not do

Conditions and outputs are kept as text. The package does not parse or
compile filter conditions, expand macros and lists into them, evaluate
rules against events, or capture events. It has no command-line program.