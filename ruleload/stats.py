"""Counters of rule matches, by rule and by priority."""

from __future__ import annotations

import threading
from typing import Any, Sequence

from ruleload.infos import Priority


class StatsManager:
    """Tracks how many events matched each loaded rule.

    ``on_event`` is safe to call from many threads; the other methods are not.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._by_priority: list[int] = []
        self._by_rule_id: list[int] = []

    def clear(self) -> None:
        """Erase all statistics."""
        self._total = 0
        self._by_rule_id.clear()
        self._by_priority.clear()

    def on_rule_loaded(self, rule: Any) -> None:
        """Make room for counting matches of ``rule`` (needs ``id`` and ``priority``)."""
        while len(self._by_rule_id) <= rule.id:
            self._by_rule_id.append(0)
        while len(self._by_priority) <= int(rule.priority):
            self._by_priority.append(0)

    def on_event(self, rule: Any) -> None:
        """Count a match of ``rule``; it must have been passed to on_rule_loaded."""
        priority = int(rule.priority)
        if len(self._by_rule_id) <= rule.id or len(self._by_priority) <= priority:
            raise IndexError("rule id or priority out of bounds")
        with self._lock:
            self._total += 1
            self._by_rule_id[rule.id] += 1
            self._by_priority[priority] += 1

    def format(self, rules: Sequence[Any]) -> str:
        """Human readable report; ``rules`` is indexed by rule id."""
        lines = [f"Events detected: {self._total}", "Rule counts by severity:"]
        for priority, count in enumerate(self._by_priority):
            if count > 0:
                label = Priority(priority).format(True).upper()
                lines.append(f"   {label}: {count}")
        lines.append("Triggered rules by rule name:")
        for rule_id, count in enumerate(self._by_rule_id):
            if count > 0:
                lines.append(f"   {rules[rule_id].name}: {count}")
        return "\n".join(lines) + "\n"