"""Event data sources known to the rule engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

# Version of the rules, filter fields, etc. supported by this engine.
ENGINE_VERSION = 17

# Checksum of the set of fields supported by this engine version.
FIELDS_CHECKSUM = "dd438e1713ebf8abc09a2c89da77bb43ee3886ad1ba69802595a5f18e3854550"


def engine_version() -> int:
    """Return the version of rules content this engine supports."""
    return ENGINE_VERSION


class FilterFactory(Protocol):
    """Anything able to build a filter check for a field name."""

    def new_filtercheck(self, field: str) -> Any:
        """Return a filter check for ``field``, or a falsy value if unknown."""


@dataclass
class Source:
    """A data source used by the engine, with the factories serving it.

    The ruleset of a source should be created through the ruleset
    factory of the same source.
    """

    name: str = ""
    ruleset: Any = None
    ruleset_factory: Any = None
    filter_factory: Optional[FilterFactory] = None
    formatter_factory: Any = None
    # Filled in by the ruleset when a rule matches an event.
    rule: Any = None

    def is_field_defined(self, field: str) -> bool:
        """Return True if the filter factory knows the given field."""
        if self.filter_factory is None:
            raise ValueError(f"source '{self.name}' has no filter factory")
        return bool(self.filter_factory.new_filtercheck(field))