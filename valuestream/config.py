"""
ValueStream Settings
====================

Runtime switches carried by a StreamContext.
"""

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class Settings:
    """
    Behavior switches for nodes sharing a context.

    Attributes:
        strict_types: Unknown type tags raise UnknownTypeError instead of
            logging a warning and accepting every value.
        distinct_scalar_writes: Writes of an equal value to a node typed
            string/number/integer/boolean are not emitted.
    """

    strict_types: bool = False
    distinct_scalar_writes: bool = True

    def evolve(self, **changes: Any) -> "Settings":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
