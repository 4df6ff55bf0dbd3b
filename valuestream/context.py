"""
ValueStream Context - Shared Counters and Settings
==================================================

A StreamContext is the per-process state nodes share: the monotonic
transaction id counter, the generated-name counter and the Settings.

Nodes receive a context explicitly, inherit their parent's when attached,
or fall back to the lazily created default context.

Implementation:
    - get_default_context(): lazy singleton pattern
    - configure(): swap the default context's settings
    - _reset_default_context(): fresh state for tests
"""

import itertools
from typing import Any, Optional

from .config import Settings


class StreamContext:
    """Counters and settings shared by a family of nodes."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self._transaction_ids = itertools.count(1)
        self._node_ids = itertools.count(1)

    def next_transaction_id(self) -> int:
        return next(self._transaction_ids)

    def next_node_name(self) -> str:
        return f"node_{next(self._node_ids)}"

    def __repr__(self) -> str:
        return f"StreamContext({self.settings!r})"


_default_context = None


def get_default_context() -> StreamContext:
    """
    Get or create the default context.

    Lazy singleton pattern: creates on first access, reuses thereafter.
    Testing can reset via _reset_default_context().
    """
    global _default_context
    if _default_context is None:
        _default_context = StreamContext()
    return _default_context


def configure(**settings: Any) -> StreamContext:
    """
    Replace fields of the default context's settings.

    Nodes already created with the default context see the new settings
    from their next operation on.
    """
    context = get_default_context()
    context.settings = context.settings.evolve(**settings)
    return context


def _reset_default_context() -> None:
    """
    Reset the default context for testing purposes.

    Clears the singleton so counters and settings start fresh. Not for
    production use.
    """
    global _default_context
    _default_context = None
