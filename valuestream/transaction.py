"""
ValueStream Transaction - Open/Closed Marker for Transactional Actions
=====================================================================

A Transaction is created on a node when a transactional action starts and
closed when the action's fully unwound result is available. While any
transaction on a node is open, the node's current-value stream withholds
emissions; closing the last one releases a single emission.

Lifecycle: ``open -> closed``. Closing twice is a no-op.
"""

import logging
from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from .node import Node


class Transaction:
    """Marker for one in-flight transactional action on a node."""

    __slots__ = ("id", "name", "params", "target", "open")

    def __init__(self, id: int, name: str, params: Sequence[Any], target: "Node"):
        self.id = id
        self.name = name
        self.params = list(params)
        self.target = target
        self.open = True

    def complete(self) -> None:
        """Close the transaction and release it from its node."""
        if not self.open:
            return
        self.open = False
        logging.debug(f"closing {self}")
        self.target.close_transaction(self)

    def __repr__(self) -> str:
        state = "open" if self.open else "closed"
        return (
            f"Transaction(#{self.id} {self.name}, params={self.params!r}, "
            f"target={self.target.name}, {state})"
        )
