"""
Test utilities for ValueStream.

This package contains shared helpers: a subscription monitor that records
everything a node delivers, and the coordinate node most tests build on.
"""

import asyncio
import copy
import itertools

from valuestream import Node


class SaveError(Exception):
    """Raised by the coordinate node's post action when there is nothing to save."""

    def __init__(self, state):
        super().__init__(state["message"])
        self.state = state


class Monitor:
    """
    Subscribe to a node and record values, errors and completion.

    Values are deep-copied on arrival so later in-place mutation does not
    rewrite the history.

    Example:
        >>> monitor = Monitor(Node("num", 1, "number"))
        >>> monitor.values
        [1]
    """

    def __init__(self, node):
        self.values = []
        self.errors = []
        self.completions = 0
        self.subscription = node.subscribe(self._on_value, self.errors.append, self._on_complete)

    def _on_value(self, value):
        self.values.append(copy.deepcopy(value))

    def _on_complete(self):
        self.completions += 1

    @property
    def done(self):
        return self.completions > 0


def coord_factory():
    """Coordinate with numeric x/y, a saved flag and sync/async actions."""
    next_id = itertools.count(1000)

    def negate(node):
        node.do.setX(-node.get("x"))
        node.do.setY(-node.get("y"))

    async def post(node):
        node.do.setSaved(False)
        await asyncio.sleep(0.01)
        x, y = node.get("x"), node.get("y")
        if not (x or y):
            raise SaveError(
                {"saved": False, "x": x, "y": y, "message": "x or y must be non-zero"}
            )
        node.do.setSaved(True)
        return {"saved": True, "x": x, "y": y, "id": next(next_id)}

    def add(node, x, y):
        if not isinstance(x, (int, float)):
            node.emit_error({"action": "add", "error": f"non-numeric x: {x}"})
            return None
        if not isinstance(y, (int, float)):
            node.emit_error({"action": "add", "error": f"non-numeric y: {y}"})
            return None
        node.do.setX(x + node.get("x"))
        node.do.setY(y + node.get("y"))

    def add_and_post(node, x, y):
        node.do.add(x, y)
        return node.do.post()

    def add_transactional(node, x, y):
        node.do.add(x, y)

    return (
        Node("coord")
        .add_child("x", 0, "number")
        .add_child("y", 0, "number")
        .add_child("saved", False, "boolean")
        .define_action("negate", negate)
        .define_action("post", post)
        .define_action("add", add)
        .define_action("addAndPostT", add_and_post, transactional=True)
        .define_action("addT", add_transactional, transactional=True)
    )
