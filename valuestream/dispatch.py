"""
ValueStream Dispatch - Actions, Unwinding and Transactions
==========================================================

Actions are named behaviors bound to a node. Calling one runs its handler
in a guarded context and *unwinds* the result:

- **CALLABLE**: call it with ``(node, *args)`` and unwind what it returns
- **PENDING**: an awaitable; schedule it and unwind its settled value
- **VALUE**: anything else is the terminal result

Failures never escape to the caller. A raised exception or a rejected
awaitable becomes an error record on the node's error channel and the call
resolves to ``{"error": error}``.

A transactional action opens a Transaction on its node before running and
closes it once the unwound result is available; for pending results that is
after the awaitable settles, so emissions stay withheld for the full
lifetime of the asynchronous work.

Example:
    ```python
    coord = Node("coord").add_child("x", 0, "number")
    coord.define_action("bump", lambda node, n: node.do.setX(node.get("x") + n))
    coord.do.bump(2)
    ```
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterator, Sequence

if TYPE_CHECKING:
    from .node import Node


class ResultKind(Enum):
    """Classification of an intermediate action result."""

    VALUE = "value"
    CALLABLE = "callable"
    PENDING = "pending"


def classify(result: Any) -> ResultKind:
    if inspect.isawaitable(result):
        return ResultKind.PENDING
    if callable(result):
        return ResultKind.CALLABLE
    return ResultKind.VALUE


def _fail(node: "Node", action_name: str, error: BaseException, params: Sequence[Any]):
    logging.debug(f"action {action_name} on {node.id} failed: {error!r}")
    node.emit_error({"error": error, "action_name": action_name, "params": list(params)})
    return {"error": error}


def perform(node: "Node", action_name: str, handler: Any, params: Sequence[Any] = ()) -> Any:
    """
    Run handler for node and unwind the result.

    Returns the terminal value, ``{"error": ...}`` on failure, or an
    asyncio.Task when some step of the unwinding is asynchronous.
    """
    result = handler
    while True:
        kind = classify(result)
        if kind is ResultKind.VALUE:
            return result
        if kind is ResultKind.PENDING:
            return _schedule(node, action_name, result, params)
        try:
            result = result(node, *params)
        except Exception as error:
            return _fail(node, action_name, error, params)


def _schedule(node: "Node", action_name: str, pending: Any, params: Sequence[Any]) -> Any:
    try:
        asyncio.get_running_loop()
    except RuntimeError as error:
        if inspect.iscoroutine(pending):
            pending.close()
        return _fail(node, action_name, error, params)
    return asyncio.ensure_future(_settle(node, action_name, pending, params))


async def _settle(node: "Node", action_name: str, pending: Any, params: Sequence[Any]) -> Any:
    try:
        value = await pending
    except Exception as error:
        return _fail(node, action_name, error, params)
    result = perform(node, action_name, value, params)
    if isinstance(result, asyncio.Future):
        return await result
    return result


async def _close_after(pending: "asyncio.Future", transaction) -> Any:
    try:
        return await pending
    finally:
        transaction.complete()


@dataclass(frozen=True)
class Action:
    """A registered action: handler reference plus transactional flag."""

    name: str
    handler: Callable[..., Any]
    transactional: bool = False

    def bind(self, node: "Node") -> "BoundAction":
        return BoundAction(self, node)


class BoundAction:
    """An Action bound to its owning node; calling it dispatches the action."""

    __slots__ = ("action", "node")

    def __init__(self, action: Action, node: "Node"):
        self.action = action
        self.node = node

    @property
    def name(self) -> str:
        return self.action.name

    def __call__(self, *args: Any) -> Any:
        action, node = self.action, self.node
        if not action.transactional:
            return perform(node, action.name, action.handler, args)

        transaction = node.add_transaction(action.name, args)
        result = perform(node, action.name, action.handler, args)
        if isinstance(result, asyncio.Future):
            # close only once the asynchronous work has settled
            return asyncio.ensure_future(_close_after(result, transaction))
        transaction.complete()
        return result

    def __repr__(self) -> str:
        flag = ", transactional" if self.action.transactional else ""
        return f"BoundAction({self.node.name}.{self.action.name}{flag})"


class ActionTable:
    """
    The actions of one node, reachable as attributes or by key.

    Entries are written at registration time, so ``node.do.setX`` is a
    plain attribute lookup.
    """

    def __getitem__(self, name: str) -> BoundAction:
        return self.__dict__[name]

    def __contains__(self, name: object) -> bool:
        return name in self.__dict__

    def __iter__(self) -> Iterator[str]:
        return iter(self.__dict__)

    def __len__(self) -> int:
        return len(self.__dict__)

    def __repr__(self) -> str:
        return f"ActionTable({list(self.__dict__)})"


def register(table: ActionTable, bound: BoundAction) -> None:
    """Write bound into table under its action name."""
    vars(table)[bound.name] = bound
