"""
ValueStream Node - Hierarchical Observable State
================================================

This module provides Node, the single building block of a value tree.

A node is either:

- **scalar**: holds one value, optionally guarded by a validator, or
- **composite**: holds named child nodes; its value is computed on demand
  as a plain dict of the children's values.

Change Propagation
------------------

Every successful scalar write pushes a change record onto the node's change
channel. When a child is attached, its change and error channels are wired
into the parent's, re-tagged with ``source`` (the child's name) and
``target`` (the parent's name), so a write at a deep leaf surfaces at the
root.

Subscribers do not see raw changes. ``subscribe`` combines the change
channel with the node's open-transaction count and emits the node's value
only while that count is zero, plus once at subscription time. Writes made
inside a transaction therefore collapse into one emission when the last
transaction closes.

Errors are managed: a failed validation or a failing action produces an
error record on the error channel and the subscription keeps running. Only
``complete()`` ends it.

Example:
    ```python
    coord = (
        Node("coord")
        .add_child("x", 0, "number")
        .add_child("y", 0, "number")
        .define_action(
            "add",
            lambda node, dx, dy: (node.do.setX(node.my.x + dx), node.do.setY(node.my.y + dy)),
            transactional=True,
        )
    )

    coord.subscribe(print)  # {'x': 0, 'y': 0}
    coord.do.add(1, 2)      # {'x': 1, 'y': 2}  (one emission, not two)
    ```
"""

import logging
import weakref
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Dict, Optional

import reactivex
from reactivex import operators as ops
from reactivex.abc import DisposableBase
from reactivex.disposable import CompositeDisposable
from reactivex.subject import BehaviorSubject, Subject

from .accessor import NodeAccessor, build_accessor
from .bus import MessageBusMixin
from .context import StreamContext, get_default_context
from .dispatch import Action, ActionTable, register
from .exceptions import InvalidNameError, InvalidValueError, NodeModeError
from .naming import action_name, check_name
from .transaction import Transaction
from .validation import clamp, is_scalar_type, range_test, type_test_for

# ============================================================================
# SENTINEL VALUES
# ============================================================================


class _Absent:
    """Sentinel for 'no value'; distinct from None, which is a valid value."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


# ============================================================================
# NODE
# ============================================================================


class Node(MessageBusMixin):
    """
    A scalar or composite entry in a value tree.

    Args:
        name: Node name; generated from the context when omitted.
        value: Initial value. Omit it to create a composite node.
        type: Type tag, class or predicate validating scalar writes.
        context: StreamContext for counters and settings. Defaults to the
            parent's context once attached, else the default context.

    Raises:
        InvalidValueError: The initial value fails the type's validation.

    Attributes:
        name: The node's name, unique among its siblings.
        do: Action table; ``node.do.setX(1)`` dispatches the ``setX`` action.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        value: Any = ABSENT,
        type: Any = None,
        *,
        context: Optional[StreamContext] = None,
    ) -> None:
        self._context = context
        self._parent_ref: Optional[weakref.ref] = None
        self.name = name or self.context.next_node_name()

        self._scalar = value is not ABSENT
        self._value = value
        self._type = None
        self._validator: Optional[Callable[[Any], Any]] = None
        self._emitted = False

        self._children: Dict[str, "Node"] = {}
        self._actions: Dict[str, Action] = {}
        self._accessor: Optional[NodeAccessor] = None
        self.do = ActionTable()

        self._transactions: Dict[int, Transaction] = {}
        self._mirrored_count = 0

        self._changes = Subject()
        self._errors = Subject()
        self._trans_count = BehaviorSubject(0)
        self._links = CompositeDisposable()
        self._completed = False
        self._init_bus()

        if self._scalar and type is not None:
            self._type = type
            self._validator = type_test_for(
                type, self.name, self.context.settings.strict_types
            )
            error = self._validator(value)
            if error:
                raise InvalidValueError(f"cannot create {self.name}: {error}")

    # ==================== Identity ====================

    @property
    def context(self) -> StreamContext:
        if self._context is not None:
            return self._context
        parent = self.parent
        if parent is not None:
            return parent.context
        return get_default_context()

    @property
    def parent(self) -> Optional["Node"]:
        """The node this one was first attached to, if it is still alive."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    def _attach(self, parent: "Node") -> None:
        # the first attachment fixes the path; projections reuse children
        if self._parent_ref is None:
            self._parent_ref = weakref.ref(parent)

    @property
    def path(self) -> str:
        """Dotted path from the root, e.g. ``"coord.x"``."""
        parent = self.parent
        if parent is not None:
            return f"{parent.path}.{self.name}"
        return self.name

    @property
    def id(self) -> str:
        return self.path

    @property
    def is_scalar(self) -> bool:
        return self._scalar

    @property
    def type(self) -> Any:
        return self._type

    @property
    def is_complete(self) -> bool:
        return self._completed

    def __repr__(self) -> str:
        if self._scalar:
            return f"Node({self.path!r}, value={self._value!r})"
        return f"Node({self.path!r}, children={list(self._children)})"

    # ==================== Values ====================

    @property
    def value(self) -> Any:
        """The stored value, or a fresh dict of child values for composites."""
        if self._scalar:
            return self._value
        return self.to_object()

    def to_object(self) -> Any:
        if self._scalar:
            return self._value
        return {name: child.value for name, child in self._children.items()}

    def set(self, name_or_value: Any, value: Any = ABSENT) -> "Node":
        """
        Write a value.

        Scalar nodes take the value directly: ``node.set(3)``. Composite
        nodes take a child name and a value: ``node.set("x", 3)``.
        """
        if self._scalar:
            self._update(name_or_value)
            return self

        if value is ABSENT:
            raise TypeError(f"set on composite node {self.path} needs a child name and a value")
        child = self._children.get(name_or_value)
        if child is None:
            logging.warning(f"{self.path}: attempt to set unknown child {name_or_value!r}")
            return self
        child.set(value)
        return self

    def get(self, name: Any = ABSENT) -> Any:
        """Value of the named child; scalar nodes return their own value."""
        if self._scalar:
            return self._value
        child = self._children.get(name)
        if child is None:
            logging.warning(f"{self.path}: attempt to get unknown child {name!r}")
            return ABSENT
        return child.value

    def _update(self, value: Any) -> None:
        if value is ABSENT:
            self.emit_error({"error": f"{self.name} cannot be set to ABSENT", "value": value})
            return
        if self._validator is not None:
            error = self._validator(value)
            if error:
                self.emit_error({"error": error, "value": value})
                return

        previous = self._value
        self._value = value
        if self._is_distinct() and previous == value:
            return

        change = {"name": self.name, "value": value}
        if self._emitted:
            change["prev"] = previous
        self._emitted = True
        self._changes.on_next(change)

    def _is_distinct(self) -> bool:
        return self.context.settings.distinct_scalar_writes and is_scalar_type(self._type)

    def broadcast(self, name: Optional[str] = None) -> "Node":
        """
        Force a change emission without changing any stored value.

        Use it after mutating a list or dict held by a node in place.
        """
        if name is not None and not self._scalar:
            child = self._children.get(name)
            if child is None:
                logging.warning(f"{self.path}: attempt to broadcast unknown child {name!r}")
                return self
            child.broadcast()
            return self

        change = {"name": self.name, "value": self.value, "broadcast": True}
        if self._scalar and self._emitted:
            change["prev"] = self._value
        self._changes.on_next(change)
        return self

    # ==================== Structure ====================

    @property
    def children(self) -> Mapping:
        """Read-only view of the child nodes, in insertion order."""
        return MappingProxyType(self._children)

    def child(self, name: str) -> Optional["Node"]:
        return self._children.get(name)

    def has_child(self, name: str) -> bool:
        return name in self._children

    def add_child(self, name: Any, value: Any = ABSENT, type: Any = None) -> "Node":
        """
        Attach a child and register its ``set<Name>``/``to<Name>`` actions.

        ``value`` may be an existing Node, which is attached as is; a node
        passed as ``name`` is attached under its own name. Omitting the value
        creates a composite child.

        Raises:
            NodeModeError: This node is scalar.
            InvalidNameError: The name is not an identifier, is taken, or
                differs from the name of the Node being attached.
        """
        if self._scalar:
            raise NodeModeError(f"cannot add child {name!r} to scalar node {self.path}")
        if isinstance(name, Node):
            return self.add_child(name.name, name)

        check_name(name, self.path)
        if name in self._children:
            raise InvalidNameError(f"{self.path} already has a child named {name!r}")

        if isinstance(value, Node):
            if value.name != name:
                raise InvalidNameError(
                    f"{self.path}: cannot attach node {value.name!r} as {name!r}"
                )
            child = value
        else:
            child = Node(name, value, type, context=self.context)
        child._attach(self)

        self._links.add(child._changes.subscribe(self._cascade_change(name)))
        self._links.add(child._errors.subscribe(self._cascade_error(name)))
        self._children[name] = child
        self._accessor = None
        self._define_child_actions(name)
        return self

    def add_range(
        self,
        name: str,
        value: Any,
        *,
        min: Optional[float] = None,
        max: Optional[float] = None,
        type: Any = "number",
    ) -> "Node":
        """Attach a numeric child clamped into and validated against [min, max]."""
        check_name(name, self.path)
        context = self.context
        child = Node(name, clamp(value, min, max), type, context=context)
        child._validator = range_test(type, name, min, max, context.settings.strict_types)
        return self.add_child(name, child)

    def branch(self, name: Optional[str] = None) -> "Node":
        """
        Convert a scalar node into a composite one.

        With a name, the current value (and its type) moves into a new child
        of that name; without one, the value is discarded.
        """
        if not self._scalar:
            logging.warning(f"attempt to branch already composite node {self.path}")
            return self
        if name:
            check_name(name, self.path)

        value, type_, validator = self._value, self._type, self._validator
        self._scalar = False
        self._value = ABSENT
        self._type = None
        self._validator = None

        if name:
            self.add_child(name, value, type_)
            self._children[name]._validator = validator
        return self

    def _cascade_change(self, source: str) -> Callable[[dict], None]:
        def cascade(change: dict) -> None:
            self._changes.on_next({**change, "source": source, "target": self.name})

        return cascade

    def _cascade_error(self, source: str) -> Callable[[dict], None]:
        def cascade(record: dict) -> None:
            self.emit_error({"error": record, "source": source, "target": self.name})

        return cascade

    @property
    def my(self) -> Any:
        """Attribute access to child values; scalar nodes return their value."""
        if self._scalar:
            return self._value
        if self._accessor is None:
            self._accessor = build_accessor(self, self._children)
        return self._accessor

    # ==================== Actions ====================

    def define_action(
        self, name: str, handler: Callable[..., Any], transactional: bool = False
    ) -> "Node":
        """
        Register a named action; the first registration of a name wins.

        The handler is called as ``handler(node, *args)``. A transactional
        action withholds emissions from this node until it has finished,
        including any asynchronous work it returns.
        """
        check_name(name, self.path, "action name")
        if not callable(handler):
            raise TypeError(f"action {name!r} requires a callable handler")
        if name in self._actions:
            logging.warning(f"{self.path} already has an action {name!r}")
            return self

        action = Action(name, handler, transactional)
        self._actions[name] = action
        register(self.do, action.bind(self))
        return self

    add_action = define_action

    def _define_child_actions(self, name: str) -> None:
        alter_name = action_name(name, "to")

        def set_child(node: "Node", value: Any = ABSENT) -> Any:
            if value is not ABSENT:
                node.set(name, value)
            return node.get(name)

        def alter_child(node: "Node", fn: Callable[[Any], Any]) -> Any:
            if callable(fn):
                try:
                    result = fn(node.get(name))
                except Exception as error:
                    node.emit_error({"error": error, "action_name": alter_name})
                    return node.get(name)
                node.set(name, result)
            return node.get(name)

        self.define_action(action_name(name, "set"), set_child)
        self.define_action(alter_name, alter_child)

    # ==================== Transactions ====================

    def add_transaction(self, name: str, params: Any = ()) -> Transaction:
        """Open a transaction on this node and return it."""
        transaction = Transaction(self.context.next_transaction_id(), name, params, self)
        self._transactions[transaction.id] = transaction
        logging.debug(f"opened {transaction}")
        self._publish_transaction_count()
        return transaction

    def close_transaction(self, transaction: Transaction) -> None:
        self._transactions.pop(transaction.id, None)
        self._publish_transaction_count()

    def count_of_transactions(self) -> int:
        """Number of open transactions created on this node."""
        return sum(1 for transaction in self._transactions.values() if transaction.open)

    def _mirror_transaction_count(self, count: int) -> None:
        self._mirrored_count = count
        self._publish_transaction_count()

    def _publish_transaction_count(self) -> None:
        self._trans_count.on_next(self.count_of_transactions() + self._mirrored_count)

    # ==================== Observation ====================

    @property
    def changes(self) -> reactivex.Observable:
        """Every change record reaching this node, transactions notwithstanding."""
        return self._changes

    @property
    def current(self) -> reactivex.Observable:
        """
        The coalesced value stream.

        Emits the value at subscription time, then after every change made
        while no transaction is open, and once when the open-transaction
        count returns to zero if changes arrived while it was open.
        """

        def factory(scheduler: Any = None) -> reactivex.Observable:
            state = {"count": 0, "dirty": False}

            def release(event: tuple) -> bool:
                kind, payload = event
                if kind == "change":
                    if state["count"] < 1:
                        return True
                    state["dirty"] = True
                    return False
                state["count"] = payload
                if payload < 1 and state["dirty"]:
                    state["dirty"] = False
                    return True
                return False

            return reactivex.merge(
                self._changes.pipe(ops.map(lambda change: ("change", change))),
                self._trans_count.pipe(ops.map(lambda count: ("count", count))),
            ).pipe(
                ops.filter(release),
                ops.map(lambda _: self.value),
                ops.start_with(self.value),
            )

        return reactivex.defer(factory)

    def subscribe(
        self,
        on_value: Optional[Callable[[Any], Any]] = None,
        on_error: Optional[Callable[[dict], Any]] = None,
        on_complete: Optional[Callable[[], Any]] = None,
    ) -> DisposableBase:
        """
        Observe values and managed errors.

        Args:
            on_value: Called with the node's value (see ``current``).
            on_error: Called with each error record; the subscription
                continues afterwards.
            on_complete: Called once, when ``complete()`` is called.

        Returns:
            A disposable; call ``dispose()`` to unsubscribe.
        """
        for label, callback in (
            ("on_value", on_value),
            ("on_error", on_error),
            ("on_complete", on_complete),
        ):
            if callback is not None and not callable(callback):
                raise TypeError(f"subscribe {label} must be a function")

        def deliver(message: tuple) -> None:
            kind, payload = message
            if kind == "error":
                if on_error is not None:
                    on_error(payload)
            elif on_value is not None:
                on_value(payload)

        return reactivex.merge(
            self.current.pipe(ops.map(lambda value: ("value", value))),
            self._errors.pipe(ops.map(lambda record: ("error", record))),
        ).subscribe(deliver, on_completed=on_complete)

    def emit_error(self, params: Any) -> "Node":
        """
        Push a managed error record stamped with this node's id and name.

        Strings become ``{"error": text}``; mappings holding an ``error`` key
        are copied; anything else is wrapped as ``{"error": params}``.
        """
        if not params:
            return self
        if isinstance(params, str):
            record = {"error": params}
        elif isinstance(params, Mapping) and "error" in params:
            record = dict(params)
        else:
            record = {"error": params}
        record["id"] = self.id
        record["name"] = self.name
        self._errors.on_next(record)
        return self

    def watch_stream(self, name: Optional[str] = None) -> reactivex.Observable:
        """Raw change records: all of them for scalars, one direct child's otherwise."""
        if self._scalar:
            return self._changes
        return self._changes.pipe(
            ops.filter(
                lambda change: change.get("name") == name
                and change.get("source") == name
                and change.get("target") == self.name
            )
        )

    def _interpret(self, listener: Any) -> Callable[..., Any]:
        if isinstance(listener, str):
            return lambda *args: self.do[listener](*args)
        if not callable(listener):
            raise TypeError("listener must be callable or an action name")
        return lambda *args: listener(self, *args)

    def watch(
        self,
        name: Any,
        listener: Any = None,
        on_error: Optional[Callable[[Any], Any]] = None,
        on_complete: Optional[Callable[[], Any]] = None,
    ) -> "Node":
        """
        Call listener with every change record of a child.

        Composite: ``watch("x", listener)``. Scalar: ``watch(listener)``.
        Listeners see changes made inside transactions too.
        """
        if self._scalar:
            name, listener, on_error, on_complete = None, name, listener, on_error
        handler = self._interpret(listener)
        self.watch_stream(name).subscribe(handler, on_error, on_complete)
        return self

    def watch_flat(self, name: Any, listener: Any = None) -> "Node":
        """Like watch, but listener receives ``(node, value, prev, name)``."""
        if self._scalar:
            name, listener = self.name, name
        handler = self._interpret(listener)
        self.watch_stream(name).subscribe(
            lambda change: handler(change.get("value"), change.get("prev"), name)
        )
        return self

    # ==================== Projection & Teardown ====================

    def filtered(self, *names: Any) -> "Node":
        """Composite aliasing the named children; see valuestream.projection."""
        from .projection import project

        return project(self, *names)

    def complete(self) -> None:
        """
        Close this node's channels; subscribers get ``on_complete`` once.

        Children are not completed; complete them separately if needed.
        """
        if self._completed:
            return
        self._completed = True
        self._complete_bus()
        self._links.dispose()
        self._changes.on_completed()
        self._trans_count.on_completed()
        self._errors.on_completed()
