"""
ValueStream Message Bus - Named Topics per Node
===============================================

A lightweight publish/subscribe channel keyed by topic string. It is
independent of value propagation and has no transaction semantics.

Listeners are either callables, invoked as ``listener(node, *args)``, or the
name of one of the node's actions, invoked as ``node.do[name](*args)``.

Example:
    ```python
    counter.on("odd", lambda node, value: print("odd", value))
    counter.emit("odd", 3)
    ```
"""

import logging
from typing import Any, Callable, Dict, List, Union

from reactivex.subject import Subject

Listener = Union[str, Callable[..., Any]]


class MessageBusMixin:
    """Topic emitters for Node; expects ``self.do`` and ``self.name``."""

    def _init_bus(self) -> None:
        self._emitters: Dict[str, Subject] = {}
        self._listeners: Dict[str, List[Listener]] = {}

    def _emitter(self, topic: str) -> Subject:
        if not (topic and isinstance(topic, str)):
            raise ValueError("emitter topic must be a nonempty string")
        if topic not in self._emitters:
            subject = Subject()
            subject.subscribe(lambda args, topic=topic: self._deliver(topic, args))
            self._emitters[topic] = subject
        return self._emitters[topic]

    def _deliver(self, topic: str, args: tuple) -> None:
        for listener in list(self._listeners.get(topic, ())):
            if isinstance(listener, str):
                if listener in self.do:
                    self.do[listener](*args)
                else:
                    logging.warning(f"{self.name}: no action {listener!r} for topic {topic!r}")
            else:
                listener(self, *args)

    def emit(self, topic: str, *args: Any) -> "MessageBusMixin":
        """Deliver args to every listener registered for topic."""
        self._emitter(topic).on_next(args)
        return self

    def on(self, topic: str, listener: Listener) -> "MessageBusMixin":
        """Register a callable or an action name for topic."""
        if not (isinstance(listener, str) or callable(listener)):
            raise TypeError("listener must be callable or an action name")
        self._emitter(topic)
        listeners = self._listeners.setdefault(topic, [])
        if listener not in listeners:
            listeners.append(listener)
        return self

    def off(self, topic: str, listener: Listener) -> "MessageBusMixin":
        """Remove one listener; use off_all to remove every listener."""
        if not listener:
            logging.warning(
                f"{self.name}: off requires a listener; use off_all to remove all listeners"
            )
            return self
        listeners = self._listeners.get(topic, [])
        if listener in listeners:
            listeners.remove(listener)
        return self

    def off_all(self, topic: str) -> "MessageBusMixin":
        if not (topic and isinstance(topic, str)):
            logging.warning(f"{self.name}: off_all topic must be a nonempty string")
            return self
        self._listeners.pop(topic, None)
        return self

    def _complete_bus(self) -> None:
        for subject in self._emitters.values():
            subject.on_completed()
