"""
ValueStream Accessor - Attribute Access to a Composite's Children
=================================================================

``node.my`` returns an object with one property per child, built from the
child-name set at the time of the call and cached until that set changes.
Reads go through ``node.get`` and writes through ``node.set``, so the
child's validator and change propagation apply as usual.

Example:
    >>> coord = Node("coord").add_child("x", 0).add_child("y", 0)
    >>> coord.my.x = 4
    >>> coord.get("x")
    4
"""

from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:
    from .node import Node


class NodeAccessor:
    """Base for generated accessors; unknown attributes raise AttributeError."""

    __slots__ = ("_node",)

    def __init__(self, node: "Node"):
        self._node = node

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={self._node.get(name)!r}" for name in self._node.children)
        return f"{self._node.name}.my({fields})"


def _child_property(name: str) -> property:
    def fget(self: NodeAccessor) -> Any:
        return self._node.get(name)

    def fset(self: NodeAccessor, value: Any) -> None:
        self._node.set(name, value)

    return property(fget, fset, doc=f"Value of child {name!r}.")


def build_accessor(node: "Node", names: Iterable[str]) -> NodeAccessor:
    """Create an accessor exposing names as properties of node."""
    namespace = {"__slots__": ()}
    for name in names:
        if name in NodeAccessor.__slots__:
            continue
        namespace[name] = _child_property(name)
    accessor_class = type(f"{node.name}_accessor", (NodeAccessor,), namespace)
    return accessor_class(node)
