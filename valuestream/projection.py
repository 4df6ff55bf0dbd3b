"""
ValueStream Projection - Filtered Views over a Composite Node
=============================================================

A projection is a composite node exposing a subset of another node's
children. The exposed children are the *same* Node instances, so a write
through either node is visible through both, and changes to children left
out of the projection never reach its subscribers.

The projection mirrors the source's open-transaction count, so it withholds
emissions during the source's transactions as well as its own.

Example:
    ```python
    base = Node("abcd").add_child("a", 1).add_child("b", 2).add_child("c", 3)
    view = base.filtered("a", "c")
    view.value  # {'a': 1, 'c': 3}
    ```
"""

from typing import TYPE_CHECKING, Any, Iterable, List

from .exceptions import NodeModeError, ProjectionError

if TYPE_CHECKING:
    from .node import Node


def flatten_names(names: Iterable[Any]) -> List[str]:
    """Strings and iterables of strings, flattened and de-duplicated in order."""
    flat: List[str] = []
    for entry in names:
        if not entry:
            continue
        items = [entry] if isinstance(entry, str) else list(entry)
        for item in items:
            if item not in flat:
                flat.append(item)
    return flat


def project(source: "Node", *names: Any) -> "Node":
    """
    Build a projection of source over the named children.

    Raises:
        NodeModeError: source is a scalar node.
        ProjectionError: no names were given, or a name is not a direct
            child of source.
    """
    from .node import Node

    if source.is_scalar:
        raise NodeModeError(f"cannot project scalar node {source.path}")

    wanted = flatten_names(names)
    if not wanted:
        raise ProjectionError(f"{source.name}: a projection needs at least one child name")
    missing = [name for name in wanted if not source.has_child(name)]
    if missing:
        raise ProjectionError(f"{source.name} has no children named {', '.join(map(str, missing))}")

    projection = Node(f"{source.name}_filtered_{'_'.join(wanted)}", context=source.context)
    for name in wanted:
        projection.add_child(name, source.child(name))

    mirror = source._trans_count.subscribe(projection._mirror_transaction_count)
    projection._links.add(mirror)
    return projection
