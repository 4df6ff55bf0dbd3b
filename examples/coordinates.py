import asyncio
import math

from valuestream import Node

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Defining a node")
print("-" * 100)
print()


def add(node, dx, dy):
    node.do.setX(node.my.x + dx)
    node.do.setY(node.my.y + dy)


# Children are typed; every child gets set<Name> and to<Name> actions for free.
coord = (
    Node("coord")
    .add_child("x", 0, "number")
    .add_child("y", 0, "number")
    .define_action("add", add, transactional=True)
)

subscription = coord.subscribe(
    lambda value: print(f"coord is now {value}"),
    lambda error: print(f"coord error: {error['error']}"),
)

# Two writes inside a transaction: one emission with the final state.
coord.do.add(1, 2)

# Invalid writes never land; they surface on the error channel instead.
coord.set("y", "nutless monkey")
print(f"y is still {coord.my.y}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Nesting nodes")
print("-" * 100)
print()


def make_point(name, x, y):
    return Node(name).add_child("x", x, "number").add_child("y", y, "number")


def length(node):
    start, end = node.my.start, node.my.end
    return math.hypot(end["x"] - start["x"], end["y"] - start["y"])


segment = (
    Node("segment")
    .add_child(make_point("start", 0, 0))
    .add_child(make_point("end", 6, 8))
    .define_action("length", length)
)

# Changes deep in the tree are tagged with where they came from.
segment.changes.subscribe(lambda change: print(f"segment saw {change}"))

print(f"segment length: {segment.do.length()}")
segment.child("end").set("x", 9)
print(f"segment length: {segment.do.length()}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Asynchronous actions")
print("-" * 100)
print()


async def save(node):
    await asyncio.sleep(0.01)
    return {"saved": node.value}


coord.define_action("save", save, transactional=True)


async def main():
    # The transaction stays open, and emissions withheld, until save settles.
    result = await coord.do.save()
    print(f"save returned {result}")


asyncio.run(main())

subscription.dispose()
coord.complete()
