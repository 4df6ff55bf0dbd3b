"""Tests for transactions and the coalescing of emissions."""

import pytest

from tests.utils import Monitor
from valuestream import Node, StreamContext


def test_transactional_action_emits_once(coord):
    """Test that two writes inside a transaction yield one emission."""
    monitor = Monitor(coord)
    coord.do.addT(1, 2)
    assert monitor.values == [
        {"x": 0, "y": 0, "saved": False},
        {"x": 1, "y": 2, "saved": False},
    ]


def test_plain_action_emits_per_write(coord):
    """Test that without a transaction every write is emitted."""
    monitor = Monitor(coord)
    coord.do.add(1, 2)
    assert monitor.values == [
        {"x": 0, "y": 0, "saved": False},
        {"x": 1, "y": 0, "saved": False},
        {"x": 1, "y": 2, "saved": False},
    ]


def test_coord_add_scenario():
    """Test the basic coordinate add: one emission with the final state."""
    coord = (
        Node("coord")
        .add_child("x", 0, "number")
        .add_child("y", 0, "number")
        .define_action(
            "add",
            lambda node, dx, dy: (
                node.do.setX(node.my.x + dx),
                node.do.setY(node.my.y + dy),
            ),
            transactional=True,
        )
    )
    values = []
    coord.subscribe(values.append)
    coord.do.add(1, 2)
    assert values == [{"x": 0, "y": 0}, {"x": 1, "y": 2}]


def test_nested_transactions_coalesce_to_outer(coord):
    """Test that inner transactional actions do not release emissions early."""

    def twice(node):
        node.do.addT(1, 1)
        node.do.addT(2, 2)

    coord.define_action("twice", twice, transactional=True)
    monitor = Monitor(coord)
    coord.do.twice()
    assert monitor.values == [
        {"x": 0, "y": 0, "saved": False},
        {"x": 3, "y": 3, "saved": False},
    ]


def test_transaction_count_inside_handler(coord):
    """Test that the count reflects every open transaction on the node."""
    counts = []

    def inner(node):
        counts.append(node.count_of_transactions())

    def outer(node):
        counts.append(node.count_of_transactions())
        node.do.inner()
        counts.append(node.count_of_transactions())

    coord.define_action("inner", inner, transactional=True)
    coord.define_action("outer", outer, transactional=True)
    coord.do.outer()

    assert counts == [1, 2, 1]
    assert coord.count_of_transactions() == 0


def test_transaction_closes_when_action_fails(coord):
    """Test that a failing transactional action still closes its transaction."""

    def fail(node):
        node.do.setX(5)
        raise RuntimeError("halfway")

    coord.define_action("fail", fail, transactional=True)
    monitor = Monitor(coord)

    result = coord.do.fail()

    assert isinstance(result["error"], RuntimeError)
    assert coord.count_of_transactions() == 0
    assert monitor.values[-1] == {"x": 5, "y": 0, "saved": False}
    assert len(monitor.errors) == 1


def test_manual_transaction_coalesces(coord):
    """Test that a transaction opened by hand withholds emissions until closed."""
    monitor = Monitor(coord)
    transaction = coord.add_transaction("manual", ["batch"])

    coord.set("x", 10)
    coord.set("y", 20)
    assert len(monitor.values) == 1
    assert coord.value == {"x": 10, "y": 20, "saved": False}

    transaction.complete()
    assert monitor.values[-1] == {"x": 10, "y": 20, "saved": False}
    assert len(monitor.values) == 2


def test_transaction_complete_is_idempotent(coord):
    """Test that closing a transaction twice has no further effect."""
    monitor = Monitor(coord)
    transaction = coord.add_transaction("manual")
    coord.set("x", 1)
    transaction.complete()
    transaction.complete()

    assert not transaction.open
    assert coord.count_of_transactions() == 0
    assert len(monitor.values) == 2


def test_transaction_ids_are_monotonic():
    """Test that transaction ids increase across nodes of one context."""
    context = StreamContext()
    first = Node("a", context=context).add_transaction("one")
    second = Node("b", context=context).add_transaction("two")
    assert (first.id, second.id) == (1, 2)


def test_transaction_records_params():
    """Test that a transaction keeps its name, params and target."""
    node = Node("calc")
    transaction = node.add_transaction("batch", (1, 2))
    assert transaction.name == "batch"
    assert transaction.params == [1, 2]
    assert transaction.target is node
    assert "open" in repr(transaction)
    transaction.complete()
    assert "closed" in repr(transaction)


def test_child_transaction_does_not_gate_parent():
    """Test that transactions are counted per node."""
    root = Node("root").add_child("pos")
    pos = root.child("pos").add_child("x", 0, "number").add_child("y", 0, "number")
    pos.define_action(
        "move", lambda node: (node.do.setX(1), node.do.setY(1)), transactional=True
    )
    root_monitor = Monitor(root)
    pos_monitor = Monitor(pos)

    pos.do.move()

    assert pos_monitor.values == [{"x": 0, "y": 0}, {"x": 1, "y": 1}]
    assert root_monitor.values == [
        {"pos": {"x": 0, "y": 0}},
        {"pos": {"x": 1, "y": 0}},
        {"pos": {"x": 1, "y": 1}},
    ]


@pytest.mark.parametrize("writes", [1, 5, 20])
def test_any_number_of_writes_coalesce(writes):
    """Test that N writes inside a transaction yield exactly one emission."""

    def bump(node):
        for _ in range(writes):
            node.do.toN(lambda n: n + 1)

    node = Node("counter").add_child("n", 0, "integer").define_action(
        "bump", bump, transactional=True
    )
    monitor = Monitor(node)
    node.do.bump()
    assert monitor.values == [{"n": 0}, {"n": writes}]


def test_transaction_without_writes_does_not_emit(coord):
    """Test that closing a transaction that changed nothing releases no emission."""
    coord.define_action("noop", lambda node: None, transactional=True)
    monitor = Monitor(coord)
    coord.set("x", 1)

    coord.do.noop()
    coord.add_transaction("empty").complete()

    assert monitor.values == [
        {"x": 0, "y": 0, "saved": False},
        {"x": 1, "y": 0, "saved": False},
    ]
