"""
Shared pytest fixtures and configuration for ValueStream tests.
"""

import pytest

from valuestream import Node, _reset_default_context
from tests.utils import coord_factory


@pytest.fixture(autouse=True)
def reset_default_context():
    """Reset the default context before each test to prevent state leakage."""
    _reset_default_context()


@pytest.fixture
def coord():
    """Provide a fresh coordinate node (x, y, saved) with its actions."""
    return coord_factory()


@pytest.fixture
def abcd():
    """Provide a composite with untyped children a..d and a transactional addAll."""

    def add_all(node, n):
        node.do.setA(node.my.a + n)
        node.do.setB(node.my.b + n)
        node.do.setC(node.my.c + n)
        node.do.setD(node.my.d + n)

    return (
        Node("abcd")
        .add_child("a", 1)
        .add_child("b", 2)
        .add_child("c", 3)
        .add_child("d", 4)
        .define_action("addAll", add_all, transactional=True)
    )
