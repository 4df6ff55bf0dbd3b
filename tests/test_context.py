"""Tests for contexts, settings and the default context."""

import dataclasses

import pytest

from valuestream import (
    Node,
    Settings,
    StreamContext,
    UnknownTypeError,
    _reset_default_context,
    configure,
    get_default_context,
)


def test_default_context_is_a_singleton():
    """Test that the default context is created once and reused."""
    assert get_default_context() is get_default_context()


def test_reset_default_context_starts_fresh():
    """Test that resetting replaces the context and its counters."""
    first = get_default_context()
    Node()
    _reset_default_context()
    assert get_default_context() is not first
    assert Node().name == "node_1"


def test_settings_defaults():
    """Test the default switch values."""
    settings = Settings()
    assert settings.strict_types is False
    assert settings.distinct_scalar_writes is True


def test_settings_are_frozen():
    """Test that settings change only through evolve."""
    settings = Settings()
    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.strict_types = True
    evolved = settings.evolve(strict_types=True)
    assert evolved.strict_types is True
    assert settings.strict_types is False


def test_configure_updates_default_context():
    """Test that configure swaps the default context's settings."""
    context = configure(strict_types=True)
    assert context is get_default_context()
    assert context.settings.strict_types is True
    assert context.settings.distinct_scalar_writes is True


def test_strict_types_reject_unknown_tags():
    """Test that unknown type tags raise under strict settings."""
    configure(strict_types=True)
    with pytest.raises(UnknownTypeError):
        Node("num", 1, "numbr")


def test_lenient_types_accept_unknown_tags():
    """Test that unknown type tags accept any value by default."""
    node = Node("num", 1, "numbr")
    node.set("anything")
    assert node.value == "anything"


def test_explicit_context_is_inherited_by_children():
    """Test that children created through a node share its context."""
    context = StreamContext(Settings(strict_types=True))
    root = Node("root", context=context).add_child("pos")
    assert root.child("pos").context is context
    with pytest.raises(UnknownTypeError):
        root.child("pos").add_child("x", 1, "bogus")


def test_explicit_context_keeps_its_own_counters():
    """Test that counters are per context."""
    context = StreamContext()
    Node()
    assert Node(context=context).name == "node_1"
    assert Node(context=context).add_transaction("t").id == 1
    assert Node().add_transaction("t").id == 1


def test_attached_node_uses_parent_context():
    """Test that a node without a context adopts its parent's when attached."""
    context = StreamContext(Settings(distinct_scalar_writes=False))
    leaf = Node("x", 1, "number")
    Node("root", context=context).add_child(leaf)
    assert leaf.context is context
