"""
ValueStream - Hierarchical Observable State
===========================================

A tree of named value slots with validated writes, dispatchable actions,
transactions that coalesce emissions, and a two-channel (value + error)
subscription protocol.
"""

__version__ = "0.1.0"

from .config import Settings
from .context import (
    StreamContext,
    _reset_default_context,
    configure,
    get_default_context,
)
from .dispatch import Action, ActionTable, BoundAction, ResultKind, classify, perform
from .exceptions import (
    InvalidNameError,
    InvalidValueError,
    NodeModeError,
    ProjectionError,
    UnknownTypeError,
    ValueStreamError,
)
from .naming import cap_first, is_valid_name
from .node import ABSENT, Node
from .projection import project
from .transaction import Transaction
from .validation import SCALAR_TYPES, TYPE_CHECKS, type_test_for

__all__ = [
    # Core
    "Node",
    "ABSENT",
    "Transaction",
    "project",
    # Actions
    "Action",
    "ActionTable",
    "BoundAction",
    "ResultKind",
    "classify",
    "perform",
    # Validation and naming
    "type_test_for",
    "TYPE_CHECKS",
    "SCALAR_TYPES",
    "cap_first",
    "is_valid_name",
    # Configuration
    "Settings",
    "StreamContext",
    "configure",
    "get_default_context",
    # Exceptions
    "ValueStreamError",
    "InvalidNameError",
    "InvalidValueError",
    "NodeModeError",
    "ProjectionError",
    "UnknownTypeError",
    # Testing utilities (internal use)
    "_reset_default_context",
]
