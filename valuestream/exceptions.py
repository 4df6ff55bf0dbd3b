"""
ValueStream Exceptions
======================

Structural errors raised at the call site. These signal misuse of the
construction surface (bad names, wrong node mode, meaningless projections);
runtime data problems never raise and flow through a node's error channel
instead.
"""


class ValueStreamError(Exception):
    """Base class for structural errors."""

    pass


class InvalidNameError(ValueStreamError, ValueError):
    """Raised when a child or action name is not a bare identifier or is taken."""

    pass


class NodeModeError(ValueStreamError, TypeError):
    """Raised when an operation needs a composite node but got a scalar."""

    pass


class ProjectionError(ValueStreamError, KeyError):
    """Raised when a projection names something that is not a direct child."""

    pass


class UnknownTypeError(ValueStreamError, ValueError):
    """Raised in strict mode when a type tag has no registered check."""

    pass


class InvalidValueError(ValueStreamError, ValueError):
    """Raised when a scalar node is constructed with a value its validator rejects."""

    pass
