"""
ValueStream Validation - Type Tags and Predicates
=================================================

This module resolves the ``type`` argument of a scalar node into a validator:
a function ``value -> error message | False``.

A type may be given as:

- **a type tag** such as ``"number"`` or ``"string"`` (see TYPE_CHECKS)
- **a class** such as ``int``; values must be instances of it
- **a predicate** ``value -> message | falsy`` for custom rules; a predicate
  taking two positional arguments also receives the field name

Unknown tags produce a validator that accepts everything, after logging a
warning, unless the caller asks for strict resolution.

Example:
    >>> check = type_test_for("integer", "count")
    >>> check(3)
    False
    >>> check(3.5)
    'count must be a integer'
"""

import inspect
import logging
import numbers
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional, Union

from .exceptions import UnknownTypeError

Validator = Callable[[Any], Union[str, bool]]
Predicate = Callable[..., Any]


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


TYPE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "string": lambda value: isinstance(value, str),
    "number": _is_number,
    "int": _is_integer,
    "integer": _is_integer,
    "bool": lambda value: isinstance(value, bool),
    "boolean": lambda value: isinstance(value, bool),
    "array": lambda value: isinstance(value, (list, tuple)),
    "list": lambda value: isinstance(value, list),
    "object": lambda value: isinstance(value, Mapping),
    "dict": lambda value: isinstance(value, Mapping),
    "set": lambda value: isinstance(value, (set, frozenset)),
    "function": callable,
    "fn": callable,
    "none": lambda value: value is None,
}

# Writes of an equal value to nodes of these types are not emitted.
SCALAR_TYPES = frozenset(
    {"string", "number", "int", "integer", "bool", "boolean", str, int, float, bool}
)


def _always_valid(value: Any) -> bool:
    return False


def _accepts_name(predicate: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(predicate)
    except (TypeError, ValueError):
        return False
    try:
        signature.bind(None, None)
    except TypeError:
        return False
    return True


def is_scalar_type(type_: Any) -> bool:
    """True if type_ names one of the fixed scalar types."""
    try:
        return type_ in SCALAR_TYPES
    except TypeError:
        return False


def type_test_for(type_: Any, name: str, strict: bool = False) -> Validator:
    """
    Resolve a type tag, class or predicate into a validator for field name.

    Args:
        type_: Tag string, class, predicate, or None for no validation.
        name: Field name used in error messages and passed to two-argument
            predicates.
        strict: Raise UnknownTypeError for unknown tags instead of passing.

    Returns:
        A function returning an error message for bad values, else False.
    """
    if not type_:
        return _always_valid

    if isinstance(type_, type):

        def check_instance(value: Any) -> Union[str, bool]:
            if not isinstance(value, type_):
                return f"{name} must be a {type_.__name__}"
            return False

        return check_instance

    if callable(type_):
        takes_name = _accepts_name(type_)

        def check_predicate(value: Any) -> Union[str, bool]:
            if takes_name:
                return type_(value, name) or False
            return type_(value) or False

        return check_predicate

    if isinstance(type_, str) and type_ in TYPE_CHECKS:
        check = TYPE_CHECKS[type_]

        def check_tag(value: Any) -> Union[str, bool]:
            if not check(value):
                return f"{name} must be a {type_}"
            return False

        return check_tag

    if strict:
        raise UnknownTypeError(f"cannot find a type check named {type_!r}")
    logging.warning(f"type_test_for: no type check for {type_!r}; {name} accepts any value")
    return _always_valid


def range_test(
    type_: Any,
    name: str,
    min: Optional[float] = None,
    max: Optional[float] = None,
    strict: bool = False,
) -> Validator:
    """Validator combining a type check with inclusive bounds."""
    type_check = type_test_for(type_, name, strict)

    def check_range(value: Any) -> Union[str, bool]:
        error = type_check(value)
        if error:
            return error
        if min is not None and not value >= min:
            return f"{name} must be >= {min}"
        if max is not None and not value <= max:
            return f"{name} must be <= {max}"
        return False

    return check_range


def clamp(value: Any, min: Optional[float] = None, max: Optional[float] = None) -> Any:
    """Clamp a number into [min, max]; non-numbers pass through."""
    if not _is_number(value):
        return value
    if min is not None:
        value = value if value >= min else min
    if max is not None:
        value = value if value <= max else max
    return value
