"""Identifier rules for child and action names."""

import re
from typing import Any

from .exceptions import InvalidNameError

NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_valid_name(name: Any) -> bool:
    """True if name is a non-empty bare identifier."""
    return isinstance(name, str) and NAME_PATTERN.match(name) is not None


def check_name(name: Any, owner: str, kind: str = "name") -> str:
    """Return name unchanged, or raise InvalidNameError naming the owner."""
    if not is_valid_name(name):
        raise InvalidNameError(f"cannot add to {owner} - bad {kind} {name!r}")
    return name


def cap_first(name: str, prefix: str = "") -> str:
    """
    Capitalize the first letter of name and prepend prefix.

    Example:
        >>> cap_first("x", "set")
        'setX'
        >>> cap_first("firstName")
        'FirstName'
    """
    if not (name and isinstance(name, str)):
        raise InvalidNameError(f"cap_first: bad input {name!r}")
    return prefix + name[0].upper() + name[1:]


def action_name(child_name: str, prefix: str) -> str:
    """Generated action name for a child, e.g. ("x", "set") -> "setX"."""
    return check_name(cap_first(child_name, prefix), child_name, "action name")
