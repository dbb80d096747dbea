"""
Default filters.

Registered with every engine under the name "defaultfilters" and active
in each template as a builtin.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .template.library import Library

logger = logging.getLogger(__name__)

library = Library("defaultfilters")


# String filters

@library.filter
def upper(value: Any) -> str:
    return str(value).upper()


@library.filter
def lower(value: Any) -> str:
    return str(value).lower()


@library.filter
def title(value: Any) -> str:
    return str(value).title()


@library.filter
def capfirst(value: Any) -> str:
    """Capitalizes the first character of the value."""
    text = str(value)
    return text[:1].upper() + text[1:]


@library.filter
def cut(value: Any, arg: Any) -> str:
    """Removes all occurrences of arg from the value."""
    return str(value).replace(str(arg), "")


@library.filter
def truncatechars(value: Any, arg: Any) -> str:
    """
    Truncates a string after `arg` characters.

    The result ends with an ellipsis and never exceeds `arg` characters.
    A non-integer length leaves the value untouched.
    """
    try:
        length = int(arg)
    except (TypeError, ValueError):
        return value
    text = str(value)
    if len(text) <= length:
        return text
    if length <= 0:
        return ""
    return text[:length - 1] + "…"


# Defaults

@library.filter
def default(value: Any, arg: Any) -> Any:
    """Uses arg when the value is falsy."""
    return value or arg


@library.filter
def default_if_none(value: Any, arg: Any) -> Any:
    """Uses arg only when the value is None."""
    return arg if value is None else value


# Sequences

@library.filter
def length(value: Any) -> int:
    try:
        return len(value)
    except TypeError:
        return 0


@library.filter
def join(value: Any, arg: Any) -> Any:
    """Joins a sequence with arg as separator, like str.join."""
    try:
        return str(arg).join(str(item) for item in value)
    except TypeError:
        return value


@library.filter
def first(value: Any) -> Any:
    try:
        return value[0]
    except (IndexError, KeyError, TypeError):
        return ""


@library.filter
def last(value: Any) -> Any:
    try:
        return value[-1]
    except (IndexError, KeyError, TypeError):
        return ""


# Arithmetic and choice

@library.filter
def add(value: Any, arg: Any) -> Any:
    """
    Adds arg to the value.

    Integers are tried first, then plain `+`; incompatible operands
    produce an empty string.
    """
    try:
        return int(value) + int(arg)
    except (TypeError, ValueError):
        try:
            return value + arg
        except TypeError:
            logger.debug(f"add: cannot add {type(arg).__name__} to {type(value).__name__}")
            return ""


@library.filter
def yesno(value: Any, arg: Optional[str] = None) -> Any:
    """
    Maps True, False and None to custom strings.

    Usage:
        {{ flag|yesno:"on,off,unknown" }}

    With only two choices None maps to the second one. A malformed
    argument leaves the value untouched.
    """
    bits = (arg if arg is not None else "yes,no,maybe").split(",")
    if len(bits) < 2:
        return value
    if len(bits) == 2:
        yes, no, maybe = bits[0], bits[1], bits[1]
    else:
        yes, no, maybe = bits[:3]
    if value is None:
        return maybe
    return yes if value else no


__all__ = ["library"]
