"""
Base exceptions for user-facing errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) inherit from StencilError.

Programming errors and bugs should NOT inherit from StencilError;
they propagate with full tracebacks.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple


class StencilError(Exception):
    """
    Base class for all user-facing errors in stencil.

    These errors indicate problems the template author or the host
    application can fix: bad template syntax, unknown libraries,
    missing templates, invalid configuration.
    """
    pass


class TemplateSyntaxError(StencilError):
    """
    Template could not be compiled.

    Carries the line of the offending token and, where applicable,
    the tag or filter name that could not be handled. The line may be
    attached later by the parser when the error is raised by a tag
    factory that does not know its own position.
    """

    def __init__(self, message: str, line: Optional[int] = None, name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.name = name

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line})"


class ScanError(TemplateSyntaxError):
    """Malformed or unterminated delimiter in the template source."""
    pass


class InvalidTagError(TemplateSyntaxError):
    """Block tag name not registered in any active library."""

    def __init__(self, name: str, line: Optional[int] = None, expected: Iterable[str] = ()):
        self.expected: Tuple[str, ...] = tuple(expected)
        message = f"Invalid block tag '{name}'"
        if self.expected:
            message += f", expected {_quoted_choice(self.expected)}"
        message += ". Did you forget to register or load this tag?"
        super().__init__(message, line=line, name=name)


class InvalidFilterError(TemplateSyntaxError):
    """Filter name not registered in any active library."""

    def __init__(self, name: str, line: Optional[int] = None):
        super().__init__(f"Invalid filter '{name}'", line=line, name=name)


class UnexpectedEndError(TemplateSyntaxError):
    """Token stream ended while more tokens were required."""

    def __init__(self, message: str = "Unexpected end of template", line: Optional[int] = None,
                 name: Optional[str] = None):
        super().__init__(message, line=line, name=name)


class UnclosedTagError(UnexpectedEndError):
    """A block was opened but none of its terminators was found."""

    def __init__(self, expected: Iterable[str], tag: Optional[str] = None, line: Optional[int] = None):
        self.expected: Tuple[str, ...] = tuple(expected)
        self.tag = tag
        opened = f"Unclosed tag '{tag}'" if tag else "Unclosed block"
        super().__init__(
            f"{opened}. Looking for one of: {', '.join(self.expected)}",
            line=line,
            name=tag,
        )


class LibraryResolutionError(StencilError):
    """Library name could not be resolved by the host."""

    def __init__(self, name: str, reason: str = "", line: Optional[int] = None):
        self.name = name
        self.reason = reason
        self.line = line
        self.message = f"Library '{name}' not found"
        if reason:
            self.message += f": {reason}"
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line})"


class VariableDoesNotExist(StencilError):
    """Lookup of a template variable failed at render time."""

    def __init__(self, path: str, segment: Optional[str] = None):
        self.path = path
        self.segment = segment
        if segment and segment != path:
            super().__init__(f"Failed lookup for '{segment}' in '{path}'")
        else:
            super().__init__(f"Failed lookup for '{path}'")


class TemplateNotFound(StencilError):
    """Template name not found in any configured directory."""

    def __init__(self, name: str, searched: Iterable[str] = ()):
        self.name = name
        self.searched = list(searched)
        message = f"Template '{name}' not found"
        if self.searched:
            message += f". Searched: {', '.join(self.searched)}"
        super().__init__(message)


class ConfigError(StencilError):
    """Engine configuration is malformed."""
    pass


def _quoted_choice(names: Tuple[str, ...]) -> str:
    quoted = [f"'{n}'" for n in names]
    if len(quoted) == 1:
        return quoted[0]
    return f"{', '.join(quoted[:-1])} or {quoted[-1]}"


__all__ = [
    "StencilError",
    "TemplateSyntaxError",
    "ScanError",
    "InvalidTagError",
    "InvalidFilterError",
    "UnexpectedEndError",
    "UnclosedTagError",
    "LibraryResolutionError",
    "VariableDoesNotExist",
    "TemplateNotFound",
    "ConfigError",
]
