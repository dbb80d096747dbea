"""
Protocols between the parser core and its extensions.

Tag factories only see the parser through ParserHandle, which keeps
them independent from parser internals and easy to drive from tests
with a stub.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Protocol, runtime_checkable

from .expressions import FilterExpression, FilterFunc
from .tokens import Token

if TYPE_CHECKING:
    from .library import Library, TagFactory
    from .nodes import NodeList


@runtime_checkable
class ParserHandle(Protocol):
    """
    Narrow parser interface handed to tag factories.

    Factories call back into the parser to consume their body
    (`parse` with their own stop-set), to skip raw regions, to inspect or
    put back single tokens and to load further libraries.
    """

    @property
    def current_token(self) -> Token:
        """Block token whose factory is currently running."""
        ...

    def parse(self, stop_at: Iterable[str] = ()) -> NodeList:
        """
        Parses until a block tag named in `stop_at`.

        The stopping token is left in the stream.

        Raises:
            UnclosedTagError: If the stream ends before a stop tag
        """
        ...

    def skip_past(self, tag_name: str) -> None:
        """Discards tokens up to and including the block tag `tag_name`."""
        ...

    def next_token(self) -> Token:
        ...

    def has_next_token(self) -> bool:
        ...

    def prepend_token(self, token: Token) -> None:
        ...

    def delete_next_token(self) -> None:
        ...

    def load_lib(self, name: str) -> Library:
        """Activates a library for the rest of the session."""
        ...

    def get_filter(self, name: str) -> FilterFunc:
        ...

    def find_tag(self, name: str) -> TagFactory:
        ...

    def compile_filter(self, source: str) -> FilterExpression:
        """Compiles `operand|filter:arg|...` with parse-time filter lookup."""
        ...


@runtime_checkable
class LibraryLookup(Protocol):
    """Host capability resolving a library name; raises LibraryResolutionError."""

    def __call__(self, name: str) -> Library:
        ...


__all__ = ["ParserHandle", "LibraryLookup"]
