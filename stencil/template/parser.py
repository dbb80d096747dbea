"""
Recursive-descent template parser.

Consumes the token stream and builds the node tree. Block tags are not
known to the parser: each tag name is resolved through the active
libraries and its factory is called with a handle back to the parser,
so compound constructs parse their own bodies with a stop-set.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple, Union

from .expressions import FilterExpression, FilterFunc, compile_filter_expression
from .library import Library, TagFactory
from .nodes import Node, NodeList, TextNode, VariableNode
from .protocols import LibraryLookup
from .registry import Precedence
from .stream import TokenStream
from .tokens import Token, TokenType
from ..errors import (
    InvalidFilterError,
    InvalidTagError,
    LibraryResolutionError,
    TemplateSyntaxError,
    UnclosedTagError,
)

logger = logging.getLogger(__name__)

StopSet = Union[str, Iterable[str]]

# Maximum number of block tags open at once
MAX_NESTING_DEPTH = 64


class Parser:
    """
    One parse session: a token stream, the active libraries and the
    tree under construction.

    The session owns its list of active libraries. It starts from the
    given base libraries and only grows through `load_lib`; shared
    libraries and registries are never modified.
    """

    def __init__(
        self,
        tokens: Iterable[Token],
        libraries: Iterable[Library] = (),
        lookup: Optional[LibraryLookup] = None,
        precedence: Precedence = Precedence.LATEST_WINS,
        origin: Optional[str] = None,
    ):
        """
        Args:
            tokens: Token sequence (usually the lazy lexer output)
            libraries: Base libraries, in load order
            lookup: Host capability resolving library names for `load_lib`
            precedence: Name-collision policy across active libraries
            origin: Template name for diagnostics
        """
        self._stream = TokenStream(tokens)
        self._libraries: List[Library] = list(libraries)
        self._lookup = lookup
        self.precedence = precedence
        self.origin = origin
        # Block tokens whose factories are currently running (innermost last)
        self._command_stack: List[Token] = []

    # Session state

    @property
    def libraries(self) -> Tuple[Library, ...]:
        """Active libraries in load order."""
        return tuple(self._libraries)

    @property
    def current_token(self) -> Token:
        if not self._command_stack:
            raise RuntimeError("No block tag is being compiled")
        return self._command_stack[-1]

    # Main loop

    def parse(self, stop_at: StopSet = ()) -> NodeList:
        """
        Parses tokens into a NodeList until a stop tag or the end.

        A block token whose tag name is in `stop_at` is put back into the
        stream and parsing returns, so the caller can inspect it.

        Args:
            stop_at: Tag names terminating this call (a single name is accepted)

        Returns:
            Nodes parsed by this call, in source order

        Raises:
            TemplateSyntaxError: On the first problem encountered
        """
        stop_set = (stop_at,) if isinstance(stop_at, str) else tuple(stop_at)
        nodes: List[Node] = []

        while self._stream.has_next():
            token = self._stream.next()

            if token.type is TokenType.TEXT:
                nodes.append(TextNode(token.content))

            elif token.type is TokenType.VARIABLE:
                if not token.content:
                    raise TemplateSyntaxError("Empty variable tag", line=token.line)
                nodes.append(VariableNode(self._compile_variable(token)))

            elif token.type is TokenType.COMMENT:
                continue

            elif token.type is TokenType.BLOCK:
                name = token.tag_name
                if not name:
                    raise TemplateSyntaxError("Empty block tag", line=token.line)
                if name in stop_set:
                    self._stream.prepend(token)
                    return NodeList(nodes)
                node = self._compile_block(token, name, stop_set)
                if node is not None:
                    nodes.append(node)

        if stop_set:
            raise self._unclosed(stop_set)

        if not self._command_stack:
            logger.debug(f"Parsed template {self.origin or '<string>'} into {len(nodes)} top-level nodes")
        return NodeList(nodes)

    def _compile_block(self, token: Token, name: str, stop_set: Tuple[str, ...]) -> Optional[Node]:
        factory = self._resolve_tag(name)
        if factory is None:
            raise InvalidTagError(name, line=token.line, expected=stop_set)
        if len(self._command_stack) >= MAX_NESTING_DEPTH:
            raise TemplateSyntaxError(
                f"Template nesting too deep (more than {MAX_NESTING_DEPTH} open block tags)",
                line=token.line,
            )

        self._command_stack.append(token)
        try:
            return factory(token.tag_content, self)
        except (TemplateSyntaxError, LibraryResolutionError) as e:
            # Innermost token wins: errors from nested bodies already carry a line
            if e.line is None:
                e.line = token.line
            raise
        finally:
            self._command_stack.pop()

    def _compile_variable(self, token: Token) -> FilterExpression:
        try:
            return self.compile_filter(token.content)
        except TemplateSyntaxError as e:
            if e.line is None:
                e.line = token.line
            raise

    def _unclosed(self, stop_set: Tuple[str, ...]) -> UnclosedTagError:
        if self._command_stack:
            opener = self._command_stack[-1]
            return UnclosedTagError(stop_set, tag=opener.tag_name, line=opener.line)
        return UnclosedTagError(stop_set, line=self._stream.last_line or None)

    # Token access for factories

    def next_token(self) -> Token:
        return self._stream.next()

    def has_next_token(self) -> bool:
        return self._stream.has_next()

    def prepend_token(self, token: Token) -> None:
        self._stream.prepend(token)

    def delete_next_token(self) -> None:
        self._stream.delete_next()

    def skip_past(self, tag_name: str) -> None:
        """
        Discards all tokens up to and including the block tag `tag_name`.

        Nothing on the way is dispatched, so the skipped region may
        contain tags that are not registered anywhere.

        Raises:
            UnclosedTagError: If the stream ends first
        """
        while self._stream.has_next():
            token = self._stream.next()
            if token.type is TokenType.BLOCK and token.tag_name == tag_name:
                return
        raise self._unclosed((tag_name,))

    # Libraries

    def load_lib(self, name: str) -> Library:
        """
        Activates a library for the remainder of this session.

        The library becomes the most recently loaded one; loading an
        already active library moves it to that position.

        Raises:
            LibraryResolutionError: If the name cannot be resolved
        """
        if self._lookup is None:
            raise LibraryResolutionError(name, "no library lookup configured")

        library = self._lookup(name)
        self._libraries = [lib for lib in self._libraries if lib is not library]
        self._libraries.append(library)
        logger.debug(f"Loaded library '{name}' ({len(self._libraries)} active)")
        return library

    def _iter_active(self) -> Iterable[Library]:
        if self.precedence is Precedence.LATEST_WINS:
            return reversed(self._libraries)
        return iter(self._libraries)

    def _resolve_tag(self, name: str) -> Optional[TagFactory]:
        for library in self._iter_active():
            factory = library.tags.get(name)
            if factory is not None:
                return factory
        return None

    def find_tag(self, name: str) -> TagFactory:
        """
        Resolves a tag factory across the active libraries.

        Raises:
            InvalidTagError: If no active library defines the tag
        """
        factory = self._resolve_tag(name)
        if factory is None:
            raise InvalidTagError(name)
        return factory

    def get_filter(self, name: str) -> FilterFunc:
        """
        Resolves a filter across the active libraries.

        Raises:
            InvalidFilterError: If no active library defines the filter
        """
        for library in self._iter_active():
            func = library.filters.get(name)
            if func is not None:
                return func
        raise InvalidFilterError(name)

    def compile_filter(self, source: str) -> FilterExpression:
        return compile_filter_expression(source, self.get_filter)


def parse_tokens(
    tokens: Iterable[Token],
    libraries: Iterable[Library] = (),
    lookup: Optional[LibraryLookup] = None,
    precedence: Precedence = Precedence.LATEST_WINS,
) -> NodeList:
    """Runs one complete parse session over a token sequence."""
    return Parser(tokens, libraries, lookup=lookup, precedence=precedence).parse()


__all__ = ["Parser", "parse_tokens", "StopSet", "MAX_NESTING_DEPTH"]
