"""
Token stream with pushback.

Wraps the lazy token iterator produced by the lexer and lets the parser
(and tag factories) read one token at a time, look ahead and put tokens
back at the front.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Iterator, Optional

from .tokens import Token
from ..errors import UnexpectedEndError


class TokenStream:
    """
    Finite, non-restartable token sequence with a pushback buffer.

    Pushed-back tokens are returned before anything else, most recently
    pushed first.
    """

    def __init__(self, tokens: Iterable[Token]):
        self._source: Iterator[Token] = iter(tokens)
        self._pending: Deque[Token] = deque()
        # Line of the last token handed out, for end-of-stream diagnostics
        self.last_line = 0

    def _fill(self) -> bool:
        """Makes sure at least one token is buffered. Returns False at the end."""
        if self._pending:
            return True
        token = next(self._source, None)
        if token is None:
            return False
        self._pending.append(token)
        return True

    def has_next(self) -> bool:
        """Checks whether another token is available."""
        return self._fill()

    def peek(self) -> Optional[Token]:
        """Returns the next token without consuming it, or None at the end."""
        if not self._fill():
            return None
        return self._pending[0]

    def next(self) -> Token:
        """
        Consumes and returns the next token.

        Raises:
            UnexpectedEndError: If the stream is exhausted
        """
        if not self._fill():
            raise UnexpectedEndError(line=self.last_line or None)
        token = self._pending.popleft()
        self.last_line = token.line
        return token

    def prepend(self, token: Token) -> None:
        """Puts a token back at the front of the stream."""
        self._pending.appendleft(token)

    def delete_next(self) -> None:
        """
        Discards the next token.

        Raises:
            UnexpectedEndError: If the stream is exhausted
        """
        self.next()

    def __iter__(self) -> Iterator[Token]:
        while self.has_next():
            yield self.next()


__all__ = ["TokenStream"]
