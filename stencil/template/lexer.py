"""
Lexical analyzer for templates.

Splits template source into TEXT, VARIABLE, BLOCK and COMMENT tokens.
Tokenization is lazy: tokens are produced on demand, so a malformed
delimiter late in the source is reported only once the parser gets there.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterator, Tuple

from .tokens import Token, TokenType
from ..errors import ScanError

logger = logging.getLogger(__name__)

VARIABLE_TAG_START = "{{"
VARIABLE_TAG_END = "}}"
BLOCK_TAG_START = "{%"
BLOCK_TAG_END = "%}"
COMMENT_TAG_START = "{#"
COMMENT_TAG_END = "#}"


class TemplateLexer:
    """
    Template lexer.

    Text outside delimiters is passed through byte for byte. Inside
    delimiters the first closing sequence wins: delimiters do not nest
    and there is no escaping at this level.
    """

    # opener -> (closer, token type)
    DELIMITERS: Dict[str, Tuple[str, TokenType]] = {
        VARIABLE_TAG_START: (VARIABLE_TAG_END, TokenType.VARIABLE),
        BLOCK_TAG_START: (BLOCK_TAG_END, TokenType.BLOCK),
        COMMENT_TAG_START: (COMMENT_TAG_END, TokenType.COMMENT),
    }

    _OPEN_RE = re.compile(r"\{[{%#]")

    def tokenize(self, source: str) -> Iterator[Token]:
        """
        Lazily tokenizes template source.

        Args:
            source: Template source text

        Yields:
            Tokens in source order

        Raises:
            ScanError: When an opening delimiter has no matching closer
        """
        position = 0
        line = 1
        length = len(source)
        count = 0

        while position < length:
            match = self._OPEN_RE.search(source, position)
            if match is None:
                count += 1
                yield Token(TokenType.TEXT, source[position:], line, source[position:])
                break

            start = match.start()
            if start > position:
                text = source[position:start]
                count += 1
                yield Token(TokenType.TEXT, text, line, text)
                line += text.count("\n")

            opener = match.group(0)
            closer, token_type = self.DELIMITERS[opener]
            end = source.find(closer, start + len(opener))
            if end == -1:
                raise ScanError(
                    f"Unclosed '{opener}' delimiter, expected '{closer}'",
                    line=line,
                )

            raw = source[start:end + len(closer)]
            count += 1
            yield Token(token_type, raw[len(opener):-len(closer)].strip(), line, raw)
            line += raw.count("\n")
            position = end + len(closer)

        logger.debug(f"Tokenized {length} characters into {count} tokens")


def tokenize(source: str) -> Iterator[Token]:
    """Shortcut for TemplateLexer().tokenize(source)."""
    return TemplateLexer().tokenize(source)


__all__ = [
    "TemplateLexer",
    "tokenize",
    "VARIABLE_TAG_START",
    "VARIABLE_TAG_END",
    "BLOCK_TAG_START",
    "BLOCK_TAG_END",
    "COMMENT_TAG_START",
    "COMMENT_TAG_END",
]
