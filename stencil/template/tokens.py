"""
Lexical types of the template language.

A template is split into four kinds of tokens: literal text,
variable expressions, block tags and comments.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import List


class TokenType(enum.Enum):
    """Kinds of template tokens."""
    TEXT = "TEXT"
    VARIABLE = "VARIABLE"    # {{ ... }}
    BLOCK = "BLOCK"          # {% ... %}
    COMMENT = "COMMENT"      # {# ... #}


# Whitespace-separated bits; quoted runs stay together
_SPLIT_RE = re.compile(r"""
    ((?:
        [^\s'"]*
        (?:
            (?:"(?:[^"\\]|\\.)*" | '(?:[^'\\]|\\.)*')
            [^\s'"]*
        )+
    ) | \S+)
""", re.VERBOSE)


@dataclass(frozen=True)
class Token:
    """
    Template token with its source line for error diagnostics.

    `content` is the stripped text between delimiters for VARIABLE,
    BLOCK and COMMENT tokens, and the literal text for TEXT tokens.
    `raw` is the exact source slice including delimiters.
    """
    type: TokenType
    content: str
    line: int            # Line number (1-based)
    raw: str = ""

    @property
    def tag_name(self) -> str:
        """First word of a block tag, or empty string."""
        bits = self.content.split(None, 1)
        return bits[0] if bits else ""

    @property
    def tag_content(self) -> str:
        """Block tag content with the tag name split off."""
        bits = self.content.split(None, 1)
        return bits[1].strip() if len(bits) > 1 else ""

    def split_contents(self) -> List[str]:
        """Splits the content on whitespace, keeping quoted strings intact."""
        return split_contents(self.content)

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.content[:20]!r}, line {self.line})"


def split_contents(text: str) -> List[str]:
    """
    Splits text on whitespace without breaking quoted substrings.

    >>> split_contents('with greeting="hello world" name=user')
    ['with', 'greeting="hello world"', 'name=user']
    """
    return [m.group(0) for m in _SPLIT_RE.finditer(text)]


__all__ = ["TokenType", "Token", "split_contents"]
