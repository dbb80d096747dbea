"""
Lexer for `if` tag conditions.

Splits a condition into:
- keywords (and, or, not, in)
- comparison operators (==, !=, <=, >=, <, >)
- parentheses
- operands (literals or lookups, possibly followed by a filter pipeline)
Whitespace is dropped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List


@dataclass
class Token:
    """
    Condition token.

    Attributes:
        type: KEYWORD, OPERATOR, SYMBOL, OPERAND or EOF
        value: Token text
        position: Offset in the condition string
    """
    type: str
    value: str
    position: int

    def __repr__(self):
        return f"Token({self.type}, '{self.value}', pos={self.position})"


# Quoted strings may contain anything, including spaces and operator characters
_QUOTED = r'"[^"\\]*(?:\\.[^"\\]*)*"|\'[^\'\\]*(?:\\.[^\'\\]*)*\''


class ConditionLexer:
    """
    Splits a condition string into tokens.

    Operands swallow `|filter:arg` suffixes, so `name|lower == "x"`
    yields three tokens.
    """

    # (regex pattern, token type, ignore flag)
    TOKEN_SPECS = [
        (r'\s+', 'WHITESPACE', True),
        (r'\(|\)', 'SYMBOL', False),
        (r'==|!=|<=|>=|<|>', 'OPERATOR', False),
        (rf'(?:{_QUOTED}|[^\s()=!<>"\'])+', 'OPERAND', False),
        (r'.', 'UNKNOWN', False),
    ]

    KEYWORDS = {'and', 'or', 'not', 'in'}

    def __init__(self):
        self._compiled_patterns = [
            (re.compile(pattern), token_type, ignore)
            for pattern, token_type, ignore in self.TOKEN_SPECS
        ]

    def tokenize(self, text: str) -> List[Token]:
        """
        Splits the text into tokens, ending with EOF.

        Raises:
            ValueError: On a character that cannot start any token
        """
        tokens: List[Token] = []
        position = 0

        while position < len(text):
            for pattern, token_type, ignore in self._compiled_patterns:
                match = pattern.match(text, position)
                if not match:
                    continue

                value = match.group(0)
                if not ignore:
                    if token_type == 'UNKNOWN':
                        raise ValueError(f"Unexpected character '{value}' at position {position}")

                    final_type = token_type
                    if token_type == 'OPERAND' and value in self.KEYWORDS:
                        final_type = 'KEYWORD'
                    tokens.append(Token(type=final_type, value=value, position=position))

                position = match.end()
                break

        tokens.append(Token(type='EOF', value='', position=position))
        return tokens


__all__ = ["Token", "ConditionLexer"]
