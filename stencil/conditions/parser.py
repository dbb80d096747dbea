"""
Recursive-descent parser for `if` tag conditions.

Grammar:
expression  → or_expr
or_expr     → and_expr ("or" and_expr)*
and_expr    → not_expr ("and" not_expr)*
not_expr    → "not" not_expr | comparison
comparison  → primary (COMPARE_OP operand)?
primary     → "(" expression ")" | operand
COMPARE_OP  → "==" | "!=" | "<" | ">" | "<=" | ">=" | "in" | "not" "in"
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from .lexer import ConditionLexer, Token
from .model import (
    BinaryCondition,
    ComparisonCondition,
    Condition,
    ConditionType,
    GroupCondition,
    NotCondition,
    OperandCondition,
)
from ..errors import TemplateSyntaxError
from ..template.expressions import FilterExpression

# Compiles an operand (with its filter pipeline) at parse time
OperandCompiler = Callable[[str], FilterExpression]

# Maximum nesting of groups and "not" inside one condition
MAX_CONDITION_DEPTH = 32


class ConditionSyntaxError(TemplateSyntaxError):
    """Malformed `if` condition."""

    def __init__(self, message: str, position: int, line: Optional[int] = None):
        self.position = position
        super().__init__(f"Condition error at position {position}: {message}", line=line)


class ConditionParser:
    """
    Parses condition strings into a Condition tree.

    Operands are compiled through the supplied compiler, so unknown
    filters inside a condition fail while the template is parsed.
    """

    def __init__(self, compile_operand: OperandCompiler):
        self.lexer = ConditionLexer()
        self.compile_operand = compile_operand
        self._tokens: List[Token] = []
        self._position = 0
        self._depth = 0

    def parse(self, condition_str: str) -> Condition:
        """
        Parses a condition string.

        Raises:
            ConditionSyntaxError: On syntax errors
            TemplateSyntaxError: On operands that fail to compile
        """
        try:
            self._tokens = self.lexer.tokenize(condition_str)
        except ValueError as e:
            raise ConditionSyntaxError(str(e), 0) from e
        self._position = 0
        self._depth = 0

        if self._is_at_end():
            raise ConditionSyntaxError("Empty condition", 0)

        result = self._parse_expression()

        if not self._is_at_end():
            current = self._current_token()
            raise ConditionSyntaxError(f"Unexpected token '{current.value}'", current.position)

        return result

    def _parse_expression(self) -> Condition:
        return self._parse_or_expression()

    def _parse_or_expression(self) -> Condition:
        left = self._parse_and_expression()

        while self._match_keyword("or"):
            right = self._parse_and_expression()
            left = BinaryCondition(left=left, right=right, operator=ConditionType.OR)

        return left

    def _parse_and_expression(self) -> Condition:
        left = self._parse_not_expression()

        while self._match_keyword("and"):
            right = self._parse_not_expression()
            left = BinaryCondition(left=left, right=right, operator=ConditionType.AND)

        return left

    def _parse_not_expression(self) -> Condition:
        # Right-associative: not not x
        if self._match_keyword("not"):
            with self._nested():
                return NotCondition(condition=self._parse_not_expression())
        return self._parse_comparison()

    def _parse_comparison(self) -> Condition:
        primary = self._parse_primary()

        operator = self._match_comparison_operator()
        if operator is None:
            return primary

        if not isinstance(primary, OperandCondition):
            raise ConditionSyntaxError(
                f"Left side of '{operator}' must be a single operand", self._current_position()
            )
        right = self._consume_operand(f"Expected operand after '{operator}'")
        return ComparisonCondition(left=primary.expression, operator=operator, right=right)

    def _parse_primary(self) -> Condition:
        if self._match_symbol("("):
            with self._nested():
                expr = self._parse_expression()
            if not self._match_symbol(")"):
                raise ConditionSyntaxError("Expected ')' after grouped expression", self._current_position())
            return GroupCondition(condition=expr)

        current = self._current_token()
        if current.type == 'OPERAND':
            return OperandCondition(expression=self._consume_operand("Expected operand"))

        if current.type == 'EOF':
            raise ConditionSyntaxError("Unexpected end of expression", current.position)
        raise ConditionSyntaxError(f"Unexpected token '{current.value}'", current.position)

    @contextmanager
    def _nested(self) -> Iterator[None]:
        if self._depth >= MAX_CONDITION_DEPTH:
            raise ConditionSyntaxError("Condition nesting too deep", self._current_position())
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    # Token helpers

    def _current_token(self) -> Token:
        if self._position >= len(self._tokens):
            return Token(type='EOF', value='', position=len(self._tokens))
        return self._tokens[self._position]

    def _peek_token(self, offset: int = 1) -> Token:
        index = self._position + offset
        if index >= len(self._tokens):
            return Token(type='EOF', value='', position=len(self._tokens))
        return self._tokens[index]

    def _current_position(self) -> int:
        return self._current_token().position

    def _is_at_end(self) -> bool:
        return self._current_token().type == 'EOF'

    def _advance(self) -> Token:
        token = self._current_token()
        if not self._is_at_end():
            self._position += 1
        return token

    def _match_keyword(self, keyword: str) -> bool:
        current = self._current_token()
        if current.type == 'KEYWORD' and current.value == keyword:
            self._advance()
            return True
        return False

    def _match_symbol(self, symbol: str) -> bool:
        current = self._current_token()
        if current.type == 'SYMBOL' and current.value == symbol:
            self._advance()
            return True
        return False

    def _match_comparison_operator(self) -> Optional[str]:
        current = self._current_token()
        if current.type == 'OPERATOR':
            self._advance()
            return current.value
        if current.type == 'KEYWORD' and current.value == 'in':
            self._advance()
            return 'in'
        if current.type == 'KEYWORD' and current.value == 'not':
            following = self._peek_token()
            if following.type == 'KEYWORD' and following.value == 'in':
                self._advance()
                self._advance()
                return 'not in'
        return None

    def _consume_operand(self, error_message: str) -> FilterExpression:
        current = self._current_token()
        if current.type != 'OPERAND':
            raise ConditionSyntaxError(error_message, current.position)
        self._advance()
        return self.compile_operand(current.value)


__all__ = ["ConditionParser", "ConditionSyntaxError", "OperandCompiler", "MAX_CONDITION_DEPTH"]
