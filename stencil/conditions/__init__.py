"""
Condition language of the `if` tag.

Boolean expressions over template operands:
`not`, `and`, `or`, parentheses and comparisons
(==, !=, <, >, <=, >=, in, not in).
"""

from __future__ import annotations

from .evaluator import ConditionEvaluator, EvaluationError
from .lexer import ConditionLexer
from .model import (
    BinaryCondition,
    ComparisonCondition,
    Condition,
    ConditionType,
    GroupCondition,
    NotCondition,
    OperandCondition,
)
from .parser import ConditionParser, ConditionSyntaxError

__all__ = [
    "ConditionEvaluator",
    "EvaluationError",
    "ConditionLexer",
    "BinaryCondition",
    "ComparisonCondition",
    "Condition",
    "ConditionType",
    "GroupCondition",
    "NotCondition",
    "OperandCondition",
    "ConditionParser",
    "ConditionSyntaxError",
]
