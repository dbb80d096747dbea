"""
Evaluator of `if` tag conditions.

Walks a Condition tree and computes its truth value against a render
context.
"""

from __future__ import annotations

import operator
from typing import Any, Callable, Dict, cast

from .model import (
    BinaryCondition,
    ComparisonCondition,
    Condition,
    ConditionType,
    GroupCondition,
    NotCondition,
    OperandCondition,
)


class EvaluationError(Exception):
    """Condition tree contains an unknown node type."""
    pass


_COMPARATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
    "in": lambda left, right: left in right,
    "not in": lambda left, right: left not in right,
}


class ConditionEvaluator:
    """
    Computes the boolean value of a condition.

    Operands that fail to resolve evaluate as None. A comparison whose
    operands cannot be compared (TypeError) is false.
    """

    def __init__(self, context: Any):
        """
        Args:
            context: Render context used to resolve operands
        """
        self.context = context

    def evaluate(self, condition: Condition) -> bool:
        condition_type = condition.get_type()

        if condition_type == ConditionType.OPERAND:
            return self._evaluate_operand(cast(OperandCondition, condition))
        elif condition_type == ConditionType.COMPARISON:
            return self._evaluate_comparison(cast(ComparisonCondition, condition))
        elif condition_type == ConditionType.GROUP:
            return self.evaluate(cast(GroupCondition, condition).condition)
        elif condition_type == ConditionType.NOT:
            return not self.evaluate(cast(NotCondition, condition).condition)
        elif condition_type == ConditionType.AND:
            binary = cast(BinaryCondition, condition)
            return self.evaluate(binary.left) and self.evaluate(binary.right)
        elif condition_type == ConditionType.OR:
            binary = cast(BinaryCondition, condition)
            return self.evaluate(binary.left) or self.evaluate(binary.right)
        else:
            raise EvaluationError(f"Unknown condition type: {condition_type}")

    def _evaluate_operand(self, condition: OperandCondition) -> bool:
        return bool(condition.expression.resolve(self.context, ignore_failures=True))

    def _evaluate_comparison(self, condition: ComparisonCondition) -> bool:
        left = condition.left.resolve(self.context, ignore_failures=True)
        right = condition.right.resolve(self.context, ignore_failures=True)
        try:
            return bool(_COMPARATORS[condition.operator](left, right))
        except TypeError:
            return False


__all__ = ["ConditionEvaluator", "EvaluationError"]
