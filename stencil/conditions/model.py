"""
Data model of `if` tag conditions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from ..template.expressions import FilterExpression


class ConditionType(Enum):
    """Kinds of condition nodes."""
    OPERAND = "operand"
    COMPARISON = "comparison"
    AND = "and"
    OR = "or"
    NOT = "not"
    GROUP = "group"  # explicit parentheses


@dataclass(frozen=True)
class Condition(ABC):
    """Base class of all condition nodes."""

    @abstractmethod
    def get_type(self) -> ConditionType:
        pass

    def __str__(self) -> str:
        return self._to_string()

    @abstractmethod
    def _to_string(self) -> str:
        pass


@dataclass(frozen=True)
class OperandCondition(Condition):
    """
    Bare operand: `user.is_admin`, `items|length`.

    True when the resolved value is truthy; unresolvable values are false.
    """
    expression: FilterExpression

    def get_type(self) -> ConditionType:
        return ConditionType.OPERAND

    def _to_string(self) -> str:
        return self.expression.source


@dataclass(frozen=True)
class ComparisonCondition(Condition):
    """
    Comparison of two operands.

    Supported operators: ==, !=, <, >, <=, >=, in, not in.
    """
    left: FilterExpression
    operator: str
    right: FilterExpression

    def get_type(self) -> ConditionType:
        return ConditionType.COMPARISON

    def _to_string(self) -> str:
        return f"{self.left.source} {self.operator} {self.right.source}"


@dataclass(frozen=True)
class GroupCondition(Condition):
    """Parenthesized condition: (condition)"""
    condition: Condition

    def get_type(self) -> ConditionType:
        return ConditionType.GROUP

    def _to_string(self) -> str:
        return f"({self.condition})"


@dataclass(frozen=True)
class NotCondition(Condition):
    """Negation: not condition"""
    condition: Condition

    def get_type(self) -> ConditionType:
        return ConditionType.NOT

    def _to_string(self) -> str:
        return f"not {self.condition}"


@dataclass(frozen=True)
class BinaryCondition(Condition):
    """
    Boolean operation: left and/or right

    Both operators short-circuit.
    """
    left: Condition
    right: Condition
    operator: ConditionType  # AND or OR

    def get_type(self) -> ConditionType:
        return self.operator

    def _to_string(self) -> str:
        op_str = "and" if self.operator == ConditionType.AND else "or"
        return f"{self.left} {op_str} {self.right}"


__all__ = [
    "Condition",
    "ConditionType",
    "OperandCondition",
    "ComparisonCondition",
    "GroupCondition",
    "NotCondition",
    "BinaryCondition",
]
