"""
Nodes produced by the default tag library.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..conditions import Condition, ConditionEvaluator
from ..template.expressions import FilterCall, FilterExpression, apply_filters
from ..template.nodes import Node, NodeList, render_value

_SPACE_BETWEEN_TAGS_RE = re.compile(r">\s+<")


@dataclass(frozen=True)
class IfBranch:
    """One `if`/`elif`/`else` branch; `else` has no condition."""
    condition: Optional[Condition]
    nodelist: NodeList


@dataclass(frozen=True)
class IfNode(Node):
    """Renders the first branch whose condition holds."""
    branches: Tuple[IfBranch, ...]

    def iter_children(self) -> Iterator[NodeList]:
        for branch in self.branches:
            yield branch.nodelist

    def render(self, context: Any) -> str:
        evaluator = ConditionEvaluator(context)
        for branch in self.branches:
            if branch.condition is None or evaluator.evaluate(branch.condition):
                return branch.nodelist.render(context)
        return ""


@dataclass(frozen=True)
class ForNode(Node):
    """
    Loop over a sequence.

    Inside the body `forloop` exposes counter, counter0, revcounter,
    revcounter0, first, last and parentloop.
    """
    loopvars: Tuple[str, ...]
    sequence: FilterExpression
    is_reversed: bool
    nodelist_loop: NodeList
    nodelist_empty: NodeList = NodeList()

    child_nodelists = ("nodelist_loop", "nodelist_empty")

    def render(self, context: Any) -> str:
        values = self.sequence.resolve(context, ignore_failures=True)
        if values is None:
            values = []
        if not hasattr(values, "__len__"):
            values = list(values)
        length = len(values)
        if length == 0:
            return self.nodelist_empty.render(context)
        if self.is_reversed:
            values = reversed(values)

        unpack = len(self.loopvars) > 1
        bits: List[str] = []
        loop: Dict[str, Any] = {"parentloop": context.get("forloop", {})}

        with context.push(forloop=loop):
            for i, item in enumerate(values):
                loop.update(
                    counter0=i,
                    counter=i + 1,
                    revcounter=length - i,
                    revcounter0=length - i - 1,
                    first=(i == 0),
                    last=(i == length - 1),
                )
                if unpack:
                    self._unpack(context, item)
                else:
                    context[self.loopvars[0]] = item
                bits.append(self.nodelist_loop.render(context))

        return "".join(bits)

    def _unpack(self, context: Any, item: Any) -> None:
        try:
            values = tuple(item)
        except TypeError:
            values = (item,)
        if len(values) != len(self.loopvars):
            raise ValueError(
                f"Need {len(self.loopvars)} values to unpack in for loop; got {len(values)}"
            )
        for name, value in zip(self.loopvars, values):
            context[name] = value


@dataclass(frozen=True)
class WithNode(Node):
    """Renders the body with extra names bound to expression values."""
    assignments: Tuple[Tuple[str, FilterExpression], ...]
    nodelist: NodeList

    child_nodelists = ("nodelist",)

    def render(self, context: Any) -> str:
        values = {name: expression.resolve(context) for name, expression in self.assignments}
        with context.push(values):
            return self.nodelist.render(context)


@dataclass(frozen=True)
class IfEqualNode(Node):
    """`ifequal`/`ifnotequal`: compares two operands."""
    left: FilterExpression
    right: FilterExpression
    negate: bool
    nodelist_true: NodeList
    nodelist_false: NodeList = NodeList()

    child_nodelists = ("nodelist_true", "nodelist_false")

    def render(self, context: Any) -> str:
        left = self.left.resolve(context, ignore_failures=True)
        right = self.right.resolve(context, ignore_failures=True)
        if (self.negate and left != right) or (not self.negate and left == right):
            return self.nodelist_true.render(context)
        return self.nodelist_false.render(context)


@dataclass(frozen=True)
class FirstOfNode(Node):
    """Outputs the first truthy operand."""
    expressions: Tuple[FilterExpression, ...]

    def render(self, context: Any) -> str:
        for expression in self.expressions:
            value = expression.resolve(context, ignore_failures=True)
            if value:
                return render_value(value)
        return ""


@dataclass(frozen=True)
class SpacelessNode(Node):
    """Removes whitespace between HTML tags in the rendered body."""
    nodelist: NodeList

    child_nodelists = ("nodelist",)

    def render(self, context: Any) -> str:
        return _SPACE_BETWEEN_TAGS_RE.sub("><", self.nodelist.render(context).strip())


@dataclass(frozen=True)
class FilterNode(Node):
    """Runs the rendered body through a filter chain."""
    filters: Tuple[FilterCall, ...]
    nodelist: NodeList

    child_nodelists = ("nodelist",)

    def render(self, context: Any) -> str:
        return render_value(apply_filters(self.filters, self.nodelist.render(context), context))


__all__ = [
    "IfBranch",
    "IfNode",
    "ForNode",
    "WithNode",
    "IfEqualNode",
    "FirstOfNode",
    "SpacelessNode",
    "FilterNode",
]
