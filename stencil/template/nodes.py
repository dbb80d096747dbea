"""
Base node types.

Defines the renderable units produced by parsing. Concrete block-tag
nodes live in the libraries that provide the tags.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Tuple, Type, TypeVar

from .expressions import FilterExpression

N = TypeVar("N", bound="Node")


class Node(ABC):
    """
    Base class for all template nodes.

    A node owns its children exclusively; `child_nodelists` lists the
    attribute names holding child NodeLists so the tree can be walked
    without knowing concrete node types.
    """

    child_nodelists: Tuple[str, ...] = ()

    @abstractmethod
    def render(self, context: Any) -> str:
        """Renders the node against a render context."""

    def iter_children(self) -> Iterator[NodeList]:
        for attr in self.child_nodelists:
            nodelist = getattr(self, attr, None)
            if nodelist:
                yield nodelist

    def nodes_by_type(self, node_type: Type[N]) -> List[N]:
        """Returns this node (if matching) and all matching descendants."""
        found: List[N] = []
        if isinstance(self, node_type):
            found.append(self)
        for nodelist in self.iter_children():
            found.extend(nodelist.nodes_by_type(node_type))
        return found


class NodeList(tuple):
    """
    Ordered, immutable sequence of nodes.

    Render order equals parse order.
    """

    def __new__(cls, nodes: Iterable[Node] = ()) -> NodeList:
        return super().__new__(cls, tuple(nodes))

    def render(self, context: Any) -> str:
        return "".join(node.render(context) for node in self)

    def nodes_by_type(self, node_type: Type[N]) -> List[N]:
        found: List[N] = []
        for node in self:
            found.extend(node.nodes_by_type(node_type))
        return found

    def __repr__(self) -> str:
        return f"NodeList({list(self)!r})"


@dataclass(frozen=True)
class TextNode(Node):
    """
    Literal text of the template.

    Rendered exactly as it appears in the source.
    """
    text: str

    def render(self, context: Any) -> str:
        return self.text


@dataclass(frozen=True)
class VariableNode(Node):
    """Output of a `{{ ... }}` expression."""
    expression: FilterExpression

    def render(self, context: Any) -> str:
        return render_value(self.expression.resolve(context))


def render_value(value: Any) -> str:
    """Converts a resolved value into output text."""
    if isinstance(value, str):
        return value
    return str(value)


__all__ = ["Node", "NodeList", "TextNode", "VariableNode", "render_value"]
