"""
Template compilation core.

Lexer, token stream, parser, node types, expressions and the
tag/filter library machinery.
"""

from __future__ import annotations

from .context import Context
from .expressions import FilterCall, FilterExpression, Variable, compile_filter_expression
from .lexer import TemplateLexer, tokenize
from .library import Library, TagFactory
from .nodes import Node, NodeList, TextNode, VariableNode
from .parser import Parser, parse_tokens
from .protocols import LibraryLookup, ParserHandle
from .registry import LibraryRegistry, Precedence
from .stream import TokenStream
from .tokens import Token, TokenType

__all__ = [
    "Context",
    "FilterCall",
    "FilterExpression",
    "Variable",
    "compile_filter_expression",
    "TemplateLexer",
    "tokenize",
    "Library",
    "TagFactory",
    "Node",
    "NodeList",
    "TextNode",
    "VariableNode",
    "Parser",
    "parse_tokens",
    "LibraryLookup",
    "ParserHandle",
    "LibraryRegistry",
    "Precedence",
    "TokenStream",
    "Token",
    "TokenType",
]
