"""
Factories of the default block tags.

Every tag here is built only through the public extension surface
(Library registration and the parser handle), the same way a
third-party library would build its tags.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from .nodes import (
    FilterNode,
    FirstOfNode,
    ForNode,
    IfBranch,
    IfEqualNode,
    IfNode,
    SpacelessNode,
    WithNode,
)
from ..conditions import Condition, ConditionParser
from ..errors import TemplateSyntaxError, UnclosedTagError
from ..template.expressions import FilterExpression, compile_filter_chain
from ..template.library import Library
from ..template.lexer import (
    BLOCK_TAG_END,
    BLOCK_TAG_START,
    COMMENT_TAG_END,
    COMMENT_TAG_START,
    VARIABLE_TAG_END,
    VARIABLE_TAG_START,
)
from ..template.nodes import NodeList, TextNode
from ..template.protocols import ParserHandle
from ..template.tokens import TokenType, split_contents

library = Library("defaulttags")

_ASSIGNMENT_RE = re.compile(r"^(\w+)=(.+)$")
_LOOPVAR_SPLIT_RE = re.compile(r" *, *")
_LOOPVAR_RE = re.compile(r"^[A-Za-z]\w*$")

TEMPLATETAG_MAPPING = {
    "openblock": BLOCK_TAG_START,
    "closeblock": BLOCK_TAG_END,
    "openvariable": VARIABLE_TAG_START,
    "closevariable": VARIABLE_TAG_END,
    "openbrace": "{",
    "closebrace": "}",
    "opencomment": COMMENT_TAG_START,
    "closecomment": COMMENT_TAG_END,
}


@library.tag("load")
def do_load(content: str, parser: ParserHandle) -> None:
    """
    Activates one or more libraries for the rest of the template.

    Usage:
        {% load humanize markup %}
    """
    names = content.split()
    if not names:
        raise TemplateSyntaxError("'load' requires at least one library name")
    for name in names:
        parser.load_lib(name)
    return None


@library.tag("comment")
def do_comment(content: str, parser: ParserHandle) -> None:
    """Drops everything up to `{% endcomment %}` without parsing it."""
    parser.skip_past("endcomment")
    return None


@library.tag("verbatim")
def do_verbatim(content: str, parser: ParserHandle) -> TextNode:
    """
    Outputs the enclosed source as-is, tags and all.

    The region ends at the first `{% endverbatim %}`.
    """
    bits: List[str] = []
    while parser.has_next_token():
        token = parser.next_token()
        if token.type is TokenType.BLOCK and token.tag_name == "endverbatim":
            return TextNode("".join(bits))
        bits.append(token.raw)
    raise UnclosedTagError(("endverbatim",), tag="verbatim", line=parser.current_token.line)


@library.tag("if")
def do_if(content: str, parser: ParserHandle) -> IfNode:
    """
    Conditional output.

    Usage:
        {% if user.is_admin and not banned %}...{% elif guest %}...{% else %}...{% endif %}
    """
    stop_at = ("elif", "else", "endif")
    branches: List[IfBranch] = []

    condition = _parse_condition(content, parser, "if")
    branches.append(IfBranch(condition, parser.parse(stop_at)))
    token = parser.next_token()

    while token.tag_name == "elif":
        condition = _parse_condition(token.tag_content, parser, "elif", line=token.line)
        branches.append(IfBranch(condition, parser.parse(stop_at)))
        token = parser.next_token()

    if token.tag_name == "else":
        if token.tag_content:
            raise TemplateSyntaxError("'else' takes no arguments", line=token.line)
        branches.append(IfBranch(None, parser.parse(("endif",))))
        parser.delete_next_token()

    return IfNode(tuple(branches))


def _parse_condition(text: str, parser: ParserHandle, tag: str, line: Optional[int] = None) -> Condition:
    if not text:
        raise TemplateSyntaxError(f"'{tag}' requires a condition", line=line)
    try:
        return ConditionParser(parser.compile_filter).parse(text)
    except TemplateSyntaxError as e:
        if e.line is None:
            e.line = line
        raise


@library.tag("for")
def do_for(content: str, parser: ParserHandle) -> ForNode:
    """
    Loops over each item of a sequence.

    Usage:
        {% for name, score in results reversed %}...{% empty %}...{% endfor %}
    """
    bits = split_contents(content)
    if len(bits) < 3:
        raise TemplateSyntaxError(f"'for' statements should use the format 'for x in y': for {content}")

    is_reversed = len(bits) > 3 and bits[-1] == "reversed" and bits[-3] == "in"
    in_index = -3 if is_reversed else -2
    if bits[in_index] != "in":
        raise TemplateSyntaxError(f"'for' statements should use the format 'for x in y': for {content}")

    loopvars = _LOOPVAR_SPLIT_RE.split(" ".join(bits[:in_index]))
    for var in loopvars:
        if not _LOOPVAR_RE.match(var):
            raise TemplateSyntaxError(f"'for' tag received an invalid loop variable: '{var}'")

    sequence = parser.compile_filter(bits[in_index + 1])
    nodelist_loop = parser.parse(("empty", "endfor"))
    token = parser.next_token()
    nodelist_empty = NodeList()
    if token.tag_name == "empty":
        nodelist_empty = parser.parse(("endfor",))
        parser.delete_next_token()

    return ForNode(tuple(loopvars), sequence, is_reversed, nodelist_loop, nodelist_empty)


@library.tag("with")
def do_with(content: str, parser: ParserHandle) -> WithNode:
    """
    Binds names for the enclosed block.

    Usage:
        {% with total=order.total name=user.name|upper %}...{% endwith %}
        {% with order.total as total %}...{% endwith %}
    """
    assignments = _parse_assignments(split_contents(content), parser)
    if not assignments:
        raise TemplateSyntaxError("'with' expected at least one variable assignment")
    nodelist = parser.parse(("endwith",))
    parser.delete_next_token()
    return WithNode(assignments, nodelist)


def _parse_assignments(bits: List[str], parser: ParserHandle) -> Tuple[Tuple[str, FilterExpression], ...]:
    # Legacy form: expr as name
    if len(bits) == 3 and bits[1] == "as":
        return ((bits[2], parser.compile_filter(bits[0])),)

    assignments = []
    for bit in bits:
        match = _ASSIGNMENT_RE.match(bit)
        if match is None:
            raise TemplateSyntaxError(f"Invalid assignment '{bit}' in 'with' tag")
        name, value = match.groups()
        assignments.append((name, parser.compile_filter(value)))
    return tuple(assignments)


@library.tag("ifequal")
def do_ifequal(content: str, parser: ParserHandle) -> IfEqualNode:
    """{% ifequal a b %}...{% else %}...{% endifequal %}"""
    return _do_ifequal(content, parser, "ifequal", negate=False)


@library.tag("ifnotequal")
def do_ifnotequal(content: str, parser: ParserHandle) -> IfEqualNode:
    """{% ifnotequal a b %}...{% else %}...{% endifnotequal %}"""
    return _do_ifequal(content, parser, "ifnotequal", negate=True)


def _do_ifequal(content: str, parser: ParserHandle, tag: str, negate: bool) -> IfEqualNode:
    bits = split_contents(content)
    if len(bits) != 2:
        raise TemplateSyntaxError(f"'{tag}' takes two arguments")
    left = parser.compile_filter(bits[0])
    right = parser.compile_filter(bits[1])

    end_tag = "end" + tag
    nodelist_true = parser.parse(("else", end_tag))
    token = parser.next_token()
    nodelist_false = NodeList()
    if token.tag_name == "else":
        nodelist_false = parser.parse((end_tag,))
        parser.delete_next_token()

    return IfEqualNode(left, right, negate, nodelist_true, nodelist_false)


@library.tag("firstof")
def do_firstof(content: str, parser: ParserHandle) -> FirstOfNode:
    """Outputs the first of its arguments that is truthy, or nothing."""
    bits = split_contents(content)
    if not bits:
        raise TemplateSyntaxError("'firstof' statement requires at least one argument")
    return FirstOfNode(tuple(parser.compile_filter(bit) for bit in bits))


@library.tag("templatetag")
def do_templatetag(content: str, parser: ParserHandle) -> TextNode:
    """Outputs one of the syntax characters, e.g. {% templatetag openblock %}."""
    bits = content.split()
    if len(bits) != 1:
        raise TemplateSyntaxError("'templatetag' statement takes one argument")
    if bits[0] not in TEMPLATETAG_MAPPING:
        raise TemplateSyntaxError(
            f"Invalid templatetag argument: '{bits[0]}'. "
            f"Must be one of: {', '.join(TEMPLATETAG_MAPPING)}"
        )
    return TextNode(TEMPLATETAG_MAPPING[bits[0]])


@library.tag("spaceless")
def do_spaceless(content: str, parser: ParserHandle) -> SpacelessNode:
    nodelist = parser.parse(("endspaceless",))
    parser.delete_next_token()
    return SpacelessNode(nodelist)


@library.tag("filter")
def do_filter(content: str, parser: ParserHandle) -> FilterNode:
    """
    Filters the rendered contents of the block.

    Usage:
        {% filter lower|cut:" " %}...{% endfilter %}
    """
    filters = compile_filter_chain(content, parser.get_filter)
    nodelist = parser.parse(("endfilter",))
    parser.delete_next_token()
    return FilterNode(filters, nodelist)


__all__ = ["library", "TEMPLATETAG_MAPPING"]
