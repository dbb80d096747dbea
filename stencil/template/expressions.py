"""
Variable expressions and filter pipelines.

Compiles the content of a `{{ ... }}` token into a FilterExpression:
an operand (literal or dotted lookup path) followed by zero or more
`|name[:argument]` filter calls. Filter names are resolved when the
expression is compiled, so an unknown filter is a parse-time error.
"""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple, Union

from ..errors import TemplateSyntaxError, VariableDoesNotExist

FilterFunc = Callable[..., Any]
FilterLookup = Callable[[str], FilterFunc]

FILTER_SEPARATOR = "|"
FILTER_ARGUMENT_SEPARATOR = ":"
VARIABLE_ATTRIBUTE_SEPARATOR = "."

_STRDQ = r'"[^"\\]*(?:\\.[^"\\]*)*"'     # double-quoted string
_STRSQ = r"'[^'\\]*(?:\\.[^'\\]*)*'"     # single-quoted string
_CONSTANT = f"(?:{_STRDQ}|{_STRSQ})"
_NUM = r"[-+.]?\d[\d.e]*"
_VAR_CHARS = r"\w."

_FILTER_RE = re.compile(
    rf"""
    ^(?P<constant>{_CONSTANT})|
    ^(?P<var>[{_VAR_CHARS}]+|{_NUM})|
     (?:\s*{re.escape(FILTER_SEPARATOR)}\s*
         (?P<filter_name>\w+)
             (?:{re.escape(FILTER_ARGUMENT_SEPARATOR)}
                 (?:
                  (?P<constant_arg>{_CONSTANT})|
                  (?P<var_arg>[{_VAR_CHARS}]+|{_NUM})
                 )
             )?
     )""",
    re.VERBOSE,
)

_LITERAL_KEYWORDS = {"True": True, "False": False, "None": None}


@dataclass(frozen=True)
class Variable:
    """
    Operand of an expression: a literal or a dotted lookup path.

    Literals are quoted strings, numbers, True, False and None.
    Everything else is looked up in the render context, one path
    segment at a time.
    """
    source: str
    literal: Any = None
    lookups: Optional[Tuple[str, ...]] = None

    @classmethod
    def parse(cls, source: str) -> Variable:
        """
        Builds a Variable from its source text.

        Raises:
            TemplateSyntaxError: For malformed numbers or private lookups
        """
        number = _parse_number(source)
        if number is not None:
            return cls(source, literal=number)

        if len(source) >= 2 and source[0] in "\"'" and source[-1] == source[0]:
            return cls(source, literal=_unescape_string_literal(source))

        if source in _LITERAL_KEYWORDS:
            return cls(source, literal=_LITERAL_KEYWORDS[source])

        bits = tuple(source.split(VARIABLE_ATTRIBUTE_SEPARATOR))
        for bit in bits:
            if not bit:
                raise TemplateSyntaxError(f"Invalid variable '{source}'")
            if bit.startswith("_"):
                raise TemplateSyntaxError(
                    f"Variables and attributes may not begin with underscores: '{source}'"
                )
        return cls(source, lookups=bits)

    @property
    def is_literal(self) -> bool:
        return self.lookups is None

    def resolve(self, context: Any) -> Any:
        """
        Resolves the variable against a render context.

        Raises:
            VariableDoesNotExist: If any path segment fails to resolve
        """
        if self.lookups is None:
            return self.literal

        first = self.lookups[0]
        try:
            current = context[first]
        except KeyError:
            raise VariableDoesNotExist(self.source, first) from None
        current = self._call_if_callable(current, first)

        for bit in self.lookups[1:]:
            current = self._lookup(current, bit)
            current = self._call_if_callable(current, bit)
        return current

    def _lookup(self, current: Any, bit: str) -> Any:
        # Dictionary key, then attribute, then list index
        try:
            return current[bit]
        except (TypeError, AttributeError, KeyError, ValueError, IndexError):
            pass
        try:
            return getattr(current, bit)
        except (TypeError, AttributeError):
            pass
        try:
            return current[int(bit)]
        except (IndexError, ValueError, KeyError, TypeError):
            raise VariableDoesNotExist(self.source, bit) from None

    def _call_if_callable(self, value: Any, bit: str) -> Any:
        if not callable(value) or isinstance(value, type):
            return value
        try:
            inspect.signature(value).bind()
        except TypeError:
            raise VariableDoesNotExist(self.source, bit) from None
        except ValueError:
            # No signature available (some builtins), just try the call
            pass
        return value()

    def __str__(self) -> str:
        return self.source


@dataclass(frozen=True)
class FilterCall:
    """One `|name[:argument]` step of a pipeline."""
    name: str
    func: FilterFunc
    arg: Optional[Variable] = None

    def apply(self, value: Any, context: Any) -> Any:
        if self.arg is None:
            return self.func(value)
        return self.func(value, self.arg.resolve(context))


@dataclass(frozen=True)
class FilterExpression:
    """
    Compiled variable expression.

    Sample:
        >>> expr = compile_filter_expression('name|default:"anonymous"|upper', find)
        >>> expr.var
        Variable(source='name', ...)
        >>> [f.name for f in expr.filters]
        ['default', 'upper']
    """
    source: str
    var: Variable
    filters: Tuple[FilterCall, ...] = ()

    def resolve(self, context: Any, ignore_failures: bool = False) -> Any:
        """
        Evaluates the operand and runs it through the filters.

        Args:
            context: Render context
            ignore_failures: Use None for an unresolvable operand instead of
                the context's `string_if_invalid`
        """
        try:
            value = self.var.resolve(context)
        except VariableDoesNotExist:
            if ignore_failures:
                value = None
            else:
                string_if_invalid = getattr(context, "string_if_invalid", "")
                if string_if_invalid:
                    return string_if_invalid
                value = string_if_invalid
        return apply_filters(self.filters, value, context)

    def __str__(self) -> str:
        return self.source


def apply_filters(filters: Tuple[FilterCall, ...], value: Any, context: Any) -> Any:
    """Runs a value through a sequence of filter calls."""
    for call in filters:
        value = call.apply(value, context)
    return value


def compile_filter_expression(source: str, find_filter: FilterLookup) -> FilterExpression:
    """
    Compiles `operand|filter:arg|...` into a FilterExpression.

    Args:
        source: Expression text (already stripped of delimiters)
        find_filter: Filter lookup by name; raises for unknown names

    Raises:
        TemplateSyntaxError: On malformed expressions or unknown filters
    """
    if not source:
        raise TemplateSyntaxError("Empty variable expression")
    var, filters = _compile(source, find_filter, expect_operand=True)
    if var is None:
        raise TemplateSyntaxError(f"Could not find variable at start of '{source}'")
    return FilterExpression(source, var, filters)


def compile_filter_chain(source: str, find_filter: FilterLookup) -> Tuple[FilterCall, ...]:
    """
    Compiles a bare filter chain `name:arg|name|...` (no operand).

    Used by tags that apply filters to rendered content.
    """
    if not source:
        raise TemplateSyntaxError("Empty filter chain")
    _, filters = _compile(FILTER_SEPARATOR + source, find_filter, expect_operand=False)
    return filters


def _compile(
    source: str,
    find_filter: FilterLookup,
    expect_operand: bool,
) -> Tuple[Optional[Variable], Tuple[FilterCall, ...]]:
    var: Optional[Variable] = None
    filters: List[FilterCall] = []
    upto = 0

    for match in _FILTER_RE.finditer(source):
        start = match.start()
        if upto != start:
            raise TemplateSyntaxError(
                f"Could not parse some characters: "
                f"{source[:upto]}|{source[upto:start]}|{source[start:]}"
            )

        filter_name = match.group("filter_name")
        if filter_name is None:
            if not expect_operand:
                raise TemplateSyntaxError(f"Unexpected operand in filter chain '{source[1:]}'")
            constant, lookup = match.group("constant", "var")
            var = Variable.parse(constant or lookup)
        else:
            if expect_operand and var is None:
                raise TemplateSyntaxError(f"Could not find variable at start of '{source}'")
            constant_arg, var_arg = match.group("constant_arg", "var_arg")
            arg_source = constant_arg or var_arg
            arg = Variable.parse(arg_source) if arg_source else None
            func = find_filter(filter_name)
            check_filter_args(filter_name, func, arg is not None)
            filters.append(FilterCall(filter_name, func, arg))
        upto = match.end()

    if upto != len(source):
        raise TemplateSyntaxError(f"Could not parse the remainder: '{source[upto:]}' from '{source}'")
    if expect_operand and var is None:
        raise TemplateSyntaxError(f"Could not find variable at start of '{source}'")
    return var, tuple(filters)


def check_filter_args(name: str, func: FilterFunc, has_arg: bool) -> None:
    """
    Checks that a filter can take the value plus the given argument.

    Raises:
        TemplateSyntaxError: If the filter's signature does not fit
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # No signature available (some builtins)
        return

    provided = 2 if has_arg else 1
    try:
        signature.bind(*range(provided))
    except TypeError:
        positional = [
            p for p in signature.parameters.values()
            if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        ]
        required = sum(1 for p in positional if p.default is p.empty)
        raise TemplateSyntaxError(
            f"'{name}' filter requires {required} arguments, {provided} provided"
        ) from None


def _parse_number(source: str) -> Optional[Union[int, float]]:
    try:
        if "." in source or "e" in source.lower():
            number = float(source)
            if source.endswith("."):
                raise TemplateSyntaxError(f"Invalid number '{source}'")
            return number
        return int(source)
    except ValueError:
        return None


def _unescape_string_literal(source: str) -> str:
    quote = source[0]
    return source[1:-1].replace(f"\\{quote}", quote).replace("\\\\", "\\")


__all__ = [
    "FilterFunc",
    "FilterLookup",
    "Variable",
    "FilterCall",
    "FilterExpression",
    "apply_filters",
    "compile_filter_expression",
    "compile_filter_chain",
    "check_filter_args",
    "FILTER_SEPARATOR",
    "FILTER_ARGUMENT_SEPARATOR",
]
