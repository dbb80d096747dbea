"""
Tests for the template parser.

Covers the parse loop, stop-sets, token access for factories,
library loading and name resolution precedence.
"""

import pytest

from stencil.errors import (
    InvalidFilterError,
    InvalidTagError,
    LibraryResolutionError,
    ScanError,
    TemplateSyntaxError,
    UnclosedTagError,
    UnexpectedEndError,
)
from stencil.template.library import Library
from stencil.template.lexer import tokenize
from stencil.template.nodes import NodeList, TextNode, VariableNode
from stencil.template.parser import MAX_NESTING_DEPTH, Parser, parse_tokens
from stencil.template.registry import Precedence
from stencil.template.tokens import TokenType
from tests.infrastructure import (
    DictLookup,
    MarkerNode,
    WrapNode,
    make_block_library,
    make_marker_library,
    make_parser,
    parse,
    render_nodes,
)


class TestParseLoop:
    """Dispatch of the four token kinds."""

    def test_empty_template(self):
        assert parse("") == NodeList()

    def test_plain_text(self):
        nodes = parse("Hello, world!")

        assert list(nodes) == [TextNode("Hello, world!")]

    @pytest.mark.parametrize("source", [
        "",
        "plain",
        "  leading and trailing  ",
        "line one\nline two\r\n\n\ttabbed\n",
        "braces { } and percent % and hash #",
    ])
    def test_text_round_trip(self, source):
        """Text-only templates render back to the exact input."""
        assert render_nodes(parse(source), {"anything": 1}) == source

    def test_variable_node(self):
        nodes = parse("Hi {{ name }}!")

        assert isinstance(nodes[1], VariableNode)
        assert nodes[1].expression.source == "name"
        assert render_nodes(nodes, {"name": "Ann"}) == "Hi Ann!"

    def test_comment_elided(self):
        """A comment produces no node at all."""
        nodes = parse("A{# ignored #}B")

        assert list(nodes) == [TextNode("A"), TextNode("B")]

    def test_empty_variable_tag(self):
        with pytest.raises(TemplateSyntaxError, match="Empty variable tag") as exc_info:
            parse("a\n{{  }}")
        assert exc_info.value.line == 2

    def test_empty_block_tag(self):
        with pytest.raises(TemplateSyntaxError, match="Empty block tag"):
            parse("{%  %}")

    def test_parse_tokens_helper(self):
        nodes = parse_tokens(tokenize("x{% wrap a %}y{% endwrap %}"), [make_block_library()])

        assert render_nodes(nodes) == "x[a]y[/a]"


class TestUnknownNames:

    def test_unknown_tag(self):
        """Unknown tag names the tag and its line."""
        with pytest.raises(InvalidTagError, match="Invalid block tag 'bogus'") as exc_info:
            parse("line one\n{% bogus %}")

        assert exc_info.value.name == "bogus"
        assert exc_info.value.line == 2
        assert "(line 2)" in str(exc_info.value)

    def test_unknown_tag_inside_body_lists_terminators(self):
        with pytest.raises(InvalidTagError, match="expected 'endwrap'"):
            parse("{% wrap a %}{% bogus %}{% endwrap %}", [make_block_library()])

    def test_unknown_filter(self):
        """Filters are resolved at parse time."""
        with pytest.raises(InvalidFilterError, match="Invalid filter 'nope'") as exc_info:
            parse("\n\n{{ value|nope }}")

        assert exc_info.value.name == "nope"
        assert exc_info.value.line == 3

    def test_wrong_filter_arity(self):
        """Filter arguments are checked against the filter's signature at parse time."""
        with pytest.raises(TemplateSyntaxError, match="'upper' filter requires 1 arguments, 2 provided") as exc_info:
            parse("\n{{ name|upper:'x' }}", [self._filters()])

        assert exc_info.value.line == 2

    def test_missing_filter_argument(self):
        with pytest.raises(TemplateSyntaxError, match="'default' filter requires 2 arguments, 1 provided"):
            parse("{{ name|default }}", [self._filters()])

    @staticmethod
    def _filters():
        library = Library("filters")
        library.filter("upper", lambda value: str(value).upper())
        library.filter("default", lambda value, arg: value or arg)
        return library

    def test_deep_nesting_is_syntax_error(self):
        depth = MAX_NESTING_DEPTH + 1
        source = "{% wrap a %}" * depth + "x" + "{% endwrap %}" * depth

        with pytest.raises(TemplateSyntaxError, match="nesting too deep"):
            parse(source, [make_block_library()])

    def test_nesting_at_limit(self):
        depth = MAX_NESTING_DEPTH
        source = "{% wrap a %}" * depth + "x" + "{% endwrap %}" * depth

        nodes = parse(source, [make_block_library()])

        assert render_nodes(nodes) == "[a]" * depth + "x" + "[/a]" * depth

    def test_stop_tag_outside_body_is_unknown(self):
        """A terminator with no open block is just an unknown tag."""
        with pytest.raises(InvalidTagError, match="'endwrap'"):
            parse("{% endwrap %}", [make_block_library()])


class TestStopSets:
    """Nested bodies parsed through factories."""

    def test_body_excludes_terminator(self):
        """The body holds no node for the end tag and parsing resumes after it."""
        nodes = parse("{% wrap w %}BODY{% endwrap %}after", [make_block_library()])

        assert len(nodes) == 2
        wrap = nodes[0]
        assert isinstance(wrap, WrapNode)
        assert list(wrap.nodelist) == [TextNode("BODY")]
        assert nodes[1] == TextNode("after")

    def test_nested_bodies(self):
        nodes = parse(
            "{% wrap outer %}a{% wrap inner %}b{% endwrap %}c{% endwrap %}",
            [make_block_library()],
        )

        assert render_nodes(nodes) == "[outer]a[inner]b[/inner]c[/outer]"
        assert len(nodes.nodes_by_type(WrapNode)) == 2

    def test_stop_token_left_in_stream(self):
        parser = make_parser("body{% end %}rest")

        body = parser.parse(("end",))

        assert list(body) == [TextNode("body")]
        token = parser.next_token()
        assert token.type is TokenType.BLOCK
        assert token.tag_name == "end"
        assert parser.next_token().content == "rest"

    def test_stop_at_accepts_single_name(self):
        parser = make_parser("body{% end %}")

        assert list(parser.parse("end")) == [TextNode("body")]

    def test_unclosed_block(self):
        """Missing terminator names the expected tag and the opener's line."""
        with pytest.raises(UnclosedTagError, match="Unclosed tag 'wrap'. Looking for one of: endwrap") as exc_info:
            parse("x\n{% wrap w %}BODY", [make_block_library()])

        assert exc_info.value.expected == ("endwrap",)
        assert exc_info.value.tag == "wrap"
        assert exc_info.value.line == 2

    def test_unclosed_at_top_level(self):
        parser = make_parser("only text")

        with pytest.raises(UnclosedTagError, match="Looking for one of: a, b"):
            parser.parse(("a", "b"))

    def test_unclosed_is_unexpected_end(self):
        with pytest.raises(UnexpectedEndError):
            parse("{% wrap w %}", [make_block_library()])


class TestTokenAccess:
    """Single-step stream access used by factories."""

    def test_next_and_has_next(self):
        parser = make_parser("a{{ b }}")

        assert parser.has_next_token()
        assert parser.next_token().content == "a"
        assert parser.next_token().content == "b"
        assert not parser.has_next_token()

    def test_next_token_past_end(self):
        with pytest.raises(UnexpectedEndError):
            make_parser("").next_token()

    def test_prepend_then_next(self):
        parser = make_parser("a{{ b }}")
        token = parser.next_token()

        parser.prepend_token(token)

        assert parser.next_token() is token

    def test_delete_next_token(self):
        parser = make_parser("a{{ b }}c")

        parser.delete_next_token()

        assert parser.next_token().content == "b"

    def test_pushback_idempotence(self):
        """A peek-and-pushback inside a factory leaves the tree unchanged."""
        source = "x{% wrap a %}y{{ v }}{% endwrap %}z"
        blocks = make_block_library()
        peeking = Library("peeking")

        @peeking.tag("wrap")
        def do_wrap(content, parser):
            peeked = parser.next_token()
            parser.prepend_token(peeked)
            nodelist = parser.parse(("endwrap",))
            parser.delete_next_token()
            return WrapNode(content, nodelist)

        plain = parse(source, [blocks])
        with_peek = parse(source, [peeking])

        assert plain == with_peek

    def test_peek_tag_leaves_stream_intact(self):
        nodes = parse("{% peekname %}{% wrap a %}b{% endwrap %}", [make_block_library()])

        assert render_nodes(nodes) == "wrap[a]b[/a]"

    def test_raw_region_from_tokens(self):
        """A factory can re-emit raw tokens; unknown tags inside are never dispatched."""
        nodes = parse("{% raw %}{{ x }} {% bogus %}{# c #}{% endraw %}", [make_block_library()])

        assert render_nodes(nodes) == "{{ x }} {% bogus %}{# c #}"

    def test_factory_reading_past_end(self):
        with pytest.raises(UnexpectedEndError):
            parse("{% raw %}never closed", [make_block_library()])

    def test_current_token_outside_factory(self):
        with pytest.raises(RuntimeError):
            make_parser("").current_token

    def test_current_token_inside_factory(self):
        seen = []
        library = Library("spy")

        @library.tag("spy")
        def do_spy(content, parser):
            seen.append(parser.current_token)
            return None

        parse("\n{% spy on %}", [library])

        assert seen[0].tag_name == "spy"
        assert seen[0].line == 2


class TestSkipPast:

    def test_skips_without_dispatch(self):
        """Skipped regions may contain tags nobody registered."""
        nodes = parse("a{% skip %}{% bogus %}{{ x|nope }}{% endskip %}b", [make_block_library()])

        assert list(nodes) == [TextNode("a"), TextNode("b")]

    def test_skip_past_end_of_stream(self):
        with pytest.raises(UnclosedTagError, match="Unclosed tag 'skip'. Looking for one of: endskip") as exc_info:
            parse("\n{% skip %}forever", [make_block_library()])

        assert exc_info.value.line == 2

    def test_skip_past_matches_block_tags_only(self):
        """The end name inside a variable or text does not stop skipping."""
        nodes = parse("{% skip %}{{ endskip }} endskip {% endskip %}done", [make_block_library()])

        assert list(nodes) == [TextNode("done")]


class TestErrorReporting:
    """First error, left to right, aborts the parse."""

    def test_unknown_tag_before_unclosed_block(self):
        with pytest.raises(InvalidTagError, match="'bogus'"):
            parse("{% bogus %} {% wrap a %} never closed", [make_block_library()])

    def test_unknown_tag_inside_unclosed_block(self):
        with pytest.raises(InvalidTagError, match="'bogus'"):
            parse("{% wrap a %} {% bogus %} never closed", [make_block_library()])

    def test_unknown_filter_before_scan_error(self):
        with pytest.raises(InvalidFilterError):
            parse("{{ a|nope }} {{ broken")

    def test_scan_error_before_unknown_tag(self):
        with pytest.raises(ScanError):
            parse("{{ broken {% bogus %}")

    def test_nested_error_keeps_innermost_line(self):
        with pytest.raises(InvalidTagError) as exc_info:
            parse("{% wrap a %}\n\n{% bogus %}{% endwrap %}", [make_block_library()])

        assert exc_info.value.line == 3

    def test_factory_error_gets_tag_line(self):
        library = Library("strict")

        @library.tag("strict")
        def do_strict(content, parser):
            raise TemplateSyntaxError("'strict' takes no arguments")

        with pytest.raises(TemplateSyntaxError) as exc_info:
            parse("\n\n{% strict please %}", [library])

        assert exc_info.value.line == 3

    def test_other_exceptions_propagate(self):
        library = Library("buggy")

        @library.tag("buggy")
        def do_buggy(content, parser):
            raise ZeroDivisionError("bug")

        with pytest.raises(ZeroDivisionError):
            parse("{% buggy %}", [library])


class TestLoadLib:

    def test_loaded_library_is_visible_afterwards(self):
        lookup = DictLookup({"extra": make_marker_library("extra", "!")})
        parser = make_parser("{{ 'x'|shout }}", lookup=lookup)

        parser.load_lib("extra")

        assert render_nodes(parser.parse()) == "x!"
        assert lookup.calls == ["extra"]

    def test_load_is_not_retroactive(self):
        """Filters used before the load fail to resolve."""
        library = make_marker_library("extra", "!")
        loader = Library("loader")

        @loader.tag("use")
        def do_use(content, parser):
            parser.load_lib(content)
            return None

        lookup = DictLookup({"extra": library})

        with pytest.raises(InvalidFilterError):
            parse("{{ 'a'|shout }}{% use extra %}", [loader], lookup=lookup)
        assert render_nodes(parse("{% use extra %}{{ 'a'|shout }}", [loader], lookup=lookup)) == "a!"

    def test_unknown_library(self):
        parser = make_parser("", lookup=DictLookup({}))

        with pytest.raises(LibraryResolutionError, match="Library 'missing' not found"):
            parser.load_lib("missing")

    def test_no_lookup_configured(self):
        with pytest.raises(LibraryResolutionError, match="no library lookup configured"):
            make_parser("").load_lib("anything")

    def test_load_error_gets_tag_line(self):
        loader = Library("loader")

        @loader.tag("use")
        def do_use(content, parser):
            parser.load_lib(content)
            return None

        with pytest.raises(LibraryResolutionError) as exc_info:
            parse("\n{% use missing %}", [loader], lookup=DictLookup({}))

        assert exc_info.value.line == 2
        assert "(line 2)" in str(exc_info.value)

    def test_session_isolation(self):
        """Loads in one session are invisible to others sharing the base libraries."""
        base = [make_block_library()]
        lookup = DictLookup({"extra": make_marker_library("extra", "!")})
        first = make_parser("", base, lookup)
        second = make_parser("{{ 'a'|shout }}", base, lookup)

        first.load_lib("extra")

        assert len(first.libraries) == 2
        assert len(second.libraries) == 1
        assert len(base) == 1
        with pytest.raises(InvalidFilterError):
            second.parse()

    def test_reload_moves_library_to_front(self):
        a = make_marker_library("a", "A")
        b = make_marker_library("b", "B")
        parser = make_parser("{{ 'x'|shout }}", lookup=DictLookup({"a": a, "b": b}))

        parser.load_lib("a")
        parser.load_lib("b")
        parser.load_lib("a")

        assert parser.libraries == (b, a)
        assert render_nodes(parser.parse()) == "xA"


class TestPrecedence:
    """Name collisions across active libraries."""

    def setup_method(self):
        self.a = make_marker_library("a", "A")
        self.b = make_marker_library("b", "B")
        self.lookup = DictLookup({"a": self.a, "b": self.b})

    def test_latest_loaded_filter_wins(self):
        parser = make_parser("", lookup=self.lookup)
        parser.load_lib("a")
        parser.load_lib("b")

        assert parser.get_filter("shout")("x") == "xB"

    def test_latest_loaded_tag_wins(self):
        parser = make_parser("{% hello %}", lookup=self.lookup)
        parser.load_lib("a")
        parser.load_lib("b")

        assert list(parser.parse()) == [MarkerNode("B")]

    def test_loaded_library_beats_builtins(self):
        builtin = make_marker_library("builtin", "0")
        parser = make_parser("", [builtin], lookup=self.lookup)

        assert parser.get_filter("shout")("x") == "x0"
        parser.load_lib("a")
        assert parser.get_filter("shout")("x") == "xA"

    def test_later_builtin_beats_earlier(self):
        parser = make_parser("", [self.a, self.b])

        assert parser.get_filter("shout")("x") == "xB"

    def test_fallback_to_earlier_library(self):
        only_a = make_marker_library("c", "C", tags=(), filters=("only_c",))
        parser = make_parser("", [only_a], lookup=self.lookup)
        parser.load_lib("a")

        assert parser.get_filter("only_c")("x") == "xC"
        assert parser.get_filter("shout")("x") == "xA"

    def test_earliest_wins_policy(self):
        builtin = make_marker_library("builtin", "0")
        parser = make_parser("{% hello %}", [builtin], lookup=self.lookup, precedence=Precedence.EARLIEST_WINS)
        parser.load_lib("a")
        parser.load_lib("b")

        assert parser.get_filter("shout")("x") == "x0"
        assert list(parser.parse()) == [MarkerNode("0")]

    def test_find_tag(self):
        parser = make_parser("", [self.a])

        assert parser.find_tag("hello")("", parser) == MarkerNode("A")
        with pytest.raises(InvalidTagError):
            parser.find_tag("nothing")

    def test_get_filter_unknown(self):
        with pytest.raises(InvalidFilterError, match="Invalid filter 'f'"):
            make_parser("", [self.a]).get_filter("f")


class TestTreeShape:

    def test_nodes_do_not_reference_parser(self):
        nodes = parse("{% wrap a %}{{ x }}{% endwrap %}", [make_block_library()])

        def walk(nodelist):
            for node in nodelist:
                assert not any(isinstance(v, Parser) for v in vars(node).values())
                for child in node.iter_children():
                    walk(child)

        walk(nodes)

    def test_nodelist_is_immutable(self):
        nodes = parse("a{{ b }}")

        assert isinstance(nodes, tuple)
        with pytest.raises(TypeError):
            nodes[0] = TextNode("x")
