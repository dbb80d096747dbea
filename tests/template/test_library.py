"""Tests for Library registration."""

import logging

import pytest

from stencil.template.library import Library, TagFactory
from stencil.template.nodes import TextNode


def make_node(content, parser):
    return TextNode(content)


class TestLibraryRegistration:

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            Library("")

    def test_bare_decorator_uses_function_name(self):
        library = Library("lib")

        @library.tag
        def shout(content, parser):
            return TextNode(content.upper())

        @library.filter
        def double(value):
            return value * 2

        assert library.tags["shout"] is shout
        assert library.filters["double"] is double

    def test_decorator_with_name(self):
        library = Library("lib")

        @library.tag("if_any")
        def do_if_any(content, parser):
            return None

        @library.filter("str_len")
        def length(value):
            return len(value)

        assert "if_any" in library.tags
        assert "str_len" in library.filters
        assert "length" not in library.filters

    def test_empty_call_decorator(self):
        library = Library("lib")

        @library.tag()
        def noop(content, parser):
            return None

        @library.filter()
        def same(value):
            return value

        assert library.tags["noop"] is noop
        assert library.filters["same"] is same

    def test_direct_call(self):
        library = Library("lib")

        library.tag("echo", make_node)
        library.filter("lower", str.lower)

        assert library.tags["echo"] is make_node
        assert library.filters["lower"] is str.lower

    def test_factory_without_name_rejected(self):
        with pytest.raises(ValueError):
            Library("lib").tag(None, make_node)

    def test_tag_factory_protocol(self):
        assert isinstance(make_node, TagFactory)

    def test_overwrite_logs_warning(self, caplog):
        library = Library("lib")
        library.filter("f", str.upper)

        with caplog.at_level(logging.WARNING, logger="stencil.template.library"):
            library.filter("f", str.lower)

        assert library.filters["f"] is str.lower
        assert "overwrites existing filter" in caplog.text


class TestLibraryFreeze:

    def test_mappings_are_read_only(self):
        library = Library("lib")
        library.tag("echo", make_node)

        with pytest.raises(TypeError):
            library.tags["other"] = make_node
        with pytest.raises(TypeError):
            library.filters["f"] = str.upper

    def test_freeze_blocks_registration(self):
        library = Library("lib")
        assert library.freeze() is library
        assert library.frozen

        with pytest.raises(RuntimeError, match="frozen"):
            library.tag("echo", make_node)
        with pytest.raises(RuntimeError, match="frozen"):
            library.filter("f", str.upper)

    def test_repr(self):
        library = Library("lib")
        library.tag("echo", make_node)

        assert repr(library) == "Library('lib', tags=1, filters=0)"
