"""
Tag and filter libraries.

A Library is a named bundle of tag factories and filters. Libraries are
filled through decorators, then frozen when registered with an engine;
from that point they are shared read-only between parse sessions.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, TYPE_CHECKING, runtime_checkable

from .expressions import FilterFunc

if TYPE_CHECKING:
    from .nodes import Node
    from .protocols import ParserHandle

logger = logging.getLogger(__name__)


@runtime_checkable
class TagFactory(Protocol):
    """
    Compiles one block tag into a node.

    Receives the tag content (tag name already split off) and the parser
    handle; may consume further tokens to build a body. Returning None
    adds nothing to the node list.
    """

    def __call__(self, content: str, parser: ParserHandle) -> Optional[Node]:
        ...


class Library:
    """
    Registry of tag factories and filters of one extension bundle.

    Usage:
        library = Library("text")

        @library.filter
        def shout(value):
            return str(value).upper() + "!"

        @library.tag("repeat")
        def do_repeat(content, parser):
            ...
    """

    def __init__(self, name: str):
        if not name:
            raise ValueError("Library name cannot be empty")
        self.name = name
        self._tags: Dict[str, TagFactory] = {}
        self._filters: Dict[str, FilterFunc] = {}
        self._frozen = False

    @property
    def tags(self) -> Mapping[str, TagFactory]:
        return MappingProxyType(self._tags)

    @property
    def filters(self) -> Mapping[str, FilterFunc]:
        return MappingProxyType(self._filters)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> Library:
        """Forbids further registration. Returns the library itself."""
        self._frozen = True
        return self

    def tag(self, name: Any = None, factory: Optional[TagFactory] = None) -> Any:
        """
        Registers a tag factory.

        Supports `@library.tag`, `@library.tag()`, `@library.tag("name")`
        and the plain call `library.tag("name", factory)`.
        """
        if name is None and factory is None:
            return self._tag_decorator(None)
        if factory is None:
            if callable(name):
                return self._register_tag(name.__name__, name)
            return self._tag_decorator(name)
        if name is None:
            raise ValueError(f"Unsupported arguments to Library.tag: ({name!r}, {factory!r})")
        return self._register_tag(name, factory)

    def filter(self, name: Any = None, func: Optional[FilterFunc] = None) -> Any:
        """
        Registers a filter.

        Supports `@library.filter`, `@library.filter()`,
        `@library.filter("name")` and `library.filter("name", func)`.
        """
        if name is None and func is None:
            return self._filter_decorator(None)
        if func is None:
            if callable(name):
                return self._register_filter(name.__name__, name)
            return self._filter_decorator(name)
        if name is None:
            raise ValueError(f"Unsupported arguments to Library.filter: ({name!r}, {func!r})")
        return self._register_filter(name, func)

    def _tag_decorator(self, name: Optional[str]) -> Callable[[TagFactory], TagFactory]:
        def dec(factory: TagFactory) -> TagFactory:
            return self._register_tag(name or factory.__name__, factory)
        return dec

    def _filter_decorator(self, name: Optional[str]) -> Callable[[FilterFunc], FilterFunc]:
        def dec(func: FilterFunc) -> FilterFunc:
            return self._register_filter(name or func.__name__, func)
        return dec

    def _register_tag(self, name: str, factory: TagFactory) -> TagFactory:
        self._check_writable()
        if name in self._tags:
            logger.warning(f"Tag '{name}' in library '{self.name}' overwrites existing tag")
        self._tags[name] = factory
        return factory

    def _register_filter(self, name: str, func: FilterFunc) -> FilterFunc:
        self._check_writable()
        if name in self._filters:
            logger.warning(f"Filter '{name}' in library '{self.name}' overwrites existing filter")
        self._filters[name] = func
        return func

    def _check_writable(self) -> None:
        if self._frozen:
            raise RuntimeError(f"Library '{self.name}' is frozen and cannot be modified")

    def __repr__(self) -> str:
        return f"Library({self.name!r}, tags={len(self._tags)}, filters={len(self._filters)})"


__all__ = ["Library", "TagFactory"]
