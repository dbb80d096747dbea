"""
Engine facade.

Ties together configuration, the library registry, builtins, template
loading and the compiled-template cache.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .config import EngineConfig, parse_library_target
from .errors import ConfigError, TemplateNotFound
from .template.context import Context
from .template.lexer import tokenize
from .template.library import Library
from .template.nodes import NodeList
from .template.parser import Parser
from .template.registry import LibraryRegistry

logger = logging.getLogger(__name__)

# name -> module holding a `library` attribute
DEFAULT_LIBRARIES: Dict[str, str] = {
    "defaulttags": "stencil.defaulttags",
    "defaultfilters": "stencil.defaultfilters",
}


class Engine:
    """
    Template engine.

    Setup (registry, builtins) happens once in the constructor; after that
    the engine only reads shared state, so one engine can compile
    templates from several threads.
    """

    def __init__(self, config: Optional[EngineConfig] = None, registry: Optional[LibraryRegistry] = None):
        """
        Args:
            config: Engine settings (defaults if omitted)
            registry: Pre-filled registry; default and configured libraries are added to it

        Raises:
            ConfigError: On conflicting library names or malformed library targets
            LibraryResolutionError: If a builtin library cannot be resolved
        """
        self.config = config or EngineConfig()
        self.registry = registry if registry is not None else LibraryRegistry()

        self._register_default_libraries()
        self._register_configured_libraries()

        self.builtins: Tuple[Library, ...] = tuple(self.registry.find(name) for name in self.config.builtins)
        self._cache: Dict[str, Template] = {}

        logger.debug(f"Engine ready with builtins {self.config.builtins} and {len(self.config.dirs)} template dirs")

    def _register_default_libraries(self) -> None:
        for name, module in DEFAULT_LIBRARIES.items():
            if name not in self.registry:
                self.registry.register_lazy(name, module)

    def _register_configured_libraries(self) -> None:
        for name, target in self.config.libraries.items():
            module, attribute = parse_library_target(target)
            try:
                self.registry.register_lazy(name, module, attribute)
            except ValueError as e:
                raise ConfigError(str(e)) from e

    # Libraries

    def find_library(self, name: str) -> Library:
        """
        Resolves a library for `{% load %}`.

        Raises:
            LibraryResolutionError: If the name is unknown
        """
        return self.registry.find(name)

    # Compilation

    def compile(self, source: str, origin: Optional[str] = None) -> NodeList:
        """
        Compiles template source in a fresh parse session.

        Raises:
            TemplateSyntaxError: On the first syntax error in the source
            LibraryResolutionError: On `{% load %}` of an unknown library
        """
        parser = Parser(
            tokenize(source),
            self.builtins,
            lookup=self.find_library,
            precedence=self.config.precedence,
            origin=origin,
        )
        return parser.parse()

    def from_string(self, source: str, name: Optional[str] = None) -> Template:
        return Template(source, self, name=name)

    def get_template(self, name: str) -> Template:
        """
        Loads and compiles a template from the configured directories.

        Compiled templates are cached by name until `clear_cache()`.

        Raises:
            TemplateNotFound: If no directory contains the template
        """
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        path = self._find_template_file(name)
        template = Template(path.read_text(encoding=self.config.encoding), self, name=name)
        self._cache[name] = template
        logger.debug(f"Compiled template '{name}' from {path}")
        return template

    def _find_template_file(self, name: str) -> Path:
        relative = PurePosixPath(name)
        if relative.is_absolute() or ".." in relative.parts:
            raise TemplateNotFound(name)

        searched: List[str] = []
        for directory in self.config.dirs:
            candidate = Path(directory) / relative
            searched.append(str(candidate))
            if candidate.is_file():
                return candidate
        raise TemplateNotFound(name, searched)

    def clear_cache(self) -> None:
        self._cache.clear()

    def render_to_string(self, name: str, data: Optional[Mapping[str, Any]] = None) -> str:
        return self.get_template(name).render(data)


class Template:
    """
    Compiled template.

    Usage:
        template = Template("Hello, {{ name|default:'world' }}!")
        template.render({"name": "Ann"})
    """

    def __init__(self, source: str, engine: Optional[Engine] = None, name: Optional[str] = None):
        self.source = source
        self.engine = engine if engine is not None else Engine()
        self.name = name
        self.nodelist = self.engine.compile(source, origin=name)

    def render(self, data: Union[Context, Mapping[str, Any], None] = None) -> str:
        if isinstance(data, Context):
            context = data
        else:
            context = Context(data, string_if_invalid=self.engine.config.string_if_invalid)
        return self.nodelist.render(context)

    def __repr__(self) -> str:
        return f"Template({self.name or '<string>'!r})"


__all__ = ["Engine", "Template", "DEFAULT_LIBRARIES"]
