"""
stencil: text templates with pluggable tag and filter libraries.
"""

from __future__ import annotations

from .config import EngineConfig, load_config
from .engine import Engine, Template
from .errors import (
    ConfigError,
    InvalidFilterError,
    InvalidTagError,
    LibraryResolutionError,
    ScanError,
    StencilError,
    TemplateNotFound,
    TemplateSyntaxError,
    UnclosedTagError,
    UnexpectedEndError,
    VariableDoesNotExist,
)
from .template import Context, Library, LibraryRegistry, Node, NodeList, Precedence
from .version import tool_version

__version__ = tool_version()

__all__ = [
    "Engine",
    "Template",
    "EngineConfig",
    "load_config",
    "Context",
    "Library",
    "LibraryRegistry",
    "Node",
    "NodeList",
    "Precedence",
    "StencilError",
    "TemplateSyntaxError",
    "ScanError",
    "InvalidTagError",
    "InvalidFilterError",
    "UnexpectedEndError",
    "UnclosedTagError",
    "LibraryResolutionError",
    "VariableDoesNotExist",
    "TemplateNotFound",
    "ConfigError",
    "__version__",
]
