"""
Registry of named libraries.

Maps library names to Library objects, either registered directly or
declared lazily as "module + attribute" and imported on first lookup.
The registry is filled once while the engine is being set up and is
read-only afterwards, so it can be shared by concurrent parse sessions.
"""

from __future__ import annotations

import enum
import importlib
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .library import Library
from ..errors import LibraryResolutionError

logger = logging.getLogger(__name__)


class Precedence(enum.Enum):
    """Which active library wins when several define the same tag or filter name."""
    LATEST_WINS = "latest"      # Most recently loaded library first, builtins last
    EARLIEST_WINS = "earliest"  # Builtins first, most recently loaded library last


@dataclass(frozen=True)
class _LazySpec:
    module: str
    attribute: str


class LibraryRegistry:
    """
    Name -> Library lookup used by the engine.

    Lazy specs are resolved on every lookup through importlib; the module
    cache makes repeated lookups cheap and keeps the registry itself free
    of writes after setup.
    """

    def __init__(self):
        self._libraries: Dict[str, Library] = {}
        self._lazy: Dict[str, _LazySpec] = {}

    def register(self, library: Library, name: Optional[str] = None) -> Library:
        """
        Registers (and freezes) a library.

        Args:
            library: Library to register
            name: Registration name (defaults to library.name)

        Raises:
            ValueError: If the name is already taken
        """
        key = name or library.name
        self._ensure_free(key)
        self._libraries[key] = library.freeze()
        logger.debug(f"Registered library '{key}'")
        return library

    def register_lazy(self, name: str, module: str, attribute: str = "library") -> None:
        """
        Declares a library by module path without importing it.

        Args:
            name: Registration name
            module: Absolute module path
            attribute: Module attribute holding the Library

        Raises:
            ValueError: If the name is already taken
        """
        self._ensure_free(name)
        self._lazy[name] = _LazySpec(module=module, attribute=attribute)
        logger.debug(f"Registered lazy library '{name}' -> {module}:{attribute}")

    def find(self, name: str) -> Library:
        """
        Resolves a library by name.

        Raises:
            LibraryResolutionError: If the name is unknown or the lazy spec
                cannot be imported
        """
        library = self._libraries.get(name)
        if library is not None:
            return library

        spec = self._lazy.get(name)
        if spec is None:
            raise LibraryResolutionError(name, f"available: {', '.join(self.names()) or 'none'}")
        return self._load_from_spec(name, spec)

    def names(self) -> List[str]:
        return sorted(set(self._libraries) | set(self._lazy))

    def __contains__(self, name: object) -> bool:
        return name in self._libraries or name in self._lazy

    def _ensure_free(self, name: str) -> None:
        if name in self:
            raise ValueError(f"Library '{name}' already registered")

    @staticmethod
    def _load_from_spec(name: str, spec: _LazySpec) -> Library:
        try:
            module = importlib.import_module(spec.module)
        except ImportError as e:
            raise LibraryResolutionError(name, f"cannot import '{spec.module}': {e}") from e

        library = getattr(module, spec.attribute, None)
        if not isinstance(library, Library):
            raise LibraryResolutionError(
                name, f"'{spec.module}.{spec.attribute}' is not a Library"
            )
        return library.freeze()


__all__ = ["LibraryRegistry", "Precedence"]
