"""
Render context.

Holds template variables as a stack of scopes. Block tags push a scope
while rendering their body (loop variables, `with` aliases) and the scope
is dropped again on exit.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional


class Context:
    """
    Variable storage used while rendering a node tree.

    Lookups search the innermost scope first. Assignments always go to
    the innermost scope, so they disappear when that scope is popped.
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None, *, string_if_invalid: str = ""):
        """
        Args:
            data: Initial variables (copied into the outermost scope)
            string_if_invalid: Output used for variables that fail to resolve
        """
        self._scopes: List[Dict[str, Any]] = [dict(data or {})]
        self.string_if_invalid = string_if_invalid

    def __getitem__(self, key: str) -> Any:
        for scope in reversed(self._scopes):
            if key in scope:
                return scope[key]
        raise KeyError(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self._scopes[-1][key] = value

    def __contains__(self, key: object) -> bool:
        return any(key in scope for scope in self._scopes)

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    @contextmanager
    def push(self, values: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Iterator[Context]:
        """
        Opens a new innermost scope for the duration of the block.

        Usage:
            with context.push(item=value):
                ...
        """
        scope = dict(values or {})
        scope.update(kwargs)
        self._scopes.append(scope)
        try:
            yield self
        finally:
            self._scopes.pop()

    @property
    def depth(self) -> int:
        """Number of scopes currently on the stack."""
        return len(self._scopes)

    def flatten(self) -> Dict[str, Any]:
        """Returns all visible variables as one dict (inner scopes win)."""
        result: Dict[str, Any] = {}
        for scope in self._scopes:
            result.update(scope)
        return result

    def __repr__(self) -> str:
        return f"Context({self.flatten()!r})"


__all__ = ["Context"]
