"""
Default block tags.

Registered with every engine under the name "defaulttags" and active in
each template as a builtin.
"""

from __future__ import annotations

from .tags import TEMPLATETAG_MAPPING, library

__all__ = ["library", "TEMPLATETAG_MAPPING"]
