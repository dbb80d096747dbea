"""
Shared test infrastructure.

Modules:
- file_utils: writing files under tmp_path
- libraries: tag libraries and lookups used to drive the parser
- parsing_utils: compiling and rendering shortcuts
"""

from .file_utils import write
from .libraries import DictLookup, MarkerNode, WrapNode, make_block_library, make_marker_library
from .parsing_utils import make_parser, parse, render_nodes

__all__ = [
    "write",
    "DictLookup",
    "MarkerNode",
    "WrapNode",
    "make_block_library",
    "make_marker_library",
    "make_parser",
    "parse",
    "render_nodes",
]
