"""MCP tool handlers for workspace operations.

Each module defines its ``types.Tool`` list and a parallel ``ToolSpec``
list; ``ALL_SPECS`` combines them for the registry.
"""

from .documents import DOCUMENT_SPECS, DOCUMENT_TOOLS
from .errors import build_error_response, translate_git_error
from .history import HISTORY_SPECS, HISTORY_TOOLS
from .links import LINK_SPECS, LINK_TOOLS
from .registry import ToolRegistry, ToolSpec

ALL_SPECS: list[ToolSpec] = DOCUMENT_SPECS + LINK_SPECS + HISTORY_SPECS

__all__ = [
    "build_error_response",
    "translate_git_error",
    # Registry
    "ToolSpec",
    "ToolRegistry",
    # Spec lists
    "ALL_SPECS",
    "DOCUMENT_SPECS",
    "LINK_SPECS",
    "HISTORY_SPECS",
    # Tool lists
    "DOCUMENT_TOOLS",
    "LINK_TOOLS",
    "HISTORY_TOOLS",
]
