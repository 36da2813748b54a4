"""Workspace consistency engine for git-backed markdown note workspaces.

Keeps ``[[wiki-links]]`` and image references valid across moves, validates
links and image assets, and tracks per-document sync status against a git
remote.
"""

__version__ = "0.3.0"

from .workspace import Workspace

__all__ = ["Workspace", "__version__"]
