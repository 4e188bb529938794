"""fstr virtual file tree -- mirrors a source directory and renders it.

Quick usage::

    from fstr.tree import Renderer, build_tree

    root = await build_tree("/path/to/source", exclude=["dist"])
    await Renderer(root, "/path/to/output").render()
"""

from .builder import DEFAULT_EXCLUDES, Group, build_tree, list_all_files
from .renderer import DEFAULT_BATCH_SIZE, NodeHandler, Renderer
from .virtual_file import CompletionSignal, VirtualFile, parse_action

__all__ = [
    "CompletionSignal",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_EXCLUDES",
    "Group",
    "NodeHandler",
    "Renderer",
    "VirtualFile",
    "build_tree",
    "list_all_files",
    "parse_action",
]
