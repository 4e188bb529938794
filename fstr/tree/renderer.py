"""Materialise a ``VirtualFile`` tree at a destination directory.

For every node the renderer runs, in order:

1. the action handler matching the node's ``{action}`` token, if any,
2. the registered file handlers whose pattern matches the node name
   (a handler returning ``True`` stops the remaining ones),
3. default generation (mkdir / copy) unless an action handler ran, a file
   handler produced outputs, or the node is marked ``skip``,
4. templaters whose suffix matches the node name; these see the outputs.

A directory's children are only started once the directory has signalled
completion. At most ``batch_size`` nodes do work at the same time.
"""

from __future__ import annotations

import asyncio
import fnmatch
import inspect
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Union

from fstr.utils import remove_tree

from .virtual_file import VirtualFile, render_slot

logger = logging.getLogger(__name__)

NodeHandler = Callable[[VirtualFile], Union[Awaitable[Any], Any]]

DEFAULT_BATCH_SIZE = 10


async def _call(handler: NodeHandler, node: VirtualFile) -> Any:
    result = handler(node)
    if inspect.isawaitable(result):
        result = await result
    return result


class Renderer:
    """Walks a virtual file tree and writes it under ``dest``."""

    def __init__(self, root: VirtualFile, dest: str | Path, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.root = root
        self.dest = Path(dest)
        self.batch_size = batch_size
        self.root.base_url = self.dest
        self.handlers: dict[str, NodeHandler] = {}
        self.file_handlers: list[tuple[str, NodeHandler]] = []
        self.templaters: list[tuple[str, NodeHandler]] = []
        self._slots: asyncio.Semaphore | None = None
        self._register_default_handlers()

    # -- Registration ------------------------------------------------------

    def register_handler(self, action: str, handler: NodeHandler) -> None:
        """Handle nodes whose name carries ``{action...}``."""
        self.handlers[action] = handler

    def register_file_handler(self, pattern: str, handler: NodeHandler) -> None:
        """Run *handler* before default generation on nodes matching *pattern*.

        *pattern* is an ``fnmatch`` glob tested against the node name
        (``"*.j2"``, ``"Dockerfile"``, ``"*"``).
        """
        self.file_handlers.append((pattern, handler))

    def register_templater(self, suffix: str, handler: NodeHandler) -> None:
        """Run *handler* after generation on nodes whose name ends with *suffix*."""
        self.templaters.append((suffix, handler))

    # -- Rendering ---------------------------------------------------------

    async def render(self, clean_first: bool = False) -> None:
        """Render the whole tree.

        Args:
            clean_first: Recursively remove the destination before rendering.
        """
        if clean_first:
            await remove_tree(self.dest)

        self._slots = asyncio.Semaphore(self.batch_size)
        await self._render_subtree(self.root)

    async def _render_subtree(self, node: VirtualFile) -> None:
        assert self._slots is not None
        async with self._slots:
            token = render_slot.set(self._slots)
            try:
                await self.render_node(node)
            finally:
                render_slot.reset(token)

        if node.children:
            # every subtree settles before the first failure propagates
            results = await asyncio.gather(
                *(self._render_subtree(child) for child in node.children), return_exceptions=True
            )
            errors = [result for result in results if isinstance(result, BaseException)]
            if errors:
                raise errors[0]

    async def render_node(self, node: VirtualFile) -> None:
        """Generate a single node and signal its completion."""
        try:
            action_handler = self.handlers.get(node.action) if node.action else None
            if action_handler is not None:
                await _call(action_handler, node)

            for pattern, handler in self.file_handlers:
                if fnmatch.fnmatch(node.name, pattern) and await _call(handler, node) is True:
                    break

            if action_handler is None and not node.outputs and not node.skip:
                await node.generate_files()

            for suffix, templater in self.templaters:
                if node.name.endswith(suffix):
                    await _call(templater, node)
        except Exception as exc:
            node.reject(exc)
            raise

        node.resolve()

    # -- Default handlers --------------------------------------------------

    def _register_default_handlers(self) -> None:
        async def each(node: VirtualFile) -> None:
            values = node.args.get("values") or []
            if isinstance(values, str):
                values = [values]
            for value in values:
                await node.generate_files(value)

        async def dirname(node: VirtualFile) -> None:
            await node.generate_files(lambda prev: node.name.replace("{dirname}", prev.name))

        self.register_handler("each", each)
        self.register_handler("dirname", dirname)
