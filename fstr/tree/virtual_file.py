"""In-memory mirror of a source tree, prior to rendering.

Each ``VirtualFile`` knows where it came from and, once generated, where its
output(s) went. A node may produce several outputs: when a directory fans out
(``{each:values=a,b}``) every descendant is generated once per parent output.
"""

from __future__ import annotations

import asyncio
import contextvars
import itertools
import logging
import os
import re
import shutil
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Union

from fstr.errors import RecipeRuntimeError

logger = logging.getLogger(__name__)

PathGetter = Callable[[Path], str]
NameSpec = Union[str, PathGetter, None]

_ACTION_RE = re.compile(r"\{([^:}]+)(?::([^}]+))?\}")
_ids = itertools.count(1)

# Semaphore of the renderer currently driving this task, if any. A node that
# waits on its siblings hands its slot back while it waits.
render_slot: contextvars.ContextVar[asyncio.Semaphore | None] = contextvars.ContextVar(
    "render_slot", default=None
)


class CompletionSignal:
    """One-shot signal that resolves, or fails with an exception."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._error: BaseException | None = None

    @property
    def done(self) -> bool:
        return self._event.is_set()

    @property
    def error(self) -> BaseException | None:
        return self._error

    def resolve(self) -> None:
        self._event.set()

    def reject(self, error: BaseException) -> None:
        if self._event.is_set():
            return
        self._error = error
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
        if self._error is not None:
            raise self._error


def parse_action(name: str) -> tuple[str | None, dict[str, Any]]:
    """Split a ``{action:key=val;key2=v1,v2}`` token out of a file name.

    Values containing commas become lists.
    """
    match = _ACTION_RE.search(name)
    if not match:
        return None, {}

    action, raw_args = match.group(1), match.group(2)
    args: dict[str, Any] = {}
    for pair in (raw_args or "").split(";"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        args[key] = value.split(",") if "," in value else value
    return action, args


class VirtualFile:
    """A file or directory of the source tree.

    Attributes:
        relative_source_path: ``/``-rooted posix path inside the source tree.
        full_source_path: Absolute path of the source file or directory.
        outputs: Paths actually materialised for this node.
        generated: Completion signal other nodes may await.
        action / args: Parsed ``{action:...}`` token of the name, if any.
        skip: When set, the renderer does not run default generation.
    """

    def __init__(self, is_dir: bool, relative_source_path: str, full_source_path: str | Path = "") -> None:
        self.id = next(_ids)
        self.is_dir = is_dir
        self.relative_source_path = relative_source_path
        self.name = PurePosixPath(relative_source_path).name or "/"
        self.full_source_path = Path(full_source_path) if full_source_path else Path()
        self.ext = "" if is_dir else PurePosixPath(self.name).suffix
        self.parent: VirtualFile | None = None
        self.children: list[VirtualFile] = []
        self.root: VirtualFile | None = None
        self.outputs: list[Path] = []
        self.base_url: Path | None = None
        self.skip = False
        self.generated = CompletionSignal()
        self.action, self.args = parse_action(self.name)
        self._sibling_waiter: VirtualFile | None = None

    def __repr__(self) -> str:
        kind = "dir" if self.is_dir else "file"
        return f"VirtualFile<{kind} {self.relative_source_path}>"

    # -- Tree edges --------------------------------------------------------

    def add_child(self, child: VirtualFile) -> None:
        self.children.append(child)

    def remove_child(self, child: VirtualFile) -> bool:
        before = len(self.children)
        self.children = [c for c in self.children if c.id != child.id]
        return len(self.children) != before

    def set_parent(self, parent: VirtualFile | None) -> bool:
        if parent is None:
            return False
        if self.parent is not None:
            self.parent.remove_child(self)
        self.parent = parent
        parent.add_child(self)
        return True

    def get_siblings(self) -> list[VirtualFile]:
        if self.parent is None:
            return []
        return [n for n in self.parent.children if n.id != self.id]

    # -- Completion --------------------------------------------------------

    def resolve(self) -> None:
        logger.debug(f"{self.name}: resolved")
        self.generated.resolve()

    def reject(self, error: BaseException) -> None:
        self.generated.reject(error)

    async def generate_siblings(self) -> list[Path]:
        """Wait until every sibling has been generated and return their outputs.

        Raises:
            RecipeRuntimeError: Another sibling is already waiting.
        """
        parent = self.parent
        if parent is not None:
            if parent._sibling_waiter is not None and parent._sibling_waiter is not self:
                raise RecipeRuntimeError("Multiple nodes are waiting for siblings")
            parent._sibling_waiter = self

        siblings = self.get_siblings()
        slot = render_slot.get()
        if slot is not None:
            slot.release()
        try:
            await asyncio.gather(*(sibling.generated.wait() for sibling in siblings))
        finally:
            if slot is not None:
                await slot.acquire()
            if parent is not None:
                parent._sibling_waiter = None

        outputs: list[Path] = []
        for sibling in siblings:
            outputs.extend(sibling.outputs)
        return outputs

    # -- Generation --------------------------------------------------------

    async def generate_files(self, name: NameSpec = None) -> list[Path]:
        """Default generation: ``mkdir`` for directories, copy for files.

        Args:
            name: Output name. A string, or a callable receiving each previous
                output directory. Defaults to the node's own name.

        Returns:
            All outputs of this node so far.
        """
        logger.debug(f"{self.name}: generate")
        try:
            if self.is_dir:
                await self.mkdir(name)
            else:
                await self.mkfile(name)
        except Exception as exc:
            self.reject(exc)
            raise
        return self.outputs

    def get_outputs(self, name: NameSpec = None) -> list[Path]:
        """Outputs this node has, or would have if generated now."""
        if self.outputs:
            return list(self.outputs)
        return [self._target(prev, name) for prev in self.previous_outputs()]

    async def mkdir(self, name: NameSpec = None) -> list[Path]:
        for prev in self.previous_outputs():
            target = self._target(prev, name)
            await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)
            self.outputs.append(target)
            logger.debug(f"{self.name}: out {target}")
        return self.outputs

    async def mkfile(self, name: NameSpec = None) -> list[Path]:
        for prev in self.previous_outputs():
            target = self._target(prev, name)
            if target.exists():
                logger.debug(f"{self.name}: exists {target}")
                continue
            await asyncio.to_thread(shutil.copyfile, self.full_source_path, target)
            self.outputs.append(target)
            logger.debug(f"{self.name}: out {target}")
        return self.outputs

    def previous_outputs(self) -> list[Path]:
        """Directories this node is generated into."""
        if self.base_url is not None:
            return [self.base_url]
        if self.parent is None:
            return []
        return list(self.parent.outputs)

    def _target(self, prev: Path, name: NameSpec) -> Path:
        if self.base_url is not None and name is None:
            # the tree root is the destination itself
            return prev
        if callable(name):
            return prev / name(prev)
        return prev / (name if name is not None else self.name)

    def walk(self):
        """Yield this node and its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "is_dir": self.is_dir,
            "relative_source_path": self.relative_source_path,
            "full_source_path": os.fspath(self.full_source_path),
            "outputs": [os.fspath(o) for o in self.outputs],
            "action": self.action,
            "args": self.args,
            "parent": f"VirtualFile<{self.parent.name}>" if self.parent else None,
            "children": [f"VirtualFile<{c.name}>" for c in self.children],
        }
