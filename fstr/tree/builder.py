"""Build a ``VirtualFile`` tree from a directory on disk."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path

from .virtual_file import VirtualFile

DEFAULT_EXCLUDES: tuple[str, ...] = (".git", "node_modules", "__pycache__")


@dataclass
class Group:
    """One directory of a walk and the files directly inside it."""

    dir: Path
    files: list[Path] = field(default_factory=list)


def _walk(root: Path, excluded: set[str]) -> list[Group]:
    groups: list[Group] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        current = Path(dirpath)
        groups.append(
            Group(dir=current, files=[current / f for f in sorted(filenames) if f not in excluded])
        )
    return sorted(groups, key=lambda g: g.dir.as_posix())


async def list_all_files(directory: str | Path, exclude: list[str] | None = None) -> list[Group]:
    """Walk *directory* in a worker thread, grouped by directory.

    ``.git``, ``node_modules`` and ``__pycache__`` are always skipped, as is
    any directory or file whose name is in *exclude*. Groups are sorted by
    directory path so the order is reproducible.

    Raises:
        FileNotFoundError: If *directory* does not exist.
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"No such directory: {root}")
    excluded = set(DEFAULT_EXCLUDES) | set(exclude or [])
    return await asyncio.to_thread(_walk, root, excluded)


async def build_tree(source: str | Path, exclude: list[str] | None = None) -> VirtualFile:
    """Mirror *source* as a tree of ``VirtualFile`` nodes and return the root.

    A single-file source yields a synthetic root directory holding that file.
    """
    source = Path(source)
    nodes: dict[str, VirtualFile] = {}
    root: VirtualFile | None = None

    def add(is_dir: bool, path: Path, base: Path) -> VirtualFile:
        nonlocal root
        relative = path.relative_to(base).as_posix()
        name = "/" if relative == "." else f"/{relative}"
        node = VirtualFile(is_dir, name, path)

        if root is None:
            root = node
        node.root = root

        parent_name = name.rsplit("/", 1)[0] or "/"
        if name != "/":
            node.set_parent(nodes.get(parent_name))
        nodes[name] = node
        return node

    if source.is_file():
        add(True, source.parent, source.parent)
        add(False, source, source.parent)
        assert root is not None
        return root

    for group in await list_all_files(source, exclude):
        add(True, group.dir, source)
        for file in group.files:
            add(False, file, source)

    assert root is not None
    return root
