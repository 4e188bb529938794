"""Per-invocation state shared by the scheduler, recipes and fetcher."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from fstr.config import RunOptions
from fstr.sources.cache import CACHE_DIRNAME
from fstr.sources.fetcher import SourceFetcher

if TYPE_CHECKING:
    from fstr.recipes.recipe import Recipe

logger = logging.getLogger(__name__)

PROJECT_MARKERS: tuple[str, ...] = ("pyproject.toml", "setup.py", "package.json")


def find_project_root(start: str | Path | None = None, max_height: int | None = None) -> Path:
    """Find the nearest ancestor of *start* holding a project marker file.

    Looks at most ``max_height`` levels up (``FSTR_PACKAGE_HEIGHT``, default
    10) and falls back to the current working directory.
    """
    if max_height is None:
        try:
            max_height = int(os.environ.get("FSTR_PACKAGE_HEIGHT", "10"))
        except ValueError:
            max_height = 10

    current = Path(start or Path.cwd()).resolve()
    for _ in range(max_height):
        if any((current / marker).exists() for marker in PROJECT_MARKERS):
            return current
        if current.parent == current:
            break
        current = current.parent

    fallback = Path.cwd().resolve()
    logger.warning(
        f"project root not found, using {fallback} - consider increasing "
        f"FSTR_PACKAGE_HEIGHT (was {max_height})"
    )
    return fallback


@dataclass
class RunContext:
    """Everything one run shares: options, cache, fetched dirs, discoveries."""

    options: RunOptions = field(default_factory=RunOptions)
    project_root: Path | None = None
    fetcher: SourceFetcher | None = None
    source_dirs: list[Path] = field(default_factory=list)
    discovered: list["Recipe"] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.project_root is None:
            self.project_root = (
                Path(self.options.project_root).resolve()
                if self.options.project_root
                else find_project_root()
            )
        if self.fetcher is None:
            self.fetcher = SourceFetcher(self.cache_root)

    @property
    def cache_root(self) -> Path:
        assert self.project_root is not None
        return self.project_root / CACHE_DIRNAME

    @property
    def output_root(self) -> Path:
        return Path(self.options.output) if self.options.output else Path.cwd()

    def add_source_dirs(self, dirs: list[Path]) -> None:
        for directory in dirs:
            if directory not in self.source_dirs:
                self.source_dirs.append(directory)
