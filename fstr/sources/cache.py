"""Locator classification and deterministic cache paths."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import SplitResult, urlsplit, urlunsplit

from fstr.errors import FetchError

CACHE_DIRNAME = ".fstr/remote"

_REPO_RE = re.compile(r"\.git([?#].*)?$")
_SSH_SHORTHAND_RE = re.compile(r"^git@[^:/]+:")
_RECIPE_FILE_RE = re.compile(r"(\.fstr\.(json|ya?ml)|\.schema(\.json)?)$")


@dataclass(frozen=True)
class CacheInfo:
    """Where a remote locator lives on disk, plus repo metadata."""

    path: Path
    origin: str = ""
    branch: str = ""
    repo_name: str = ""


def is_repo(locator: str) -> bool:
    """True for ``.git`` references, optionally followed by a query or fragment."""
    return bool(_REPO_RE.search(locator))


def is_recipe_file(path: str | Path) -> bool:
    """True for file names recognised as recipe schemas."""
    return bool(_RECIPE_FILE_RE.search(str(path)))


def expand_ssh_shorthand(locator: str) -> str:
    """Rewrite ``git@host:org/repo`` into ``ssh://git@host/org/repo.git``.

    Other locators are returned unchanged.
    """
    if not _SSH_SHORTHAND_RE.match(locator):
        return locator

    expanded = "ssh://" + locator.replace(":", "/", 1)
    path, sep, fragment = expanded.partition("#")
    if not path.endswith(".git"):
        path += ".git"
    return path + sep + fragment


def parse_url(locator: str) -> SplitResult | None:
    """Return the split URL, or ``None`` when *locator* is not a URL."""
    url = urlsplit(locator)
    if not url.scheme or len(url.scheme) < 2:
        # single letters are Windows drive letters, not schemes
        return None
    if not url.netloc and url.scheme != "file":
        return None
    return url


def _contained(relative: str, url: SplitResult) -> str:
    """Normalise *relative* so it cannot climb out of the cache root."""
    cleaned = posixpath.normpath("/" + relative).lstrip("/")
    if not cleaned or cleaned == "." or ".." in PurePosixPath(cleaned).parts:
        raise FetchError(f"Cannot derive a cache path from {urlunsplit(url)}", url=urlunsplit(url))
    return cleaned


def get_cache_info(url: SplitResult, cache_root: Path) -> CacheInfo:
    """Compute the deterministic cache location for *url*.

    Plain files map to ``<cache_root>/<host><path><query>`` (``?`` becomes
    ``-``). Repositories map to ``<cache_root>/<path>`` and also carry the
    clone origin and the branch encoded in the fragment. ``..`` segments are
    collapsed, so every path stays below ``cache_root``.

    Raises:
        FetchError: *url* leaves nothing to name a cache entry after.
    """
    if not is_repo(url.path):
        query = f"-{url.query}" if url.query else ""
        relative = f"{url.hostname or ''}/{posixpath.normpath('/' + url.path)}{query}"
        return CacheInfo(path=cache_root / _contained(relative, url))

    repo_path = posixpath.normpath("/" + url.path).lstrip("/")
    repo_name = _contained(repo_path or url.hostname or "repo", url)
    origin = urlunsplit((url.scheme, url.netloc, url.path, "", ""))
    return CacheInfo(
        path=cache_root / repo_name,
        origin=origin,
        branch=url.fragment,
        repo_name=repo_name,
    )
