"""Source fetching with a per-run single-flight cache.

``SourceFetcher.fetch_source`` turns a locator into a local path:

* existing local paths are returned untouched,
* plain remote files are downloaded with ``httpx`` into the cache root,
* git remotes are checked out into the cache root (see ``fstr.sources.git``).

Concurrent requests for the same cache path share one ``asyncio.Task``, so a
locator is fetched at most once per run no matter how many recipes use it.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from urllib.parse import SplitResult, urlunsplit

import httpx

from fstr.errors import FetchError, RecipeRuntimeError
from fstr.sources.cache import CacheInfo, get_cache_info, is_repo, parse_url
from fstr.sources.git import fetch_repo

logger = logging.getLogger(__name__)


class SourceFetcher:
    """Fetches remote sources into ``cache_root``, deduplicating in-flight work."""

    def __init__(self, cache_root: str | Path, http_timeout: float = 60.0) -> None:
        self.cache_root = Path(cache_root)
        self.http_timeout = http_timeout
        self._in_flight: dict[Path, asyncio.Task[Path]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_source(
        self,
        locator: str | Path,
        subdirs: list[str] | None = None,
        cache: bool = False,
    ) -> Path:
        """Return a local path holding the contents of *locator*.

        Args:
            locator: Local path, remote file URL or git remote URL.
            subdirs: Sparse-checkout restriction for repositories.
            cache: Reuse an existing cache entry left by a previous run.

        Raises:
            RecipeRuntimeError: *locator* is neither an existing path nor a URL.
            FetchError: The download or checkout failed.
        """
        local = Path(locator)
        if local.exists():
            logger.debug(f"will copy [green]{local}[/green]")
            return local

        url = parse_url(str(locator))
        if url is None:
            raise RecipeRuntimeError(f"No such file: {locator}")

        info = self.cache_info(url)
        task = self._in_flight.get(info.path)
        if task is not None:
            logger.debug(f"cache hit on {info.path}")
            return await task

        task = asyncio.ensure_future(self._fetch(url, info, subdirs, cache))
        self._in_flight[info.path] = task
        return await task

    def cache_info(self, url: SplitResult) -> CacheInfo:
        return get_cache_info(url, self.cache_root)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetch(
        self,
        url: SplitResult,
        info: CacheInfo,
        subdirs: list[str] | None,
        cache: bool,
    ) -> Path:
        if cache and info.path.exists():
            logger.info(f"will copy [green]{info.path}[/green] (cached)")
            return info.path

        if is_repo(url.path):
            return await fetch_repo(info, subdirs)
        return await self.fetch_file(url, info)

    async def fetch_file(self, url: SplitResult, info: CacheInfo) -> Path:
        """Download a plain remote file to ``info.path``.

        Raises:
            FetchError: On a non-2xx response (with status, headers and body)
                or a transport error (with the underlying exception).
        """
        href = urlunsplit(url)
        logger.info(f"will download [yellow]{href}[/yellow]")

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.http_timeout, connect=10.0),
                follow_redirects=True,
            ) as client:
                response = await client.get(href)
        except httpx.HTTPError as exc:
            raise FetchError("Failed to fetch from URL", url=href, error=exc) from exc

        if not 200 <= response.status_code < 300:
            raise FetchError(
                "Failed to fetch from URL",
                url=href,
                status_code=response.status_code,
                headers=dict(response.headers),
                body=response.text,
            )

        await asyncio.to_thread(_write_bytes, info.path, response.content)
        return info.path


def _write_bytes(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
