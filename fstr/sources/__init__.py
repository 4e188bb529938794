"""fstr source layer -- resolves locators to local directories.

Key pieces:
    SourceFetcher   - single-flight fetcher for local paths, URLs and git remotes
    CacheInfo       - deterministic cache location of a remote locator
    fetch_repo      - git checkout into the cache
"""

from .cache import (
    CacheInfo,
    expand_ssh_shorthand,
    get_cache_info,
    is_recipe_file,
    is_repo,
    parse_url,
)
from .fetcher import SourceFetcher
from .git import fetch_repo

__all__ = [
    "CacheInfo",
    "SourceFetcher",
    "expand_ssh_shorthand",
    "fetch_repo",
    "get_cache_info",
    "is_recipe_file",
    "is_repo",
    "parse_url",
]
