"""Fetching git repositories into the source cache.

A repository is materialised as a regular (optionally sparse) checkout at its
deterministic cache path. Any failure removes the partially created checkout
before the error propagates.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from pathlib import Path, PurePosixPath

from fstr.errors import GitError
from fstr.sources.cache import CacheInfo
from fstr.utils import decode_output, remove_tree

logger = logging.getLogger(__name__)


async def _run_git(
    *args: str,
    cwd: str | Path | None = None,
    timeout: float | None = None,
) -> tuple[str, str]:
    """Run ``git *args`` in *cwd* and return its stripped (stdout, stderr).

    Raises:
        GitError: Non-zero exit, or *timeout* seconds elapsed.
    """
    command = shlex.join(("git", *args))
    process = await asyncio.create_subprocess_exec(
        "git",
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=None if cwd is None else str(cwd),
    )
    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise GitError(f"{command} timed out after {timeout}s", command=command) from None

    stdout, stderr = decode_output(out), decode_output(err)
    if process.returncode:
        raise GitError(f"{command} exited with {process.returncode}: {stderr}", command=command, stderr=stderr)
    return stdout, stderr


async def resolve_default_branch(cwd: Path) -> str:
    """Name of the remote's default branch, from ``refs/remotes/origin/HEAD``.

    Falls back to ``git remote set-head origin --auto`` when the symbolic ref
    has not been recorded locally yet.
    """
    try:
        head, _ = await _run_git("symbolic-ref", "refs/remotes/origin/HEAD", cwd=cwd)
    except GitError:
        head = ""

    if not head:
        await _run_git("remote", "set-head", "origin", "--auto", cwd=cwd)
        head, _ = await _run_git("symbolic-ref", "refs/remotes/origin/HEAD", cwd=cwd)

    return PurePosixPath(head.strip()).name


async def fetch_repo(cache_info: CacheInfo, subdirs: list[str] | None = None) -> Path:
    """Check out *cache_info.origin* at *cache_info.path*.

    Args:
        cache_info: Cache location, origin URL and optional ref (fragment).
        subdirs: Restrict the checkout to these paths (sparse checkout).

    Returns:
        The checkout directory.

    Raises:
        GitError: If any git step fails. The checkout directory is removed
            first.
    """
    repo = cache_info.path
    ref = cache_info.branch

    logger.info(
        f"will clone {f'[blue]{ref}[/blue] of ' if ref else ''}"
        f"[yellow]{cache_info.origin}[/yellow] into [green]{cache_info.repo_name}[/green]"
    )

    try:
        await asyncio.to_thread(repo.mkdir, parents=True, exist_ok=True)

        if not (repo / ".git").exists():
            await _run_git("init", "--quiet", cwd=repo)
            await _run_git("remote", "add", "-f", "origin", cache_info.origin, cwd=repo)

        if subdirs:
            await _run_git("config", "core.sparseCheckout", "true", cwd=repo)
            sparse_file = repo / ".git" / "info" / "sparse-checkout"
            sparse_file.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(sparse_file.write_text, "\n".join(subdirs) + "\n", "utf-8")

        if not ref:
            ref = await resolve_default_branch(repo)

        await _run_git("fetch", "--quiet", "origin", ref, cwd=repo)
        await _run_git("reset", "--quiet", "--hard", "FETCH_HEAD", cwd=repo)
    except Exception as exc:
        if isinstance(exc, GitError):
            exc.url = cache_info.origin
        await remove_tree(repo)
        raise

    return repo
