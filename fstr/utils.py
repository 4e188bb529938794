"""Shared helpers: hook-script execution, recipe data loading, file removal
and the rich console the CLI and log handler print to.
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
from pathlib import Path
from typing import Any, NamedTuple

import yaml
from rich.console import Console
from rich.table import Table

console = Console(stderr=True)

YAML_SUFFIXES = (".yaml", ".yml")


class CommandResult(NamedTuple):
    returncode: int
    stdout: str
    stderr: str


def decode_output(raw: bytes | None) -> str:
    return (raw or b"").decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# Hook scripts
# ---------------------------------------------------------------------------


async def run_command(
    command: str,
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run *command* through the shell and collect its output.

    ``env`` is layered over the current environment. With a ``timeout`` the
    process is killed once it expires and ``returncode`` is ``-1``.
    """
    process = await asyncio.create_subprocess_shell(
        command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd is not None else None,
        env={**os.environ, **env} if env else None,
    )
    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return CommandResult(-1, "", f"'{command}' timed out after {timeout}s")

    return CommandResult(process.returncode or 0, decode_output(out), decode_output(err))


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def load_data_file(path: str | Path) -> Any:
    """Parse a recipe document, as YAML for ``.yaml``/``.yml`` and JSON otherwise."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in YAML_SUFFIXES:
        return yaml.safe_load(text)
    return json.loads(text)


async def remove_tree(path: str | Path) -> None:
    """Delete a file or directory tree off the event loop; absent paths are fine."""
    path = Path(path)
    if path.is_dir():
        await asyncio.to_thread(shutil.rmtree, path, True)
    elif path.exists():
        await asyncio.to_thread(path.unlink)


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """``3.7 -> "3.7s"``, ``65.2 -> "1m 5s"``, ``3661 -> "1h 1m 1s"``."""
    seconds = max(seconds, 0.0)
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    units = [(hours, "h"), (minutes, "m"), (secs, "s")]
    if hours == 0:
        units = units[1:]
    return " ".join(f"{value}{unit}" for value, unit in units)


def print_summary_table(rows: dict[str, str], title: str = "fstr") -> None:
    table = Table(title=title, header_style="bold cyan")
    table.add_column("", style="dim", no_wrap=True)
    table.add_column("")
    for key, value in rows.items():
        table.add_row(key, str(value))
    console.print(table)


def print_success(message: str) -> None:
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    console.print(f"[bold red]{message}[/bold red]")
