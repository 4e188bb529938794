"""Shared pytest fixtures for the fstr test suite.

Provides reusable fixtures for:
- A clean ``FSTR_*`` environment
- Template source trees on disk
- Run options and run contexts rooted in ``tmp_path``
- Recipe files
- Mock subprocess helpers
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from fstr.config import RunOptions
from fstr.context import RunContext


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clean_fstr_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove any ``FSTR_*`` variable inherited from the developer's shell."""
    for key in list(os.environ):
        if key.startswith("FSTR_"):
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

def write_files(root: Path, files: dict[str, str]) -> Path:
    """Create *files* (``relative path -> content``) under *root*."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_files():
    """Factory exposing :func:`write_files` to tests."""
    return write_files


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """A small template source tree.

    Layout::

        template/
            README.md
            b.txt
            a/x.txt
            a/nested/y.txt
            .git/HEAD
            node_modules/pkg/index.js
    """
    return write_files(
        tmp_path / "template",
        {
            "README.md": "# Template\n",
            "b.txt": "bee\n",
            "a/x.txt": "ex\n",
            "a/nested/y.txt": "why\n",
            ".git/HEAD": "ref: refs/heads/main\n",
            "node_modules/pkg/index.js": "module.exports = {};\n",
        },
    )


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Output root for generated files (created lazily by the engine)."""
    return tmp_path / "out"


# ---------------------------------------------------------------------------
# Options & Context
# ---------------------------------------------------------------------------

@pytest.fixture
def run_options(tmp_path: Path, output_dir: Path) -> RunOptions:
    """Quiet options writing to ``output_dir`` with the cache under ``tmp_path``."""
    return RunOptions(output=output_dir, project_root=tmp_path, log_level="none")


@pytest.fixture
def run_context(run_options: RunOptions) -> RunContext:
    return RunContext(options=run_options)


# ---------------------------------------------------------------------------
# Recipe files
# ---------------------------------------------------------------------------

@pytest.fixture
def write_recipe(tmp_path: Path):
    """Factory writing a JSON recipe file and returning its path.

    Usage:
        def test_x(write_recipe):
            path = write_recipe({"from": "./tpl"}, name="app.fstr.json")
    """
    def factory(data: Any, name: str = "recipe.fstr.json", directory: Path | None = None) -> Path:
        target = (directory or tmp_path) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(data), encoding="utf-8")
        return target

    return factory


# ---------------------------------------------------------------------------
# Subprocess
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Factory for fake ``asyncio.subprocess.Process`` objects.

    Patch ``asyncio.create_subprocess_shell`` (hook scripts) or
    ``asyncio.create_subprocess_exec`` (git) to return one.
    """
    def factory(stdout: str = "", stderr: str = "", returncode: int = 0) -> AsyncMock:
        process = AsyncMock()
        process.returncode = returncode
        process.communicate = AsyncMock(return_value=(stdout.encode(), stderr.encode()))
        process.wait = AsyncMock(return_value=returncode)
        process.kill = MagicMock()
        return process

    return factory
