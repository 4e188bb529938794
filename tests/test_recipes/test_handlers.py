"""Unit tests for fileHandler resolution (fstr.recipes.handlers).

Tests cover:
- Python files found in the search directories, default and named functions
- Absolute handler paths
- Importable ``package.module:func`` handlers
- InvalidSchemaError for missing files, modules and functions
"""

from __future__ import annotations

from pathlib import Path

import pytest

from fstr.errors import InvalidSchemaError
from fstr.recipes.handlers import load_file_handler
from fstr.tree.templating import jinja_file_handler

pytestmark = pytest.mark.unit

HANDLER_SOURCE = '''
def file_handler(recipe, renderer):
    return "default"


def custom(recipe, renderer):
    return "custom"


not_callable = 42
'''


@pytest.fixture
def handler_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "handlers"
    directory.mkdir()
    (directory / "handler.py").write_text(HANDLER_SOURCE, encoding="utf-8")
    return directory


class TestPathHandlers:
    def test_default_function(self, handler_dir: Path):
        handler = load_file_handler("handler.py", [handler_dir])
        assert handler(None, None) == "default"

    def test_named_function(self, handler_dir: Path):
        handler = load_file_handler("handler.py:custom", [handler_dir])
        assert handler(None, None) == "custom"

    def test_later_search_dir(self, tmp_path: Path, handler_dir: Path):
        handler = load_file_handler("./handler.py", [tmp_path / "elsewhere", handler_dir])
        assert handler(None, None) == "default"

    def test_absolute_path(self, handler_dir: Path):
        handler = load_file_handler(f"{handler_dir / 'handler.py'}:custom", [])
        assert handler(None, None) == "custom"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(InvalidSchemaError, match="not found"):
            load_file_handler("nope.py", [tmp_path])

    def test_missing_function(self, handler_dir: Path):
        with pytest.raises(InvalidSchemaError, match="does not define"):
            load_file_handler("handler.py:absent", [handler_dir])

    def test_non_callable_attribute(self, handler_dir: Path):
        with pytest.raises(InvalidSchemaError, match="does not define"):
            load_file_handler("handler.py:not_callable", [handler_dir])


class TestModuleHandlers:
    def test_import(self):
        assert load_file_handler("fstr.tree.templating:jinja_file_handler", []) is jinja_file_handler

    def test_missing_module(self):
        with pytest.raises(InvalidSchemaError, match="cannot import"):
            load_file_handler("fstr_no_such_module:handler", [])
