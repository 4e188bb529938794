"""Resolve a recipe ``fileHandler`` string to a callable.

Accepted forms:

* ``path/to/handler.py`` or ``path/to/handler.py:func`` -- a Python file,
  looked up in each search directory in turn (absolute paths are used as is),
* ``package.module:func`` -- an importable module.

The function name defaults to ``file_handler``. The callable is invoked as
``func(recipe, renderer)`` and may be a coroutine function.
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.util
from pathlib import Path
from types import ModuleType
from typing import Any, Callable

from fstr.errors import InvalidSchemaError

DEFAULT_HANDLER_NAME = "file_handler"

FileHandler = Callable[..., Any]


def _split_spec(spec: str) -> tuple[str, str]:
    target, sep, attr = spec.rpartition(":")
    if sep and attr.isidentifier():
        return target, attr
    return spec, DEFAULT_HANDLER_NAME


def _looks_like_path(target: str) -> bool:
    return target.endswith(".py") or "/" in target or "\\" in target


def _load_module_from_path(path: Path) -> ModuleType:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    spec = importlib.util.spec_from_file_location(f"fstr_file_handler_{digest}", path)
    if spec is None or spec.loader is None:
        raise InvalidSchemaError(f"cannot load file handler {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def load_file_handler(spec: str, search_dirs: list[Path]) -> FileHandler:
    """Return the callable named by *spec*.

    Raises:
        InvalidSchemaError: If the file or module cannot be found or does not
            define a callable with the requested name.
    """
    target, attr = _split_spec(spec)

    if _looks_like_path(target):
        raw = Path(target).expanduser()
        candidates = [raw] if raw.is_absolute() else [base / raw for base in search_dirs]
        found = next((c for c in candidates if c.is_file()), None)
        if found is None:
            raise InvalidSchemaError(f"file handler not found: {spec}")
        module = _load_module_from_path(found.resolve())
    else:
        try:
            module = importlib.import_module(target)
        except ImportError as exc:
            raise InvalidSchemaError(f"cannot import file handler {spec}: {exc}") from exc

    func = getattr(module, attr, None)
    if not callable(func):
        raise InvalidSchemaError(f"file handler {spec} does not define a callable '{attr}'")
    return func
