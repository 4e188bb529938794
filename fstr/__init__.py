"""fstr -- recipe-driven project scaffolding.

Quick usage::

    import fstr

    recipes = await fstr.scaffold(
        [{"name": "base", "from": "https://github.com/org/template.git", "to": "app"}],
        fstr.RunOptions(output="./out"),
    )
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping
from typing import Any, Iterable, Union

from rich.markup import escape

from fstr.config import RunOptions
from fstr.context import RunContext
from fstr.errors import (
    FetchError,
    FstrError,
    GitError,
    InvalidSchemaError,
    RecipeRuntimeError,
    ScriptError,
)
from fstr.log import configure_logging
from fstr.recipes import Recipe, RecipeSchema, Scheduler
from fstr.utils import remove_tree

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

RecipeInput = Union[RecipeSchema, Mapping[str, Any], str, os.PathLike]


def _as_schemas(recipes: RecipeInput | Iterable[RecipeInput]) -> list[RecipeSchema]:
    if isinstance(recipes, (RecipeSchema, Mapping, str, os.PathLike)):
        return [RecipeSchema.coerce(recipes)]
    return [RecipeSchema.coerce(item) for item in recipes]


async def scaffold(
    recipes: RecipeInput | Iterable[RecipeInput],
    options: RunOptions | Mapping[str, Any] | None = None,
) -> list[Recipe]:
    """Generate *recipes* and everything they pull in.

    Args:
        recipes: One recipe or a sequence of them; each may be a
            ``RecipeSchema``, a mapping, or a ``from`` locator string.
        options: Run options. Defaults to ``RunOptions.from_env()``.

    Returns:
        The generated recipes in completion order.

    Raises:
        FstrError: Any engine failure. Temporary sources are removed first.
    """
    if options is None:
        options = RunOptions.from_env()
    elif isinstance(options, Mapping):
        options = RunOptions(**options)

    configure_logging(options.log_level)
    ctx = RunContext(options=options)

    schemas = _as_schemas(recipes)
    family: dict[str, Recipe] = {}
    roots = [Recipe(schema, map=family, output=ctx.output_root) for schema in schemas]

    try:
        return await Scheduler(ctx).run(roots)
    except FstrError as exc:
        logger.error(f"[bold red]{escape(type(exc).__name__)}[/bold red]: {escape(str(exc))}")
        raise
    finally:
        if not options.cache:
            for directory in ctx.source_dirs:
                logger.debug(f"removing {directory}")
                await remove_tree(directory)


def scaffold_sync(
    recipes: RecipeInput | Iterable[RecipeInput],
    options: RunOptions | Mapping[str, Any] | None = None,
) -> list[Recipe]:
    """Blocking wrapper around :func:`scaffold`."""
    return asyncio.run(scaffold(recipes, options))


__all__ = [
    "FetchError",
    "FstrError",
    "GitError",
    "InvalidSchemaError",
    "Recipe",
    "RecipeRuntimeError",
    "RecipeSchema",
    "RunContext",
    "RunOptions",
    "Scheduler",
    "ScriptError",
    "scaffold",
    "scaffold_sync",
]
