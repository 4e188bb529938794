"""Runtime recipes.

A ``Recipe`` wraps a deep copy of its ``RecipeSchema`` and walks it through
``parse()`` (resolve the source locator) and ``run()`` (fetch, render, hooks).
Recipes of one family share ``map`` (``name -> Recipe``), which is how
``depends`` entries are looked up.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal
from urllib.parse import urlsplit

from rich.markup import escape

from fstr.errors import InvalidSchemaError, ScriptError
from fstr.sources.cache import expand_ssh_shorthand, is_recipe_file, is_repo, parse_url
from fstr.tree.builder import build_tree
from fstr.tree.renderer import Renderer
from fstr.tree.virtual_file import VirtualFile
from fstr.utils import run_command

from .handlers import load_file_handler
from .schema import RecipeSchema

if TYPE_CHECKING:
    from fstr.context import RunContext

logger = logging.getLogger(__name__)

RecipeType = Literal["disk", "repo", "url", "stub"]


class Recipe:
    """One scaffolding unit at runtime.

    Attributes:
        schema: Deep copy of the originating schema; never mutated.
        name: ``schema.display_name``.
        source: Resolved locator (absolute path or URL), ``None`` for stubs.
        to: Output directory.
        previous_output: Directory a relative ``from`` is resolved against.
        recipes: Child schemas still to be spawned; grows when a recipe file
            is spliced in.
        type: ``disk``, ``repo``, ``url`` or ``stub`` once parsed.
        map: Shared ``name -> Recipe`` registry of the recipe family.
    """

    def __init__(
        self,
        schema: RecipeSchema | dict[str, Any] | str,
        map: dict[str, "Recipe"] | None = None,
        output: str | Path | None = None,
        previous_output: str | Path | None = None,
    ) -> None:
        self.schema = RecipeSchema.coerce(schema).model_copy(deep=True)
        self.name = self.schema.display_name
        self.source: str | None = self.schema.from_
        self.depends: list[str] = list(self.schema.depends)
        self.recipes: list[RecipeSchema] = list(self.schema.recipes)
        self.exclude_dirs: list[str] = list(self.schema.exclude_dirs)
        self.include_dirs: list[str] = list(self.schema.include_dirs)

        output_root = Path(output) if output is not None else Path.cwd()
        to = self.schema.to
        if to and os.path.isabs(to):
            self.to = Path(os.path.normpath(to))
        else:
            self.to = Path(os.path.normpath(output_root / (to or ".")))
        self.previous_output = Path(previous_output) if previous_output is not None else Path.cwd()

        self.type: RecipeType | None = None
        self.parsed = False
        self.generated = False

        self.map: dict[str, Recipe] = map if map is not None else {}
        self.map[self.name] = self

    def __repr__(self) -> str:
        return f"Recipe<{self.name} type={self.type} generated={self.generated}>"

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def pending_dependencies(self) -> list[str]:
        """Declared dependencies that are not generated yet."""
        pending = []
        for dep in self.depends:
            recipe = self.map.get(dep)
            if recipe is None or not recipe.generated:
                pending.append(dep)
        return pending

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self) -> bool:
        """Resolve ``from`` into a concrete source type.

        Returns:
            ``True`` once parsed. ``False`` when the local source does not
            exist yet but a pending dependency may still create it.

        Raises:
            InvalidSchemaError: The local source does not exist and nothing
                is pending, or a spliced recipe file is invalid.
        """
        if self.parsed:
            return True

        if not self.source:
            self.type = "stub"
            self.parsed = True
            return True

        locator = expand_ssh_shorthand(self.source)
        url = parse_url(locator)
        if url is not None:
            self.source = locator
            self.type = "repo" if is_repo(url.path) else "url"
            self.parsed = True
            return True

        path = Path(locator).expanduser()
        full_path = (path if path.is_absolute() else self.previous_output / path).resolve()

        if not full_path.exists():
            pending = self.pending_dependencies()
            if pending:
                logger.debug(f"{escape(self.name)}: {full_path} missing, waiting on {pending}")
                return False
            logger.error(f"Source not found for recipe [bold]{escape(self.name)}[/bold]: {full_path}")
            raise InvalidSchemaError(f"Source not found: {locator} (recipe '{self.name}')")

        self.source = str(full_path)
        self.type = "disk"

        if full_path.is_file():
            self.recipes.append(RecipeSchema.load_file(full_path))
            self.source = None
            self.type = "stub"

        self.parsed = True
        return True

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def run(self, ctx: "RunContext") -> list[Path] | None:
        """Generate the recipe once its dependencies are generated.

        Returns:
            ``None`` while blocked, otherwise the temporary source
            directories fetched for this recipe.
        """
        logger.info(f"[bold]{escape(self.name)}[/bold]: running")
        sources = await self.generate(ctx)
        if sources is None:
            logger.info(f"[bold]{escape(self.name)}[/bold]: waiting")
            return None

        self.generated = True
        logger.info(f"[bold]{escape(self.name)}[/bold]: [green]done[/green]")
        return sources

    async def generate(self, ctx: "RunContext") -> list[Path] | None:
        if self.pending_dependencies():
            return None

        logger.debug(f"generate: {escape(repr(self.to_dict()))}")
        await asyncio.to_thread(self.to.mkdir, parents=True, exist_ok=True)

        if self.type == "stub":
            await self.run_script("before")
            await self.run_script("after")
            return []

        assert ctx.fetcher is not None and self.source is not None
        subdirs = self.include_dirs or ctx.options.include
        source = await ctx.fetcher.fetch_source(
            self.source, subdirs=subdirs or None, cache=ctx.options.cache
        )
        sources = [source] if self.type in ("repo", "url") else []

        if self.type == "url" and is_recipe_file(urlsplit(self.source).path):
            self.recipes.insert(0, RecipeSchema.load_file(source))
            return sources

        root = await build_tree(source, exclude=[*self.exclude_dirs, *ctx.options.exclude])
        renderer = Renderer(root, self.to)

        await self.run_script("before", source)
        await self.apply_file_handler(renderer, source)
        if ctx.options.recursive:
            renderer.register_templater("", self._discovery_handler(ctx))

        await renderer.render()
        await self.run_script("after", source)
        return sources

    def spawn_children(self) -> list["Recipe"]:
        """Instantiate the child schemas against this recipe's map and output."""
        children = [
            Recipe(schema, map=self.map, output=self.to, previous_output=self.to)
            for schema in self.recipes
        ]
        self.recipes = []
        return children

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    async def run_script(self, which: Literal["before", "after"], source: Path | None = None) -> str | None:
        """Run ``scripts.<which>`` through the shell in the output directory.

        The environment gains ``FSTR_SOURCE`` (fetched source dir),
        ``FSTR_OUTPUT`` and ``FSTR_RECIPE``.

        Raises:
            ScriptError: The script exited non-zero.
        """
        command = getattr(self.schema.scripts, which)
        if not command:
            return None

        logger.info(f"[bold]{escape(self.name)}[/bold]: '{which}' [yellow]{escape(command)}[/yellow]")
        env = {
            "FSTR_SOURCE": str(source) if source else "",
            "FSTR_OUTPUT": str(self.to),
            "FSTR_RECIPE": self.name,
        }
        returncode, stdout, stderr = await run_command(command, cwd=self.to, env=env)
        if stdout:
            logger.debug(escape(stdout))
        if returncode != 0:
            raise ScriptError(
                f"'{which}' script of recipe '{self.name}' failed (exit {returncode}): {stderr}",
                command=command,
                returncode=returncode,
                stdout=stdout,
                stderr=stderr,
            )
        return stdout

    async def apply_file_handler(self, renderer: Renderer, source: Path) -> None:
        """Call the schema's ``fileHandler`` with ``(recipe, renderer)``."""
        handler = self.schema.file_handler
        if handler is None:
            return

        if not callable(handler):
            search_dirs = [self.previous_output, Path(source)]
            handler = load_file_handler(handler, search_dirs)

        result = handler(self, renderer)
        if inspect.isawaitable(result):
            await result

    def _discovery_handler(self, ctx: "RunContext"):
        def discover(node: VirtualFile) -> None:
            if node.is_dir or not is_recipe_file(node.name):
                return
            for output in node.outputs:
                logger.info(f"[bold]{escape(self.name)}[/bold]: found recipe file {output}")
                ctx.discovered.append(
                    Recipe(
                        RecipeSchema.load_file(output),
                        map=self.map,
                        output=output.parent,
                        previous_output=output.parent,
                    )
                )

        return discover

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "source": self.source,
            "to": str(self.to),
            "depends": self.depends,
            "parsed": self.parsed,
            "generated": self.generated,
            "recipes": [schema.display_name for schema in self.recipes],
        }
