"""Jinja2 templating plugin.

The engine itself copies files verbatim. Recipes that want templating point
their ``fileHandler`` at :func:`jinja_file_handler`::

    {"from": "./templates", "to": "app", "data": {"name": "demo"},
     "fileHandler": "fstr.tree.templating:jinja_file_handler"}

Every ``*.j2`` file is then rendered with the recipe's ``data`` as context and
written without its ``.j2`` suffix. Existing destinations are left alone, like
plain copies.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, StrictUndefined, select_autoescape

from .renderer import Renderer
from .virtual_file import VirtualFile

if TYPE_CHECKING:
    from fstr.recipes.recipe import Recipe

TEMPLATE_SUFFIX = ".j2"


class TemplateRenderer:
    """Renders Jinja2 template files with a fixed context."""

    def __init__(self, context: dict[str, Any] | None = None) -> None:
        self.context = dict(context or {})
        self.env = Environment(
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters.update(CASE_FILTERS)

    def render_string(self, template_string: str, extra: dict[str, Any] | None = None) -> str:
        template = self.env.from_string(template_string)
        return template.render(**{**self.context, **(extra or {})})

    async def render_node(self, node: VirtualFile) -> bool:
        """Render a ``.j2`` file node into its outputs.

        Returns ``True`` so no further file handler runs for the node.
        """
        if node.is_dir:
            return False

        target_name = node.name[: -len(TEMPLATE_SUFFIX)]
        source = await asyncio.to_thread(node.full_source_path.read_text, "utf-8")

        for target in node.get_outputs(target_name):
            if target.exists():
                continue
            content = self.render_string(source, {"output_path": str(target)})
            await asyncio.to_thread(_write_file, target, content)
            node.outputs.append(target)

        if not node.outputs:
            node.skip = True
        return True


def jinja_file_handler(recipe: "Recipe", renderer: Renderer) -> TemplateRenderer:
    """Recipe ``fileHandler`` rendering ``*.j2`` files with ``recipe.data``."""
    data = recipe.schema.data
    context: dict[str, Any] = dict(data) if isinstance(data, dict) else {"data": data}
    context.setdefault("recipe_name", recipe.name)

    templates = TemplateRenderer(context)
    renderer.register_file_handler(f"*{TEMPLATE_SUFFIX}", templates.render_node)
    return templates


# Case filters, all built on one word splitter: "myHTTPServer v2" -> my HTTP Server v 2

_WORD = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")


def _words(value: str) -> list[str]:
    return _WORD.findall(str(value))


def _pascal(value: str) -> str:
    return "".join(word.capitalize() for word in _words(value))


def _camel(value: str) -> str:
    pascal = _pascal(value)
    return pascal[:1].lower() + pascal[1:]


CASE_FILTERS = {
    "slugify": lambda value: "-".join(word.lower() for word in _words(value)),
    "snake_case": lambda value: "_".join(word.lower() for word in _words(value)),
    "pascal_case": _pascal,
    "camel_case": _camel,
}


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
