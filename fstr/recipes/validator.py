"""Dependency graph validation.

Each recipe implicitly depends on all of its ancestors (a child cannot run
before its parent produced the output it lives in), on top of its declared
``depends``. The validator rejects recipes depending on their own
sub-recipes and any cycle in the combined graph.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Union

from fstr.errors import InvalidSchemaError

from .schema import RecipeSchema

if TYPE_CHECKING:
    from .recipe import Recipe

logger = logging.getLogger(__name__)

RecipeLike = Union["Recipe", RecipeSchema]


def _name(item: RecipeLike) -> str:
    if isinstance(item, RecipeSchema):
        return item.display_name
    return item.name


def _children(item: RecipeLike) -> list[RecipeSchema]:
    return list(item.recipes or [])


def _depends(item: RecipeLike) -> list[str]:
    return list(item.depends or [])


def _descendant_names(item: RecipeLike) -> Iterable[str]:
    for child in _children(item):
        yield child.display_name
        yield from _descendant_names(child)


class DependencyValidator:
    """Validates recipe graphs; remembers names already proven acyclic."""

    def __init__(self) -> None:
        self.validated: set[str] = set()

    def flatten(
        self,
        item: RecipeLike,
        graph: dict[str, list[str]] | None = None,
        parents: list[str] | None = None,
    ) -> dict[str, list[str]]:
        """Add *item* and its nested recipes to *graph* (``name -> deps``).

        Raises:
            InvalidSchemaError: If a recipe depends on one of its sub-recipes.
        """
        graph = {} if graph is None else graph
        parents = parents or []
        name = _name(item)
        depends = _depends(item)

        descendants = set(_descendant_names(item))
        for dep in depends:
            if dep in descendants:
                raise InvalidSchemaError(f"recipes cannot depend on sub-recipes ({name} -> {dep})")

        edges = graph.setdefault(name, [])
        # an ancestor sharing this name (nested unnamed stubs) is not a cycle
        ancestors = [parent for parent in parents if parent != name]
        for dep in [*depends, *ancestors]:
            if dep not in edges:
                edges.append(dep)

        for child in _children(item):
            self.flatten(child, graph, [*parents, name])
        return graph

    def validate(self, recipes: Iterable[RecipeLike]) -> dict[str, list[str]]:
        """Validate the pending recipes and everything nested in them.

        Returns:
            The flattened dependency graph.

        Raises:
            InvalidSchemaError: On sub-recipe dependencies or cycles.
        """
        graph: dict[str, list[str]] = {}
        for item in recipes:
            self.flatten(item, graph)

        for name in graph:
            self._visit(name, graph, [])
        return graph

    def _visit(self, name: str, graph: dict[str, list[str]], stack: list[str]) -> bool:
        """Depth-first walk from *name*.

        Returns ``True`` when every name reachable from *name* is in *graph*;
        only such names are memoized.
        """
        if name in self.validated:
            return True
        if name in stack:
            cycle = stack[stack.index(name):] + [name]
            raise InvalidSchemaError(f"recipes have circular dependencies ({' -> '.join(cycle)})")
        if name not in graph:
            return False

        stack.append(name)
        complete = True
        for dep in graph[name]:
            if not self._visit(dep, graph, stack):
                complete = False
        stack.pop()

        if complete:
            self.validated.add(name)
        return complete
