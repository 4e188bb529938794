"""Round-based recipe scheduler.

The pending queue is validated, then processed in batches of
``options.parallel`` recipes run concurrently. Recipes still blocked on a
dependency go to the back of the queue; generated recipes contribute their
children (and any recipe files discovered in their output) to the queue.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from rich.markup import escape

from fstr.context import RunContext
from fstr.errors import RecipeRuntimeError

from .recipe import Recipe
from .validator import DependencyValidator

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs a family of recipes to completion, respecting dependencies."""

    def __init__(self, ctx: RunContext, validator: DependencyValidator | None = None) -> None:
        self.ctx = ctx
        self.validator = validator or DependencyValidator()

    async def run(self, recipes: list[Recipe]) -> list[Recipe]:
        """Generate *recipes* and everything they spawn.

        Returns:
            Generated recipes, in completion order.

        Raises:
            InvalidSchemaError: On invalid dependency graphs or sources.
            RecipeRuntimeError: When the remaining recipes can never run.
        """
        queue: deque[Recipe] = deque(recipes)
        generated: list[Recipe] = []
        stalled = 0
        batch_size = self.ctx.options.parallel

        while queue:
            self.validator.validate(queue)

            batch = [queue.popleft() for _ in range(min(batch_size, len(queue)))]
            logger.debug(f"round: {', '.join(escape(r.name) for r in batch)}")
            results = await asyncio.gather(*(self._attempt(r) for r in batch), return_exceptions=True)

            errors = [result for result in results if isinstance(result, BaseException)]
            if errors:
                raise errors[0]

            progressed = any(results)
            for recipe in batch:
                if recipe.generated:
                    generated.append(recipe)
                    queue.extend(recipe.spawn_children())
                else:
                    queue.append(recipe)

            if self.ctx.discovered:
                progressed = True
                queue.extend(self.ctx.discovered)
                self.ctx.discovered.clear()

            stalled = 0 if progressed else stalled + len(batch)
            if queue and stalled >= len(queue):
                raise RecipeRuntimeError(self._unmet_message(queue))

        return generated

    async def _attempt(self, recipe: Recipe) -> bool:
        """Parse and run *recipe* once; returns whether its state advanced."""
        was_parsed = recipe.parsed
        if not recipe.parse():
            return False

        sources = await recipe.run(self.ctx)
        if sources is not None:
            self.ctx.add_source_dirs(sources)
        return recipe.generated or recipe.parsed != was_parsed

    @staticmethod
    def _unmet_message(queue: deque[Recipe]) -> str:
        blocked = [
            f"{recipe.name} (waiting on: {', '.join(recipe.pending_dependencies()) or 'nothing'})"
            for recipe in queue
        ]
        return f"Unmet dependencies: {'; '.join(blocked)}"
