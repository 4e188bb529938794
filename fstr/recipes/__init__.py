"""fstr recipes -- schemas, runtime recipes, validation and scheduling.

Key classes:
    RecipeSchema         - immutable, user-authored recipe description
    Recipe               - runtime state of one recipe (parse / run)
    DependencyValidator  - rejects sub-recipe dependencies and cycles
    Scheduler            - runs recipe families in bounded rounds
"""

from .handlers import load_file_handler
from .recipe import Recipe
from .schema import RecipeSchema, RecipeScripts
from .scheduler import Scheduler
from .validator import DependencyValidator

__all__ = [
    "DependencyValidator",
    "Recipe",
    "RecipeSchema",
    "RecipeScripts",
    "Scheduler",
    "load_file_handler",
]
