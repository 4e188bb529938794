"""Declarative recipe schemas.

A ``RecipeSchema`` is what users write (inline, or in ``*.fstr.json`` /
``*.fstr.yaml`` files). It is immutable: the runtime ``Recipe`` keeps its own
deep copy and records everything it resolves on itself.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from fstr.errors import InvalidSchemaError
from fstr.utils import load_data_file


class RecipeScripts(BaseModel):
    """Shell hooks run around rendering, with ``cwd`` set to the output dir."""

    model_config = ConfigDict(frozen=True)

    before: str | None = None
    after: str | None = None


class RecipeSchema(BaseModel):
    """User-authored description of one scaffolding unit."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    name: str | None = Field(default=None, description="Name other recipes depend on")
    from_: str | None = Field(default=None, alias="from", description="Source locator")
    to: str | None = Field(default=None, description="Output path, relative to the output root")
    data: Any = Field(default=None, description="Opaque payload for file handlers")
    depends: list[str] = Field(default_factory=list)
    scripts: RecipeScripts = Field(default_factory=RecipeScripts)
    file_handler: str | Callable[..., Any] | None = Field(default=None, alias="fileHandler")
    recipes: list[RecipeSchema] = Field(default_factory=list)
    exclude_dirs: list[str] = Field(default_factory=list, alias="excludeDirs")
    include_dirs: list[str] = Field(default_factory=list, alias="includeDirs")

    @field_validator("recipes", mode="before")
    @classmethod
    def _expand_shorthand(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [{"from": item} if isinstance(item, str) else item for item in value]
        return value

    @field_validator("depends", "exclude_dirs", "include_dirs", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("scripts", mode="before")
    @classmethod
    def _default_scripts(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def display_name(self) -> str:
        """``name``, falling back to ``from``, then ``to``."""
        return self.name or self.from_ or self.to or "unnamed recipe"

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def coerce(cls, value: Any) -> "RecipeSchema":
        """Build a schema from a string shorthand, a mapping or a schema.

        Raises:
            InvalidSchemaError: For arrays, unsupported types or invalid fields.
        """
        if isinstance(value, RecipeSchema):
            return value
        if isinstance(value, (str, os.PathLike)):
            return cls(from_=os.fspath(value))
        if isinstance(value, (list, tuple)):
            raise InvalidSchemaError("recipe schema must be an object, not an array")
        if isinstance(value, Mapping):
            try:
                return cls.model_validate(dict(value))
            except ValidationError as exc:
                raise InvalidSchemaError(f"invalid recipe schema: {exc}") from exc
        raise InvalidSchemaError(f"invalid recipe schema of type {type(value).__name__}")

    @classmethod
    def load_file(cls, path: str | Path) -> "RecipeSchema":
        """Load a JSON or YAML recipe file.

        Raises:
            InvalidSchemaError: If the file is unreadable, unparsable, or holds
                a top-level array.
        """
        try:
            data = load_data_file(path)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
            raise InvalidSchemaError(f"cannot load recipe file {path}: {exc}") from exc

        if isinstance(data, list):
            raise InvalidSchemaError(
                f"recipe file {path} holds an array; wrap the entries in {{\"recipes\": [...]}}"
            )
        return cls.coerce(data)


RecipeSchema.model_rebuild()
