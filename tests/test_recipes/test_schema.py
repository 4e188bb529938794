"""Unit tests for recipe schemas (fstr.recipes.schema).

Tests cover:
- Field aliases (from, fileHandler, excludeDirs, includeDirs)
- Shorthand normalisation (string recipes, scalar lists, null scripts)
- display_name fallbacks and immutability
- RecipeSchema.coerce (strings, paths, mappings, arrays, bad types)
- RecipeSchema.load_file (JSON, YAML, arrays, broken files)
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from fstr.errors import InvalidSchemaError
from fstr.recipes.schema import RecipeSchema

pytestmark = pytest.mark.unit


class TestFields:
    def test_aliases(self):
        schema = RecipeSchema.model_validate(
            {
                "name": "api",
                "from": "./templates/api",
                "to": "services/api",
                "fileHandler": "handlers.py:render",
                "excludeDirs": ["dist"],
                "includeDirs": ["src"],
            }
        )
        assert schema.from_ == "./templates/api"
        assert schema.file_handler == "handlers.py:render"
        assert schema.exclude_dirs == ["dist"]
        assert schema.include_dirs == ["src"]

    def test_populate_by_name(self):
        assert RecipeSchema(from_="./tpl", exclude_dirs=["x"]).exclude_dirs == ["x"]

    def test_scalars_become_lists(self):
        schema = RecipeSchema.model_validate({"depends": "base", "excludeDirs": "dist", "includeDirs": None})
        assert schema.depends == ["base"]
        assert schema.exclude_dirs == ["dist"]
        assert schema.include_dirs == []

    def test_string_sub_recipes(self):
        schema = RecipeSchema.model_validate({"recipes": ["./child", {"name": "other", "from": "./other"}]})
        assert [r.from_ for r in schema.recipes] == ["./child", "./other"]
        assert schema.recipes[1].name == "other"

    def test_null_scripts(self):
        schema = RecipeSchema.model_validate({"scripts": None})
        assert schema.scripts.before is None
        assert schema.scripts.after is None

    def test_scripts(self):
        schema = RecipeSchema.model_validate({"scripts": {"before": "npm ci", "after": "make"}})
        assert schema.scripts.before == "npm ci"
        assert schema.scripts.after == "make"

    def test_data_is_opaque(self):
        schema = RecipeSchema.model_validate({"data": {"nested": [1, 2, {"x": None}]}})
        assert schema.data == {"nested": [1, 2, {"x": None}]}

    def test_unknown_keys_ignored(self):
        assert RecipeSchema.model_validate({"from": "./tpl", "$schema": "x"}).from_ == "./tpl"

    def test_callable_file_handler(self):
        def handler(recipe, renderer):
            return None

        assert RecipeSchema(file_handler=handler).file_handler is handler

    def test_frozen(self):
        schema = RecipeSchema(name="a")
        with pytest.raises(ValidationError):
            schema.name = "b"


class TestDisplayName:
    def test_prefers_name(self):
        assert RecipeSchema(name="n", from_="f", to="t").display_name == "n"

    def test_falls_back_to_from_then_to(self):
        assert RecipeSchema(from_="f", to="t").display_name == "f"
        assert RecipeSchema(to="t").display_name == "t"

    def test_unnamed(self):
        assert RecipeSchema().display_name == "unnamed recipe"


class TestCoerce:
    def test_schema_passthrough(self):
        schema = RecipeSchema(name="a")
        assert RecipeSchema.coerce(schema) is schema

    def test_string_is_from(self):
        assert RecipeSchema.coerce("./tpl").from_ == "./tpl"

    def test_path_is_from(self, tmp_path: Path):
        assert RecipeSchema.coerce(tmp_path).from_ == str(tmp_path)

    def test_mapping(self):
        assert RecipeSchema.coerce({"from": "./tpl", "depends": ["a"]}).depends == ["a"]

    def test_array_rejected(self):
        with pytest.raises(InvalidSchemaError, match="not an array"):
            RecipeSchema.coerce([{"from": "./a"}])

    def test_invalid_field_rejected(self):
        with pytest.raises(InvalidSchemaError, match="invalid recipe schema"):
            RecipeSchema.coerce({"depends": 5})

    def test_unsupported_type_rejected(self):
        with pytest.raises(InvalidSchemaError, match="int"):
            RecipeSchema.coerce(42)


class TestLoadFile:
    def test_json(self, write_recipe):
        path = write_recipe({"name": "app", "from": "./tpl", "recipes": ["./child"]})
        schema = RecipeSchema.load_file(path)
        assert schema.name == "app"
        assert schema.recipes[0].from_ == "./child"

    def test_yaml(self, tmp_path: Path):
        path = tmp_path / "app.fstr.yaml"
        path.write_text("name: app\nfrom: ./tpl\ndepends: base\n", encoding="utf-8")
        schema = RecipeSchema.load_file(path)
        assert schema.depends == ["base"]

    def test_top_level_array_rejected(self, write_recipe):
        path = write_recipe([{"from": "./a"}, {"from": "./b"}])
        with pytest.raises(InvalidSchemaError, match="array"):
            RecipeSchema.load_file(path)

    def test_broken_json(self, tmp_path: Path):
        path = tmp_path / "broken.fstr.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(InvalidSchemaError, match="cannot load recipe file"):
            RecipeSchema.load_file(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(InvalidSchemaError):
            RecipeSchema.load_file(tmp_path / "missing.fstr.json")
