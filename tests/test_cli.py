"""Unit tests for the command-line front end (fstr.cli).

Tests cover:
- Argument parsing (flags, repeatable lists, cache toggles)
- Verbosity mapping for -s / -v
- Merging arguments over FSTR_* environment variables
- main() exit codes on success, engine errors and invalid options
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from fstr.cli import _log_level, build_parser, main, options_from_args
from fstr.errors import InvalidSchemaError


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParser:
    @pytest.mark.unit
    def test_all_flags(self):
        args = build_parser().parse_args(
            ["-c", "-e", "dist,build", "-e", "tmp", "-i", "src", "-p", "4", "-o", "out", "-R", "-vv",
             "--project-root", "/proj", "a.fstr.json", "b.fstr.json"]
        )
        options = options_from_args(args)

        assert args.recipes == ["a.fstr.json", "b.fstr.json"]
        assert options.cache is True
        assert options.exclude == ["dist", "build", "tmp"]
        assert options.include == ["src"]
        assert options.parallel == 4
        assert options.output == Path("out")
        assert options.recursive is True
        assert options.project_root == Path("/proj")
        assert options.log_level == "debug"

    @pytest.mark.unit
    def test_defaults_come_from_environment(self, monkeypatch):
        monkeypatch.setenv("FSTR_CACHE", "1")
        monkeypatch.setenv("FSTR_PARALLEL", "2")
        monkeypatch.setenv("FSTR_LOG", "error")

        options = options_from_args(build_parser().parse_args(["r.fstr.json"]))

        assert options.cache is True
        assert options.parallel == 2
        assert options.log_level == "error"

    @pytest.mark.unit
    def test_no_cache_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("FSTR_CACHE", "1")
        options = options_from_args(build_parser().parse_args(["-C", "r.fstr.json"]))
        assert options.cache is False

    @pytest.mark.unit
    def test_cache_flags_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["-c", "-C", "r.fstr.json"])

    @pytest.mark.unit
    def test_recipe_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestVerbosity:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "silent, verbose, expected",
        [
            (0, 0, "warn"),
            (1, 0, "warn"),
            (2, 0, "error"),
            (3, 0, "none"),
            (9, 0, "none"),
            (0, 1, "log"),
            (0, 2, "debug"),
            (0, 9, "debug"),
            (1, 1, "info"),
        ],
    )
    def test_levels(self, silent, verbose, expected):
        assert _log_level(silent, verbose, "warn") == expected


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------


class TestMain:
    @pytest.mark.unit
    def test_success(self):
        with patch("fstr.cli.scaffold", AsyncMock(return_value=[])) as mock_scaffold, patch(
            "fstr.cli.print_summary_table"
        ) as mock_table, patch("fstr.cli.print_success"):
            main(["-p", "3", "app.fstr.json"])

        recipes, options = mock_scaffold.await_args.args
        assert recipes == ["app.fstr.json"]
        assert options.parallel == 3
        mock_table.assert_called_once()

    @pytest.mark.unit
    def test_silent_skips_summary(self):
        with patch("fstr.cli.scaffold", AsyncMock(return_value=[])), patch(
            "fstr.cli.print_summary_table"
        ) as mock_table:
            main(["-sss", "app.fstr.json"])

        mock_table.assert_not_called()

    @pytest.mark.unit
    def test_engine_error_exits_1(self):
        error = InvalidSchemaError("Source not found: ./nope")
        with patch("fstr.cli.scaffold", AsyncMock(side_effect=error)), patch(
            "fstr.cli.print_error"
        ) as mock_print:
            with pytest.raises(SystemExit) as exc_info:
                main(["./nope"])

        assert exc_info.value.code == 1
        assert "InvalidSchemaError: Source not found" in mock_print.call_args.args[0]

    @pytest.mark.unit
    def test_invalid_options_exit_1(self):
        with patch("fstr.cli.scaffold", AsyncMock(return_value=[])) as mock_scaffold, patch(
            "fstr.cli.print_error"
        ):
            with pytest.raises(SystemExit) as exc_info:
                main(["-p", "0", "app.fstr.json"])

        assert exc_info.value.code == 1
        mock_scaffold.assert_not_called()
