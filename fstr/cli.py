"""Command-line front end: ``fstr [options] RECIPE...``."""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from typing import Any

from pydantic import ValidationError
from rich.markup import escape

from fstr import scaffold
from fstr.config import RunOptions
from fstr.errors import FstrError
from fstr.utils import format_duration, print_error, print_success, print_summary_table

# -s / -v step through these, starting from "info".
_VERBOSITY = ("none", "error", "warn", "info", "log", "debug")


def _log_level(silent: int, verbose: int, default: str) -> str:
    if not silent and not verbose:
        return default
    index = _VERBOSITY.index("info") - silent + verbose
    return _VERBOSITY[max(0, min(index, len(_VERBOSITY) - 1))]


def _split(values: list[str] | None) -> list[str]:
    return [part.strip() for value in values or [] for part in value.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fstr",
        description="fstr -- scaffold projects from recipes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  fstr ./recipes/app.fstr.json\n"
            "  fstr https://github.com/org/template.git -o ./my-project\n"
            "  fstr ./templates/api -e node_modules,dist -p 4 -v\n"
        ),
    )
    parser.add_argument("recipes", nargs="+", metavar="RECIPE", help="Recipe file, directory or URL")
    cache = parser.add_mutually_exclusive_group()
    cache.add_argument(
        "--cache", "-c",
        dest="cache", action="store_true", default=None,
        help="Reuse remote sources from the .fstr/remote cache and keep them",
    )
    cache.add_argument(
        "--no-cache", "-C",
        dest="cache", action="store_false", default=None,
        help="Always re-fetch remote sources and remove them afterwards",
    )
    parser.add_argument(
        "--exclude", "-e",
        action="append",
        help="Directory names to skip in every source (comma separated, repeatable)",
    )
    parser.add_argument(
        "--include", "-i",
        action="append",
        help="Default sparse-checkout directories for repositories (comma separated, repeatable)",
    )
    parser.add_argument("--parallel", "-p", type=int, default=None, help="Max recipes run at once (default: 10)")
    parser.add_argument("--output", "-o", default=None, help="Output directory (default: cwd)")
    parser.add_argument(
        "--recursive", "-R",
        action="store_true", default=None,
        help="Also run recipe files found in generated output",
    )
    parser.add_argument("--silent", "-s", action="count", default=0, help="Log less (repeatable)")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="Log more (repeatable)")
    parser.add_argument("--project-root", default=None, help="Directory holding the .fstr/remote cache")
    return parser


def options_from_args(args: argparse.Namespace) -> RunOptions:
    """Merge parsed arguments on top of the ``FSTR_*`` environment."""
    overrides: dict[str, Any] = {}
    if args.cache is not None:
        overrides["cache"] = args.cache
    if args.exclude:
        overrides["exclude"] = _split(args.exclude)
    if args.include:
        overrides["include"] = _split(args.include)
    if args.parallel is not None:
        overrides["parallel"] = args.parallel
    if args.output:
        overrides["output"] = args.output
    if args.recursive:
        overrides["recursive"] = True
    if args.project_root:
        overrides["project_root"] = args.project_root

    options = RunOptions.from_env(**overrides)
    level = _log_level(args.silent, args.verbose, options.log_level)
    return options.model_copy(update={"log_level": level})


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``fstr`` and ``python -m fstr``."""
    args = build_parser().parse_args(argv)

    try:
        options = options_from_args(args)
    except (ValidationError, ValueError) as exc:
        print_error(f"Error: invalid options: {escape(str(exc))}")
        sys.exit(1)

    started = time.monotonic()
    try:
        generated = asyncio.run(scaffold(args.recipes, options))
    except FstrError as exc:
        print_error(f"{type(exc).__name__}: {escape(str(exc))}")
        sys.exit(1)

    if options.log_level != "none":
        print_summary_table(
            {
                "Recipes generated": str(len(generated)),
                "Output": str(options.output or "."),
                "Duration": format_duration(time.monotonic() - started),
            },
            title="fstr",
        )
        print_success("Scaffolding completed successfully!")


if __name__ == "__main__":
    main()
