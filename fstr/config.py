"""fstr run configuration.

Typed options for one engine invocation. The model is independent of any CLI
binding: the command-line front end, the Python API and environment variables
all produce a ``RunOptions`` instance that is then threaded through the run.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

LOG_LEVELS: tuple[str, ...] = ("none", "error", "warn", "warning", "info", "log", "debug")

_TRUTHY = {"1", "true", "yes", "on"}


def _split_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class RunOptions(BaseModel):
    """Options applying to every recipe of a run."""

    recursive: bool = Field(
        default=False, description="Discover and run recipe files found in rendered output"
    )
    output: Path | None = Field(
        default=None, description="Output root for top-level recipes (default: cwd)"
    )
    include: list[str] = Field(
        default_factory=list,
        description="Default sparse-checkout subdirectories for repos without includeDirs",
    )
    exclude: list[str] = Field(
        default_factory=list, description="Directory names excluded from every source tree"
    )
    cache: bool = Field(
        default=False, description="Reuse and keep fetched remote sources between runs"
    )
    parallel: int = Field(default=10, ge=1, description="Max concurrent recipes per round")
    project_root: Path | None = Field(
        default=None, description="Root under which the .fstr/remote cache lives"
    )
    log_level: str = Field(default="info")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> "RunOptions":
        """Build ``RunOptions`` from environment variables.

        Recognised variables (all optional):
            FSTR_RECURSIVE, FSTR_OUTPUT, FSTR_INCLUDE, FSTR_EXCLUDE,
            FSTR_CACHE, FSTR_PARALLEL, FSTR_PROJECT_ROOT, FSTR_LOG.

        Keyword arguments take precedence over the environment.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("FSTR_RECURSIVE"):
            kwargs["recursive"] = os.environ["FSTR_RECURSIVE"].lower() in _TRUTHY
        if os.environ.get("FSTR_OUTPUT"):
            kwargs["output"] = Path(os.environ["FSTR_OUTPUT"])
        if os.environ.get("FSTR_INCLUDE"):
            kwargs["include"] = _split_list(os.environ["FSTR_INCLUDE"])
        if os.environ.get("FSTR_EXCLUDE"):
            kwargs["exclude"] = _split_list(os.environ["FSTR_EXCLUDE"])
        if os.environ.get("FSTR_CACHE"):
            kwargs["cache"] = os.environ["FSTR_CACHE"].lower() in _TRUTHY
        if os.environ.get("FSTR_PARALLEL"):
            kwargs["parallel"] = int(os.environ["FSTR_PARALLEL"])
        if os.environ.get("FSTR_PROJECT_ROOT"):
            kwargs["project_root"] = Path(os.environ["FSTR_PROJECT_ROOT"])
        if os.environ.get("FSTR_LOG"):
            kwargs["log_level"] = os.environ["FSTR_LOG"]

        kwargs.update(overrides)
        return cls(**kwargs)
