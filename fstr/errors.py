"""Exception hierarchy for the fstr engine.

Every error the engine raises derives from :class:`FstrError` so callers (and
the CLI) can catch engine failures with a single ``except`` clause while still
inspecting the structured payload of the more specific classes.
"""

from __future__ import annotations

from typing import Any


class FstrError(Exception):
    """Base class for all engine errors."""


class InvalidSchemaError(FstrError):
    """Raised when a recipe schema is malformed or structurally illegal.

    Covers missing sources, schema arrays, sub-recipe dependencies and
    circular dependencies. Never retried.
    """


class RecipeRuntimeError(FstrError):
    """Raised when the run cannot continue (unmet dependencies, sibling waits)."""


class ScriptError(RecipeRuntimeError):
    """Raised when a ``scripts.before`` / ``scripts.after`` hook fails."""

    def __init__(
        self,
        message: str,
        command: str = "",
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)


class FetchError(FstrError):
    """Raised when a remote source cannot be fetched.

    Attributes:
        url: The locator that was being fetched.
        status_code: HTTP status of the response, if one was received.
        headers: Response headers, if a response was received.
        body: Response body text, if a response was received.
        error: The underlying transport / subprocess exception, if any.
    """

    def __init__(
        self,
        message: str,
        url: str = "",
        status_code: int | None = None,
        headers: dict[str, Any] | None = None,
        body: str = "",
        error: BaseException | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.headers = headers or {}
        self.body = body
        self.error = error
        super().__init__(message)


class GitError(FetchError):
    """Raised when a git subprocess exits non-zero while fetching a repo."""

    def __init__(self, message: str, command: str = "", stderr: str = "", url: str = "") -> None:
        self.command = command
        self.stderr = stderr
        super().__init__(message, url=url)
