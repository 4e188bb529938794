"""Logging setup.

Modules log through ``logging.getLogger(__name__)``; this module wires the
``fstr`` logger hierarchy to a ``RichHandler`` on the shared console so log
lines can carry rich markup.
"""

from __future__ import annotations

import logging

from rich.logging import RichHandler

from fstr.utils import console

# "log" is the chatty level below info.
_LEVELS: dict[str, int] = {
    "none": logging.CRITICAL + 10,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "log": logging.DEBUG,
    "debug": logging.DEBUG,
}


def level_from_name(name: str) -> int:
    """Map a level name (``none``, ``warn``, ``debug`` ...) to a logging level."""
    return _LEVELS.get(name.strip().lower(), logging.INFO)


def configure_logging(level: str = "info") -> logging.Logger:
    """Attach a single rich handler to the ``fstr`` logger.

    Safe to call repeatedly; previous handlers installed here are replaced.
    """
    logger = logging.getLogger("fstr")
    logger.setLevel(level_from_name(level))

    for handler in list(logger.handlers):
        if getattr(handler, "_fstr_handler", False):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console,
        markup=True,
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
    )
    handler._fstr_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False
    return logger
