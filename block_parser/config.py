"""Configuration constants and .env loading.

WHY: The parser needs three process-wide names (the freeform handler, the
unregistered-type handler, and the default block) plus a nesting limit.
Keeping them here as plain module constants makes them easy to find and to
override per deployment without touching parsing logic.

HOW: python-dotenv loads the .env file on import. Each constant reads an
environment variable with a built-in default. ``ParseContext.from_config``
copies these values into an immutable context at parse time.

RULES:
- An empty environment value disables a handler (becomes None)
- The parser never reads these constants directly; only ParseContext does
- MAX_NESTING_DEPTH must be a positive integer
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv

# Load .env from the project root (where the process is started from)
load_dotenv()


def _optional_name(env_var: str, default: str) -> Optional[str]:
    """Read a handler name, treating an empty value as "no handler"."""
    value = os.getenv(env_var, default).strip()
    return value or None


def _positive_int(env_var: str, default: int) -> int:
    """Read a positive integer setting.

    RULES:
    - Raises ValueError with the variable name when the value is not a
      positive integer
    """
    raw = os.getenv(env_var, str(default)).strip()
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"{env_var} must be a positive integer, got {raw!r}."
        ) from None
    if value < 1:
        raise ValueError(f"{env_var} must be a positive integer, got {value}.")
    return value


# ---------------------------------------------------------------------------
# Handler names
# ---------------------------------------------------------------------------

FREEFORM_HANDLER_NAME = _optional_name("BLOCK_PARSER_FREEFORM_HANDLER", "core/freeform")
"""Block type that holds text found outside any block delimiter."""

UNREGISTERED_HANDLER_NAME = _optional_name(
    "BLOCK_PARSER_UNREGISTERED_HANDLER", "core/missing"
)
"""Block type that holds blocks whose type is not registered."""

DEFAULT_BLOCK_NAME = _optional_name("BLOCK_PARSER_DEFAULT_BLOCK", "core/paragraph")
"""Block type a host inserts for new empty content."""

# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------

MAX_NESTING_DEPTH = _positive_int("BLOCK_PARSER_MAX_DEPTH", 200)
"""Deepest block nesting accepted before parsing is refused."""
