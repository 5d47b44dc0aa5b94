"""
Utils Module - Small helpers shared by the loader and plugin system.

This module provides:
- maybe_await(): Await a value only if it is awaitable
- resolved(): A future that is already resolved with a value
- glob_match(): Path-style glob matching used by plugin matching rules
"""

import asyncio
import inspect
import re
from functools import lru_cache
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Return the value, awaiting it first if it is awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


def resolved(value: Any) -> asyncio.Future:
    """
    Create a future already resolved with the given value.

    Must be called with a running event loop.
    """
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


def retrieve_exception(future: asyncio.Future) -> None:
    """Done callback that marks a failed future's exception as retrieved."""
    if not future.cancelled():
        future.exception()


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern:
    """
    Convert a path glob to a compiled regex.

    Supports:
    - * matches any characters within a path segment (not across /)
    - ? matches a single character within a segment
    - ** matches across segments; "**/" also matches zero segments

    Example:
        glob_to_regex("**/*.css").match("x.css")  # matches
    """
    parts = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1

    return re.compile("^" + "".join(parts) + "$")


def glob_match(value: str, pattern: str) -> bool:
    """Check if a value matches a path glob pattern."""
    if value is None:
        return False
    return glob_to_regex(pattern).match(value) is not None
