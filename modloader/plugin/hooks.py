"""
Plugin Hooks.

This module defines the hook kinds plugins can register handlers for and
the handler entries stored per hook.

Hook kinds, in the order a module meta meets them:
- fetch: load the source of a module
- transform: rewrite the source in place
- dependency: declare the module's dependency names
- compile: turn the meta into code (synchronous)
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from modloader.plugin.errors import RegistrationError

HANDLER_TYPE_MESSAGE = (
    "Plugin handler must be a string, a function, or an object with a handler "
    "that is a string or a function"
)


class HookType(Enum):
    """Hook type enumeration."""

    FETCH = "fetch"
    TRANSFORM = "transform"
    DEPENDENCY = "dependency"
    COMPILE = "compile"

    @classmethod
    def parse(cls, hook: "HookType | str") -> "HookType":
        """
        Convert a hook name to a HookType.

        Raises:
            RegistrationError: If the hook name is unknown
        """
        if isinstance(hook, cls):
            return hook
        try:
            return cls(hook)
        except ValueError:
            known = ", ".join(h.value for h in cls)
            raise RegistrationError(
                f"Unknown plugin hook '{hook}'. Expected one of: {known}"
            ) from None


@dataclass(frozen=True)
class HandlerEntry:
    """
    A handler registered for one hook.

    Attributes:
        handler: Callable taking (meta, options), or the name of a module
            whose code is such a callable
        options: Value passed as the second argument (may be None)
    """

    handler: Callable[..., Any] | str
    options: Any = None

    @property
    def is_named(self) -> bool:
        return isinstance(self.handler, str)


def _is_handler(value: Any) -> bool:
    return callable(value) or (isinstance(value, str) and bool(value))


def normalize_handler(item: Any) -> HandlerEntry:
    """
    Convert one handler registration item to a HandlerEntry.

    Accepts a callable, a module name string, a HandlerEntry, or a mapping
    with a "handler" key and an optional "options" key.

    Raises:
        RegistrationError: If the item is none of these
    """
    if isinstance(item, HandlerEntry):
        if not _is_handler(item.handler):
            raise RegistrationError(HANDLER_TYPE_MESSAGE)
        return item
    if isinstance(item, Mapping):
        handler = item.get("handler")
        if not _is_handler(handler):
            raise RegistrationError(HANDLER_TYPE_MESSAGE)
        return HandlerEntry(handler=handler, options=item.get("options"))
    if _is_handler(item):
        return HandlerEntry(handler=item)

    raise RegistrationError(HANDLER_TYPE_MESSAGE)


def normalize_handlers(handlers: Any) -> list[HandlerEntry]:
    """
    Normalize a single handler or a list of handlers.

    Every item is validated before anything is returned, so a batch with one
    invalid item is rejected as a whole.
    """
    items = handlers if isinstance(handlers, (list, tuple)) else [handlers]
    return [normalize_handler(item) for item in items]
