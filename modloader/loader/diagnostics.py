"""
Loader Diagnostics.

Typed events the loader emits on the manager's event bus. Hosts subscribe
to them instead of reading warnings from a console.
"""

from dataclasses import dataclass

DYNAMIC_REGISTRATION = "loader.register.dynamic"
LOAD_FAILURE = "loader.error"
MODULE_LINKED = "loader.module.linked"


@dataclass(frozen=True)
class DynamicRegistration:
    """
    A module registered itself while it was being loaded.

    This is a supported pattern, not an error: the registration wins over
    the module that was being built.
    """

    name: str
    message: str = "Module is being dynamically registered while being loaded"


@dataclass(frozen=True)
class LoadFailure:
    """A fetch, transform, dependency or compile step failed for a module."""

    name: str
    error: BaseException


@dataclass(frozen=True)
class ModuleLinked:
    """A module was linked and handed to the manager's cache."""

    name: str
