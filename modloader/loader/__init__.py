"""
modloader loader - Orchestration of fetch, pipeline, compile and link.

This package handles:
- The Loader state machine over loading/pending/loaded module metas
- The fetch, transform, dependency and compile stages
- The default linker
- Diagnostics emitted while loading
"""

from modloader.loader.diagnostics import (
    DYNAMIC_REGISTRATION,
    LOAD_FAILURE,
    MODULE_LINKED,
    DynamicRegistration,
    LoadFailure,
    ModuleLinked,
)
from modloader.loader.errors import (
    CircularDependencyError,
    CompileError,
    FetchError,
    LoaderError,
    ModuleStateError,
)
from modloader.loader.loader import Loader

__all__ = [
    "DYNAMIC_REGISTRATION",
    "LOAD_FAILURE",
    "MODULE_LINKED",
    "CircularDependencyError",
    "CompileError",
    "DynamicRegistration",
    "FetchError",
    "LoadFailure",
    "Loader",
    "LoaderError",
    "ModuleLinked",
    "ModuleStateError",
]
