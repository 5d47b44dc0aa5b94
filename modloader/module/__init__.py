"""
modloader module model - Records passed through the loader.

- ModuleMeta: mutable intermediate record with a tagged content variant
- Module: compiled unit consumed by the host
"""

from modloader.module.meta import (
    PENDING,
    Code,
    Content,
    Factory,
    MetaError,
    ModuleMeta,
    Pending,
    Source,
    merge_result,
)
from modloader.module.types import Module, ModuleError, ModuleType

__all__ = [
    "PENDING",
    "Code",
    "Content",
    "Factory",
    "MetaError",
    "Module",
    "ModuleError",
    "ModuleMeta",
    "ModuleType",
    "Pending",
    "Source",
    "merge_result",
]
