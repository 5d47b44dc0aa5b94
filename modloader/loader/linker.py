"""
Default module linker.

Linking is the last, synchronous step of building a module: every
dependency name is turned into a Module (building loaded metas on demand),
the factory is called with the dependency values, and the module is stored
in the manager's cache.
"""

from typing import TYPE_CHECKING

import structlog

from modloader.module.types import Module

if TYPE_CHECKING:
    from modloader.manager import Manager

logger = structlog.get_logger(__name__)


def link_module(manager: "Manager", mod: Module) -> Module:
    """
    Resolve dependencies, invoke the factory and cache the module.

    Args:
        manager: Manager owning the module cache
        mod: Compiled module

    Returns:
        The linked module
    """
    if mod.factory is not None and not mod.has_code:
        values = [manager.require(dep).code for dep in mod.deps]
        mod.code = mod.factory(*values)
    else:
        # Dependencies are built even when there is no factory to call
        for dep in mod.deps:
            manager.require(dep)

    manager.set_module(mod)
    logger.debug("linker.linked", module=mod.name, deps=mod.deps)
    return mod
