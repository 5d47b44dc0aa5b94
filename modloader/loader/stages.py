"""
Module meta stages.

Each stage takes the manager and a module meta and returns the meta to hand
to the next stage:

1. fetch: create and resolve the meta, let fetch plugins provide the source,
   fall back to the manager's fetch provider
2. transform: run every matching transform handler
3. dependency: run every matching dependency handler, then fetch every
   declared dependency
4. compile: run compile handlers, then the compile provider (synchronous)

Names matched by the manager's ignore rules skip the plugins of a stage. An
ignored fetch also skips the fetch provider.
"""

import inspect
from typing import TYPE_CHECKING

import structlog

from modloader.core.utils import maybe_await
from modloader.loader.errors import CompileError
from modloader.module.meta import ModuleMeta, merge_result
from modloader.module.types import Module
from modloader.plugin.hooks import HookType

if TYPE_CHECKING:
    from modloader.manager import Manager

logger = structlog.get_logger(__name__)


def _has_content(meta: ModuleMeta) -> bool:
    return meta.is_compiled or meta.can_compile


async def fetch_stage(
    manager: "Manager", name: str, parent_meta: ModuleMeta | None = None
) -> ModuleMeta:
    """
    Build the module meta for a name and load its source.

    Returns:
        A meta with source, code or a factory, unless every fetcher declined
    """
    meta = manager.create_meta(name, parent_meta)
    meta = merge_result(meta, await maybe_await(manager.resolve(meta)))
    logger.debug("stage.fetch", module=meta.name, path=meta.path)

    if _has_content(meta) or manager.rules.ignore.match(meta.name, HookType.FETCH):
        return meta

    meta = await manager.plugins.run(HookType.FETCH, meta)
    if _has_content(meta):
        return meta

    return merge_result(meta, await maybe_await(manager.fetch(meta)))


async def transform_stage(manager: "Manager", meta: ModuleMeta) -> ModuleMeta:
    """Run the transform handlers of every matching plugin."""
    logger.debug("stage.transform", module=meta.name)

    if manager.rules.ignore.match(meta.name, HookType.TRANSFORM):
        return meta

    return await manager.plugins.run(HookType.TRANSFORM, meta)


async def dependency_stage(manager: "Manager", meta: ModuleMeta) -> ModuleMeta:
    """Collect dependency names, then fetch all of them before returning."""
    logger.debug("stage.dependency", module=meta.name)

    if not meta.is_compiled and not manager.rules.ignore.match(meta.name, HookType.DEPENDENCY):
        meta = await manager.plugins.run(HookType.DEPENDENCY, meta)

    return await manager.loader.load_dependencies(meta)


def compile_stage(manager: "Manager", meta: ModuleMeta) -> Module:
    """
    Compile a finished module meta into a Module.

    Raises:
        CompileError: If the compile provider is asynchronous or produces nothing
    """
    logger.debug("stage.compile", module=meta.name)

    if not manager.rules.ignore.match(meta.name, HookType.COMPILE):
        meta = manager.plugins.run_sync(HookType.COMPILE, meta)

    if meta.is_compiled:
        return Module.from_meta(meta)

    result = manager.compile(meta)
    if isinstance(result, Module):
        return result
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        raise CompileError(f"Compile provider must be synchronous (module '{meta.name}')")

    meta = merge_result(meta, result)
    if meta.is_compiled:
        return Module.from_meta(meta)

    # Evaluating the source may have registered the module; the registration replaces this result
    if manager.loader.has_module(meta.name):
        return Module.from_meta(meta)

    raise CompileError(f"Compiling module '{meta.name}' did not produce code or a factory")
