"""
Loader - Turns module names into linked Module instances.

The loader owns the in-flight state of every module meta it is working on:
- LOADING: the meta is being fetched and pipelined (item is the task)
- PENDING: the meta is known but its dependencies are not loaded yet.
  Only for ASYNC processing (e.g. a module registered with dependencies).
- LOADED: the meta went through the whole pipeline and can be compiled.
  Only for SYNC processing.

Primary workflow:
    fetch      -> module name {str}
    transform  -> module meta {source}
    load deps  -> module meta {source, deps}
    compile    -> Module
    link       -> Module, dependencies resolved and factory invoked

Fetching, transforming and dependency loading are asynchronous. Compiling
and linking are synchronous, so once a meta is LOADED the module can be
built immediately, import-style. Finished modules live in the manager's
module cache; this loader never stores them.
"""

import asyncio
import functools
from collections.abc import Awaitable, Callable, MutableMapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from modloader.core.pipeline import Pipeline
from modloader.core.stateful import ItemState, StatefulItems
from modloader.core.utils import resolved, retrieve_exception
from modloader.loader.diagnostics import (
    DYNAMIC_REGISTRATION,
    MODULE_LINKED,
    DynamicRegistration,
    ModuleLinked,
)
from modloader.loader.errors import CircularDependencyError, LoaderError, ModuleStateError
from modloader.loader.stages import compile_stage, dependency_stage, fetch_stage, transform_stage
from modloader.module.meta import MetaError, ModuleMeta
from modloader.module.types import Module

if TYPE_CHECKING:
    from modloader.manager import Manager

logger = structlog.get_logger(__name__)

# Name given to metas transformed from a mapping without one
ANONYMOUS = "<anonymous>"


class Loader:
    """
    Module meta lifecycle orchestrator.

    Concurrent requests for a name that is in flight share one fetch. A
    module meta is never marked LOADED before all of its dependencies went
    through their own fetch, transform and dependency stages.
    """

    def __init__(self, manager: "Manager"):
        """
        Initialize Loader.

        Args:
            manager: Manager providing collaborators, plugins and the module cache

        Raises:
            LoaderError: If no manager is given
        """
        if manager is None:
            raise LoaderError("Must provide a manager")

        self.manager = manager
        self.pipeline = Pipeline([transform_stage, dependency_stage])
        self.modules = StatefulItems()

        # module name -> dependency names it is currently waiting on
        self._waiting: dict[str, set[str]] = {}

    # === Entry points ===

    def load(self, name: str, parent_meta: ModuleMeta | None = None) -> asyncio.Future:
        """
        Load a module, returning a future that resolves to the linked Module.

        If the manager already has the module, the future is already resolved.
        If the module meta is LOADED or PENDING, no fetch is triggered.

        Args:
            name: Name of the module to load
            parent_meta: Module meta requesting this module, if any

        Raises:
            MetaError: If no name is given
        """
        _check_name(name)
        manager = self.manager

        if manager.has_module(name):
            return resolved(manager.get_module(name))

        if self.is_loaded(name) or self.is_pending(name):
            return asyncio.ensure_future(self.async_build_module(name))

        fetching = self.fetch(name, parent_meta)
        return asyncio.ensure_future(self._build_when_fetched(name, fetching))

    async def _build_when_fetched(self, name: str, fetching: Awaitable[Any]) -> Module:
        await fetching
        return await self.async_build_module(name)

    def fetch(self, name: str, parent_meta: ModuleMeta | None = None) -> asyncio.Future:
        """
        Fetch and pipeline a module meta without building the module.

        Use this to preload a module and its dependencies. Concurrent calls for
        a name that is loading return the same future.

        Args:
            name: Name of the module to fetch
            parent_meta: Module meta requesting the fetch (dependency loading)

        Returns:
            Future resolving to a delegate that builds and returns the Module

        Raises:
            MetaError: If no name is given
            CircularDependencyError: If the name is loading and waits on parent_meta
        """
        _check_name(name)

        if self.manager.has_module(name) or self.is_loaded(name):
            return resolved(self._module_delegate(name))

        if self.is_loading(name):
            if parent_meta is not None:
                self._check_cycle(name, parent_meta.name)
            return self.get_loading(name)

        if self.is_pending(name):
            return self._track_loading(name, self.load_pending(name))

        logger.debug("loader.fetch", module=name, parent=parent_meta.name if parent_meta else None)
        return self._track_loading(name, self.fetch_module_meta(name, parent_meta))

    def register(self, name: str, deps: Sequence[str], factory: Callable[..., Any]) -> ModuleMeta:
        """
        Register a module meta that is ready to be compiled.

        A meta with dependencies is stored as PENDING, otherwise as LOADED.

        Raises:
            ModuleStateError: If the name is already known to the manager or the loader
            MetaError: If deps is not a list of names or factory is not callable
        """
        if self.manager.has_module(name) or self.has_module(name):
            raise ModuleStateError(f"Module '{name}' is already loaded")

        if not isinstance(deps, (list, tuple)) or not all(isinstance(d, str) for d in deps):
            raise MetaError(f"Module '{name}' dependencies must be a list of module names")

        if not callable(factory):
            raise MetaError(f"Module '{name}' factory must be callable")

        meta = ModuleMeta(name, deps=list(deps), factory=factory)

        if meta.has_dependencies:
            self.set_pending(name, meta)
        else:
            self.set_loaded(name, meta)

        logger.debug("loader.register", module=name, deps=meta.deps)
        return meta

    def transform(self, meta: "ModuleMeta | MutableMapping[str, Any]") -> asyncio.Future:
        """
        Run a module meta through the transform stage only.

        Dependencies are not loaded, which makes this usable by tooling that
        wants transformed source without triggering the load graph. A mapping
        needs no name; the transformed fields are written back into it.

        Args:
            meta: Module meta, or a mutable mapping, with a string source

        Returns:
            Future resolving to the object that was passed in, transformed

        Raises:
            MetaError: If meta is not a module meta or has no string source
        """
        if isinstance(meta, MutableMapping):
            if not isinstance(meta.get("source"), str):
                raise MetaError("Must provide a source string property with the content to transform")
            meta.setdefault("deps", [])
            return asyncio.ensure_future(
                self._transform_options(meta, ModuleMeta.coerce(meta, name=ANONYMOUS))
            )

        if not isinstance(meta, ModuleMeta):
            raise MetaError("Must provide a module meta object")

        if not isinstance(meta.source, str):
            raise MetaError("Must provide a source string property with the content to transform")

        if meta.deps is None:
            meta.deps = []

        return asyncio.ensure_future(transform_stage(self.manager, meta))

    async def _transform_options(
        self, options: MutableMapping[str, Any], meta: ModuleMeta
    ) -> MutableMapping[str, Any]:
        result = (await transform_stage(self.manager, meta)).to_dict()
        if "name" not in options:
            result.pop("name")
        options.update(result)
        return options

    # === Pipeline ===

    async def fetch_module_meta(self, name: str, parent_meta: ModuleMeta | None = None) -> ModuleMeta:
        """
        Call the fetch stage and put the resulting meta through the pipeline.

        Returns:
            The module meta with its dependencies loaded
        """
        meta = await fetch_stage(self.manager, name, parent_meta)
        return await self.pipeline_module_meta(meta)

    async def pipeline_module_meta(self, meta: ModuleMeta) -> ModuleMeta:
        """
        Put a module meta through the transform and dependency stages.

        A meta that is already compiled skips the handlers, but its declared
        dependencies are still loaded.

        Raises:
            MetaError: If the meta has neither source, code nor factory
        """
        meta.validate()

        if meta.is_compiled:
            return await self.load_dependencies(meta)

        return await self.pipeline.run(self.manager, meta)

    async def load_dependencies(self, meta: ModuleMeta) -> ModuleMeta:
        """
        Fetch every dependency of a meta and wait for all of them.

        Returns:
            The same meta, once every dependency is fetched and pipelined
        """
        if not meta.has_dependencies:
            return meta

        self._waiting.setdefault(meta.name, set()).update(meta.deps)
        try:
            fetches = [self.fetch(dep, meta) for dep in meta.deps]
            await asyncio.gather(*fetches)
        finally:
            self._waiting.pop(meta.name, None)

        return meta

    def load_pending(self, name: str) -> asyncio.Future:
        """
        Load the dependencies of a PENDING module meta.

        The meta is removed from the PENDING state.

        Returns:
            Future resolving to the meta once every dependency is loaded

        Raises:
            ModuleStateError: If the meta is not PENDING
        """
        if self.is_pending(name):
            meta = self.remove_module(name)
        elif self.manager.has_module(name):
            raise ModuleStateError(
                f"Module `{name}` is already loaded, so you can just call `manager.get_module(name)`"
            )
        else:
            raise ModuleStateError(f"Module meta `{name}` is not in a pending state")

        return asyncio.ensure_future(self.load_dependencies(meta))

    # === Build ===

    def compile_module_meta(self, name: str) -> Module:
        """
        Convert a LOADED module meta into a Module.

        The meta is removed from the loader; the Module takes it over.

        Raises:
            ModuleStateError: If the meta is not LOADED
        """
        if self.is_loaded(name):
            meta = self.remove_module(name)
        elif self.manager.has_module(name):
            raise ModuleStateError(
                f"Module `{name}` is already loaded, so you can just call `manager.get_module(name)`"
            )
        else:
            raise ModuleStateError(
                f"Module `{name}` is not loaded yet. Make sure to call `load` or `fetch` "
                f"prior to calling `compile_module_meta`"
            )

        return compile_stage(self.manager, meta)

    def link_module(self, mod: Module) -> Module:
        """
        Resolve a Module's dependencies and invoke its factory.

        This is where the synchronous build and dynamic registration meet: a
        module registering itself while being loaded shows up as PENDING here.
        That is reported as a diagnostic, not an error.

        Raises:
            ModuleStateError: If mod is not a Module
        """
        if not isinstance(mod, Module):
            raise ModuleStateError(f"Module `{mod!r}` is not an instance of Module")

        if self.is_pending(mod.name):
            self._report_dynamic_registration(mod.name)

        linked = self.manager.link(mod)
        self.manager.events.emit(MODULE_LINKED, ModuleLinked(linked.name))
        return linked

    def build_module(self, name: str) -> Module:
        """Compile and link a LOADED module meta synchronously."""
        return self.link_module(self.compile_module_meta(name))

    async def async_build_module(self, name: str) -> Module:
        """
        Build a module, handling modules that register themselves.

        If compiling a module makes it register itself with dependencies, the
        registration is PENDING: its dependencies are loaded first and a fresh
        Module built from the registration is linked instead.
        """
        try:
            return await self._build(name)
        except Exception as error:
            self.manager.report_error(name, error)
            raise

    async def _build(self, name: str) -> Module:
        manager = self.manager
        if manager.has_module(name):
            return manager.get_module(name)

        if self.is_loading(name):
            await self.get_loading(name)
            return await self._build(name)

        mod = None
        if self.is_loaded(name):
            mod = self.compile_module_meta(name)

            # Registered itself without dependencies while compiling
            if self.is_loaded(name):
                logger.debug("loader.reregistered", module=name)
                mod = self.compile_module_meta(name)

        if self.is_pending(name):
            if mod is not None:
                self._report_dynamic_registration(name)
            pending = self.load_pending(name)
            self._track_loading(name, pending, mark_loaded=False, report=False)
            meta = await pending
            return self.link_module(Module.from_meta(meta))

        if mod is None:
            raise ModuleStateError(
                f"Module `{name}` is not loaded yet. Make sure to call `load` or `fetch` first"
            )

        return self.link_module(mod)

    # === In-flight tracking ===

    def _track_loading(
        self,
        name: str,
        work: Awaitable[ModuleMeta],
        *,
        mark_loaded: bool = True,
        report: bool = True,
    ) -> asyncio.Future:
        task = asyncio.ensure_future(self._settle(name, work, mark_loaded, report))
        task.add_done_callback(retrieve_exception)
        return self.set_loading(name, task)

    async def _settle(
        self, name: str, work: Awaitable[ModuleMeta], mark_loaded: bool, report: bool
    ) -> Callable[[], Module]:
        try:
            meta = await work
        except asyncio.CancelledError:
            self._drop_loading(name)
            raise
        except Exception as error:
            self._drop_loading(name)
            if report:
                self.manager.report_error(name, error)
            raise

        if mark_loaded:
            self.set_loaded(name, meta)
        else:
            self._drop_loading(name)

        return self._module_delegate(name)

    def _report_dynamic_registration(self, name: str) -> None:
        logger.warning(
            "loader.dynamic_registration",
            module=name,
            hint="Registering a module is not needed when it is already being loaded",
        )
        self.manager.events.emit(DYNAMIC_REGISTRATION, DynamicRegistration(name))

    def _drop_loading(self, name: str) -> None:
        if self.get_loading(name) is asyncio.current_task():
            self.remove_module(name)

    def _module_delegate(self, name: str) -> Callable[[], Module]:
        return functools.partial(self.manager.require, name)

    def _check_cycle(self, name: str, parent_name: str) -> None:
        path = self._wait_path(name, parent_name)
        if path is not None:
            raise CircularDependencyError([parent_name, *path])

    def _wait_path(self, start: str, target: str) -> list[str] | None:
        """Path from start to target in the wait-for graph, if there is one."""
        stack = [(start, [start])]
        seen: set[str] = set()
        while stack:
            node, path = stack.pop()
            if node == target:
                return path
            if node in seen:
                continue
            seen.add(node)
            for dep in self._waiting.get(node, ()):
                stack.append((dep, [*path, dep]))

        return None

    # === State helpers ===

    def has_module(self, name: str) -> bool:
        """Check if a module meta is loading, pending or loaded."""
        return self.modules.has_item(name)

    def get_module(self, name: str) -> Any:
        """Module meta for a name, or the in-flight future if it is loading."""
        return self.modules.get_item(self.modules.get_state(name), name)

    def is_loading(self, name: str) -> bool:
        return self.modules.has_item_with_state(ItemState.LOADING, name)

    def get_loading(self, name: str) -> asyncio.Future | None:
        return self.modules.get_item(ItemState.LOADING, name)

    def set_loading(self, name: str, item: asyncio.Future) -> asyncio.Future:
        return self.modules.set_item(ItemState.LOADING, name, item)

    def is_pending(self, name: str) -> bool:
        return self.modules.has_item_with_state(ItemState.PENDING, name)

    def get_pending(self, name: str) -> ModuleMeta | None:
        return self.modules.get_item(ItemState.PENDING, name)

    def set_pending(self, name: str, item: ModuleMeta) -> ModuleMeta:
        return self.modules.set_item(ItemState.PENDING, name, item)

    def is_loaded(self, name: str) -> bool:
        return self.modules.has_item_with_state(ItemState.LOADED, name)

    def get_loaded(self, name: str) -> ModuleMeta | None:
        return self.modules.get_item(ItemState.LOADED, name)

    def set_loaded(self, name: str, item: ModuleMeta) -> ModuleMeta:
        return self.modules.set_item(ItemState.LOADED, name, item)

    def remove_module(self, name: str) -> Any:
        return self.modules.remove_item(name)


def _check_name(name: Any) -> None:
    if not isinstance(name, str) or not name:
        raise MetaError("Must provide the name of the module to load")
