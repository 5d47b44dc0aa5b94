"""
Manager - Host facade over the loader, the plugin registry and the module cache.

The manager is what a host application talks to. It provides:
- The collaborators the loader calls out to (resolve, fetch, compile, link)
- The permanent cache of linked modules
- Plugin registration and per-stage ignore rules
- The single error reporting hook

Example usage:
    manager = Manager(fetch=read_source, compile=evaluate)
    manager.plugin("less", {"transform": compile_less})
    style = await manager.import_("less!theme.less")
"""

import asyncio
from collections.abc import Callable, Iterable, Mapping, MutableMapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from modloader.config import LoaderSettings
from modloader.core.events import EventBus
from modloader.loader import Loader
from modloader.loader.diagnostics import LOAD_FAILURE, LoadFailure
from modloader.loader.errors import CompileError, FetchError, ModuleStateError
from modloader.loader.linker import link_module
from modloader.module.meta import ModuleMeta
from modloader.module.types import Module
from modloader.plugin.hooks import HookType
from modloader.plugin.matcher import IgnoreRules
from modloader.plugin.plugin import Plugin
from modloader.plugin.registry import PluginRegistry

logger = structlog.get_logger(__name__)

Provider = Callable[..., Any]


class ManagerError(Exception):
    """Base exception for manager errors."""

    pass


@dataclass
class Rules:
    """Rules the manager applies across every plugin."""

    ignore: IgnoreRules = field(default_factory=IgnoreRules)


def resolve_path(meta: ModuleMeta) -> dict[str, Any]:
    """Default resolver: the path is the requested name without plugin prefixes."""
    return {"path": meta.attributes.get("target", meta.name)}


def fetch_unavailable(meta: ModuleMeta) -> None:
    raise FetchError(f"No fetch provider configured to load module '{meta.name}'")


def compile_unavailable(manager: "Manager", meta: ModuleMeta) -> None:
    raise CompileError(f"No compile provider configured to compile module '{meta.name}'")


class Manager:
    """
    Module manager.

    Collaborator contracts:
        resolve(meta): sets the path of a meta; may return None, a mapping or a meta
        fetch(meta): loads source, code or a factory; may be async
        compile(manager, meta): returns a Module, or a result configured onto
            the meta; must be synchronous
        link(manager, module): resolves dependencies, invokes the factory and
            caches the module; must be synchronous
    """

    def __init__(
        self,
        resolve: Provider | None = None,
        fetch: Provider | None = None,
        compile: Provider | None = None,
        link: Provider | None = None,
        settings: LoaderSettings | None = None,
        events: EventBus | None = None,
    ):
        """
        Initialize Manager.

        Args:
            resolve: Resolve provider, defaults to resolve_path
            fetch: Fetch provider; without one, modules must come from plugins
            compile: Compile provider; without one, only compiled metas build
            link: Link provider, defaults to the built-in linker
            settings: Loader settings, defaults to LoaderSettings()
            events: Event bus diagnostics are emitted on
        """
        self.settings = settings if settings is not None else LoaderSettings()
        self.events = events if events is not None else EventBus()

        self._resolve = resolve or resolve_path
        self._fetch = fetch or fetch_unavailable
        self._compile = compile or compile_unavailable
        self._link = link or link_module

        self.rules = Rules()
        for stage, patterns in self.settings.ignore.items():
            self.rules.ignore.add(stage, patterns)

        self.plugins = PluginRegistry(
            resolve_handler=self._import_module,
            resolve_handler_sync=self.require,
        )

        self._modules: dict[str, Module] = {}
        self.loader = Loader(self)

    # === Collaborators ===

    def create_meta(self, name: str, parent_meta: ModuleMeta | None = None) -> ModuleMeta:
        """
        Create the meta for a requested name.

        Plugin prefixes are split off the name: "less!theme.less" gives
        plugins ["less"] and the resolve target "theme.less". The meta keeps
        the full name so differently prefixed requests stay distinct.
        """
        *prefixes, target = name.split(self.settings.plugin_delimiter)
        return ModuleMeta(
            name,
            plugins=[prefix for prefix in prefixes if prefix],
            referrer=parent_meta.name if parent_meta is not None else None,
            target=target or name,
        )

    def resolve(self, meta: ModuleMeta) -> Any:
        return self._resolve(meta)

    def fetch(self, meta: ModuleMeta) -> Any:
        return self._fetch(meta)

    def compile(self, meta: ModuleMeta) -> Any:
        return self._compile(self, meta)

    def link(self, mod: Module) -> Module:
        result = self._link(self, mod)
        return mod if result is None else result

    # === Module cache ===

    def has_module(self, name: str) -> bool:
        return name in self._modules

    def get_module(self, name: str) -> Module | None:
        return self._modules.get(name)

    def set_module(self, mod: Module) -> Module:
        """
        Cache a linked module.

        Raises:
            ManagerError: If mod is not a Module
        """
        if not isinstance(mod, Module):
            raise ManagerError(f"Only Module instances can be cached. Got: {type(mod).__name__}")
        self._modules[mod.name] = mod
        return mod

    def delete_module(self, name: str) -> Module | None:
        return self._modules.pop(name, None)

    def require(self, name: str) -> Module:
        """
        Get a module synchronously, building it if its meta is loaded.

        Raises:
            ModuleStateError: If the module is neither cached nor loaded
        """
        if name in self._modules:
            return self._modules[name]

        if self.loader.is_loaded(name):
            return self.loader.build_module(name)

        raise ModuleStateError(
            f"Module `{name}` is not loaded. Use `import_` to load it before calling `require`"
        )

    # === Host API ===

    async def import_(self, names: str | Sequence[str]) -> Any:
        """
        Load one or several modules and return their code.

        Args:
            names: A module name, or a list of names loaded concurrently

        Returns:
            The module code, or a list of codes in the order of names
        """
        if isinstance(names, str):
            return (await self.loader.load(names)).code

        modules = await asyncio.gather(*[self.loader.load(name) for name in names])
        return [mod.code for mod in modules]

    async def _import_module(self, name: str) -> Module:
        return await self.loader.load(name)

    def register(
        self,
        name: str,
        deps: Sequence[str] | Callable[..., Any] = (),
        factory: Callable[..., Any] | None = None,
    ) -> ModuleMeta:
        """
        Register a module from a factory.

        The dependencies can be omitted: register("a", factory).
        """
        if factory is None and callable(deps):
            deps, factory = [], deps
        return self.loader.register(name, deps, factory)

    def transform(self, meta: "ModuleMeta | MutableMapping[str, Any]") -> asyncio.Future:
        """Run a meta, or a mapping describing one, through the transform stage."""
        return self.loader.transform(meta)

    def plugin(
        self,
        name: "str | Mapping[str, Any] | Iterable[Mapping[str, Any]] | None" = None,
        definition: Mapping[str, Any] | None = None,
    ) -> "Plugin | list[Plugin]":
        """
        Register plugins.

        Accepts a name and a definition, a single anonymous definition, or a
        list of anonymous definitions.
        """
        if isinstance(name, (list, tuple)):
            return self.plugins.register_many(name)
        return self.plugins.register(name, definition)

    def ignore(self, stage: HookType | str, patterns: str | Iterable[str]) -> "Manager":
        """Skip the plugins of a stage for module names matching the patterns."""
        self.rules.ignore.add(stage, patterns)
        return self

    def report_error(self, name: str, error: BaseException) -> None:
        """Log a load failure and emit it as a diagnostic. The error is not swallowed."""
        logger.error("loader.failed", module=name, error=str(error), exc_info=error)
        self.events.emit(LOAD_FAILURE, LoadFailure(name, error))

    def __repr__(self) -> str:
        return f"Manager(modules={len(self._modules)}, plugins={len(self.plugins.plugins)})"
