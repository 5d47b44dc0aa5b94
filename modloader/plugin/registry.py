"""
Plugin Registry.

Centralized storage of plugins and the per-hook pipelines that fan a module
meta out to every matching plugin.

Key features:
- One HookPipeline per hook kind, visiting plugins in registration order
- Named plugins are merged on re-registration, anonymous plugins are not
- Declarative definitions ({"match": ..., "transform": [...]}) validated as a
  whole before anything is applied
- String handlers resolved at run time through the host
"""

from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

import structlog

from modloader.core.utils import glob_match
from modloader.module.meta import ModuleMeta
from modloader.plugin.errors import PluginError, RegistrationError
from modloader.plugin.hooks import HandlerEntry, HookType, normalize_handlers
from modloader.plugin.matcher import MatchFunc, pattern_list
from modloader.plugin.plugin import Plugin

logger = structlog.get_logger(__name__)

MATCH_KEY = "match"


class HookPipeline:
    """
    Fan-out over the plugins registered for one hook.

    Every matching plugin runs, in the order plugins registered their first
    handler for the hook. The first handler that raises fails the stage.
    """

    def __init__(self, hook: HookType):
        self.hook = hook
        self._plugins: list[Plugin] = []

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    def use(self, plugin: Plugin) -> "HookPipeline":
        """Add a plugin to the pipeline. Adding the same plugin twice is a no-op."""
        if not any(existing is plugin for existing in self._plugins):
            self._plugins.append(plugin)
        return self

    def plugins_for(self, meta: ModuleMeta) -> list[Plugin]:
        """Plugins with handlers for this hook that match the meta."""
        return [
            plugin
            for plugin in self._plugins
            if plugin.has_handlers(self.hook) and plugin.can_process(meta)
        ]

    async def run_all(self, meta: ModuleMeta) -> ModuleMeta:
        """Run every matching plugin's handlers in order."""
        for plugin in self.plugins_for(meta):
            meta = await plugin.run(self.hook, meta)
        return meta

    def run_all_sync(self, meta: ModuleMeta) -> ModuleMeta:
        """Synchronous run_all() for the compile hook."""
        for plugin in self.plugins_for(meta):
            meta = plugin.run_sync(self.hook, meta)
        return meta

    def __len__(self) -> int:
        return len(self._plugins)


class PluginRegistry:
    """
    Registry of plugins and hook pipelines.

    Example:
        registry = PluginRegistry()
        registry.register("less", {"transform": compile_less})
        registry.register({"match": {"path": ["**/*.css"]}, "transform": [autoprefix]})
        meta = await registry.run("transform", meta)
    """

    def __init__(
        self,
        resolve_handler: Callable[[str], Awaitable[Any]] | None = None,
        resolve_handler_sync: Callable[[str], Any] | None = None,
        match_func: MatchFunc = glob_match,
    ):
        """
        Initialize PluginRegistry.

        Args:
            resolve_handler: Async function returning the module for a handler name
            resolve_handler_sync: Synchronous variant, used by the compile hook
            match_func: Pattern matching capability used by plugin rules
        """
        self.match_func = match_func
        self._resolve_handler = resolve_handler
        self._resolve_handler_sync = resolve_handler_sync
        self._pipelines: dict[HookType, HookPipeline] = {hook: HookPipeline(hook) for hook in HookType}
        self._plugins: list[Plugin] = []
        self._named: dict[str, Plugin] = {}

    @property
    def plugins(self) -> list[Plugin]:
        """All plugins in registration order."""
        return list(self._plugins)

    def pipeline(self, hook: HookType | str) -> HookPipeline:
        return self._pipelines[HookType.parse(hook)]

    def get(self, name: str) -> Plugin | None:
        return self._named.get(name)

    def create(self, name: str | None = None) -> Plugin:
        """
        Create a plugin bound to this registry.

        A named plugin that already exists is returned instead of a new one.
        """
        if name is not None and name in self._named:
            return self._named[name]

        plugin = Plugin(name, registry=self)
        self._plugins.append(plugin)
        if name is not None:
            self._named[name] = plugin

        logger.debug("plugin.created", plugin=name)
        return plugin

    def register(
        self,
        name: "str | Mapping[str, Any] | None" = None,
        definition: Mapping[str, Any] | None = None,
    ) -> Plugin:
        """
        Register a plugin from a declarative definition.

        Args:
            name: Plugin name, or the definition itself for an anonymous plugin
            definition: Mapping with an optional "match" key (rule name ->
                patterns) and one key per hook (handler or list of handlers)

        Returns:
            The created or merged plugin

        Raises:
            RegistrationError: If the definition is malformed. Nothing is
                registered in that case.
        """
        if isinstance(name, Mapping) and definition is None:
            name, definition = None, name

        if name is not None and not isinstance(name, str):
            raise RegistrationError(f"Plugin name must be a string. Got: {name!r}")

        rules, handlers = self._parse_definition(definition or {})

        plugin = self.create(name)
        for rule_name, patterns in rules.items():
            plugin.add_matching_rules(rule_name, patterns)
        for hook, entries in handlers.items():
            plugin.add_handlers(hook, entries)

        return plugin

    def register_many(self, definitions: Iterable[Mapping[str, Any]]) -> list[Plugin]:
        """Register several anonymous plugin definitions, validating all of them first."""
        definitions = list(definitions)
        for definition in definitions:
            self._parse_definition(definition)
        return [self.register(definition) for definition in definitions]

    def _parse_definition(
        self, definition: Mapping[str, Any]
    ) -> tuple[dict[str, list[str]], dict[HookType, list[HandlerEntry]]]:
        if not isinstance(definition, Mapping):
            raise RegistrationError(
                f"Plugin definition must be a mapping. Got: {type(definition).__name__}"
            )

        rules: dict[str, list[str]] = {}
        handlers: dict[HookType, list[HandlerEntry]] = {}

        for key, value in definition.items():
            if key == MATCH_KEY:
                if not isinstance(value, Mapping):
                    raise RegistrationError(
                        "Plugin 'match' must map rule names to lists of patterns"
                    )
                rules = {rule: pattern_list(patterns) for rule, patterns in value.items()}
            else:
                handlers[HookType.parse(key)] = normalize_handlers(value)

        return rules, handlers

    async def run(self, hook: HookType | str, meta: ModuleMeta) -> ModuleMeta:
        """Run a hook over a meta, fanning out to every matching plugin."""
        return await self.pipeline(hook).run_all(meta)

    def run_sync(self, hook: HookType | str, meta: ModuleMeta) -> ModuleMeta:
        return self.pipeline(hook).run_all_sync(meta)

    async def resolve_handler(self, name: str) -> Callable[..., Any]:
        """
        Resolve a named handler by importing the module with that name.

        Raises:
            PluginError: If no resolver is configured or the module code is not callable
        """
        if self._resolve_handler is None:
            raise PluginError(f"Cannot resolve plugin handler '{name}': no resolver configured")
        return _handler_from_module(name, await self._resolve_handler(name))

    def resolve_handler_sync(self, name: str) -> Callable[..., Any]:
        if self._resolve_handler_sync is None:
            raise PluginError(f"Cannot resolve plugin handler '{name}': no resolver configured")
        return _handler_from_module(name, self._resolve_handler_sync(name))


def _handler_from_module(name: str, module: Any) -> Callable[..., Any]:
    handler = getattr(module, "code", module)
    if not callable(handler):
        raise PluginError(f"Module '{name}' does not provide a callable plugin handler")
    return handler
