"""
Plugin - A named or anonymous bundle of hook handlers.

A plugin holds:
- Matching rules (rule name -> patterns) deciding which modules it processes
- Handlers per hook kind, run in registration order

A plugin built with a registry attaches itself to the registry's hook
pipeline the first time a handler for that hook is added.
"""

import inspect
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog

from modloader.core.utils import maybe_await
from modloader.module.meta import ModuleMeta, merge_result
from modloader.plugin.errors import PluginError
from modloader.plugin.hooks import HandlerEntry, HookType, normalize_handlers
from modloader.plugin.matcher import RuleMatcher

if TYPE_CHECKING:
    from modloader.plugin.registry import PluginRegistry

logger = structlog.get_logger(__name__)


class Plugin:
    """
    Plugin with matching rules and per-hook handlers.

    Example:
        plugin = Plugin("css", registry)
        plugin.add_matching_rules("path", ["**/*.css"])
        plugin.add_handlers("transform", [minify, {"handler": prefix, "options": {"ie": 11}}])
    """

    def __init__(self, name: str | None = None, registry: "PluginRegistry | None" = None):
        """
        Initialize Plugin.

        Args:
            name: Plugin name, or None for an anonymous plugin
            registry: Registry whose hook pipelines this plugin registers into
        """
        if name is not None and (not isinstance(name, str) or not name):
            raise PluginError(f"Plugin name must be a non-empty string. Got: {name!r}")

        self.name = name
        self._registry = registry
        self._matches: dict[str, RuleMatcher] = {}
        self._handlers: dict[HookType, list[HandlerEntry]] = {}

    @property
    def matching_rules(self) -> dict[str, tuple[str, ...]]:
        return {rule: matcher.patterns for rule, matcher in self._matches.items()}

    def handlers(self, hook: HookType | str) -> list[HandlerEntry]:
        """Handlers registered for a hook, in registration order."""
        return list(self._handlers.get(HookType.parse(hook), []))

    def has_handlers(self, hook: HookType | str) -> bool:
        return bool(self._handlers.get(HookType.parse(hook)))

    def add_matching_rules(self, rule_name: str, patterns: str | Iterable[str]) -> "Plugin":
        """
        Store a pattern set under a rule name, replacing any previous set.

        Args:
            rule_name: "path" or "name" to match that meta attribute; any other
                name matches the meta path (or name when there is no path)
            patterns: Glob pattern or list of glob patterns
        """
        match = self._registry.match_func if self._registry is not None else None
        matcher = RuleMatcher(patterns) if match is None else RuleMatcher(patterns, match=match)
        self._matches[rule_name] = matcher
        return self

    def add_handlers(self, hook: HookType | str, handlers: Any) -> "Plugin":
        """
        Register handlers for a hook.

        Args:
            hook: Hook kind
            handlers: A handler, or a list of handlers. Each handler is a
                callable, a module name, or {"handler": ..., "options": ...}

        Raises:
            RegistrationError: If the hook is unknown or any handler is invalid.
                Nothing from the call is registered in that case.
        """
        hook = HookType.parse(hook)
        entries = normalize_handlers(handlers)

        current = self._handlers.get(hook, [])
        added: list[HandlerEntry] = []
        for entry in entries:
            if any(_same_handler(entry, other) for other in current + added):
                continue
            added.append(entry)

        if not added:
            return self

        first_for_hook = hook not in self._handlers
        self._handlers[hook] = current + added

        if first_for_hook and self._registry is not None:
            self._registry.pipeline(hook).use(self)

        logger.debug("plugin.handlers_added", plugin=self.name, hook=hook.value, count=len(added))
        return self

    def can_process(self, meta: ModuleMeta) -> bool:
        """
        Check if this plugin applies to a module meta.

        A meta listing explicit plugins only matches plugins named there.
        Otherwise a plugin without rules matches every meta, and a plugin with
        rules matches when any rule matches.
        """
        if meta.plugins:
            return self.name is not None and self.name in meta.plugins

        if not self._matches:
            return True

        for rule_name, matcher in self._matches.items():
            if matcher.match(_rule_value(meta, rule_name)):
                return True

        return False

    async def run(self, hook: HookType | str, meta: ModuleMeta) -> ModuleMeta:
        """
        Run every handler for a hook in order, awaiting each one.

        Returns:
            The meta threaded through the handlers
        """
        hook = HookType.parse(hook)
        for entry in self.handlers(hook):
            handler = await self._resolve(entry)
            logger.debug("plugin.run", plugin=self.name, hook=hook.value, module=meta.name)
            result = await maybe_await(handler(meta, entry.options))
            meta = merge_result(meta, result)

        return meta

    def run_sync(self, hook: HookType | str, meta: ModuleMeta) -> ModuleMeta:
        """
        Run every handler for a hook synchronously (compile hook).

        Raises:
            PluginError: If a handler returns an awaitable
        """
        hook = HookType.parse(hook)
        for entry in self.handlers(hook):
            handler = self._resolve_sync(entry)
            logger.debug("plugin.run", plugin=self.name, hook=hook.value, module=meta.name)
            result = handler(meta, entry.options)
            if inspect.isawaitable(result):
                if inspect.iscoroutine(result):
                    result.close()
                raise PluginError(
                    f"Plugin '{self.name}' {hook.value} handlers must be synchronous"
                )
            meta = merge_result(meta, result)

        return meta

    async def _resolve(self, entry: HandlerEntry):
        if not entry.is_named:
            return entry.handler
        if self._registry is None:
            raise PluginError(f"Cannot resolve handler '{entry.handler}' without a registry")
        return await self._registry.resolve_handler(entry.handler)

    def _resolve_sync(self, entry: HandlerEntry):
        if not entry.is_named:
            return entry.handler
        if self._registry is None:
            raise PluginError(f"Cannot resolve handler '{entry.handler}' without a registry")
        return self._registry.resolve_handler_sync(entry.handler)

    def __repr__(self) -> str:
        hooks = [hook.value for hook in self._handlers]
        return f"Plugin(name={self.name!r}, hooks={hooks}, rules={list(self._matches)})"


def _same_handler(a: HandlerEntry, b: HandlerEntry) -> bool:
    if a.is_named or b.is_named:
        return a.handler == b.handler
    return a.handler is b.handler


def _rule_value(meta: ModuleMeta, rule_name: str) -> str | None:
    if rule_name == "name":
        return meta.name
    return meta.path or meta.name
