"""
modloader plugin system - Routing of hook handlers to modules.

This package handles:
- Hook kinds and handler entries
- Glob matching rules and per-stage ignore rules
- Plugins and the registry that fans a meta out to matching plugins
"""

from modloader.plugin.errors import PluginError, RegistrationError
from modloader.plugin.hooks import HandlerEntry, HookType
from modloader.plugin.matcher import IgnoreRules, RuleMatcher
from modloader.plugin.plugin import Plugin
from modloader.plugin.registry import HookPipeline, PluginRegistry

__all__ = [
    "HandlerEntry",
    "HookPipeline",
    "HookType",
    "IgnoreRules",
    "Plugin",
    "PluginError",
    "PluginRegistry",
    "RegistrationError",
    "RuleMatcher",
]
