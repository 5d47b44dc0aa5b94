"""
modloader - Asynchronous module loading with pluggable stages.

Module names go through fetch, transform and dependency stages
asynchronously, then compile and link synchronously. Plugins route hook
handlers to modules by glob rules; a Manager ties it together for hosts.
"""

__version__ = "0.1.0"

from modloader.config import LoaderSettings
from modloader.core.events import EventBus
from modloader.core.log import setup_logging
from modloader.loader import CircularDependencyError, Loader, LoaderError, ModuleStateError
from modloader.manager import Manager, ManagerError
from modloader.module import Module, ModuleMeta, ModuleType
from modloader.plugin import Plugin, PluginRegistry, RegistrationError

__all__ = [
    "CircularDependencyError",
    "EventBus",
    "Loader",
    "LoaderError",
    "LoaderSettings",
    "Manager",
    "ManagerError",
    "Module",
    "ModuleMeta",
    "ModuleStateError",
    "ModuleType",
    "Plugin",
    "PluginRegistry",
    "RegistrationError",
    "setup_logging",
]
