"""Plugin system exceptions."""


class PluginError(Exception):
    """Base exception for plugin-related errors."""

    pass


class RegistrationError(PluginError, TypeError):
    """Raised synchronously when a plugin, rule or handler registration is malformed."""

    pass
