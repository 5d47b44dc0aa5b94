"""
Loader Configuration - TOML-based settings.

This module provides:
- The settings schema of the [modloader] table
- LoaderSettings, the validated settings a Manager is built with
- Default config file generation

Example usage:
    from modloader.config import LoaderSettings

    settings = LoaderSettings.from_file(Path("config/modloader.toml"))
    manager = Manager(settings=settings)
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from modloader.config.schema import (
    ConfigField,
    SchemaError,
    ValidationError,
    generate_default_config,
    validate_config,
)
from modloader.config.toml_handler import (
    TOMLError,
    generate_toml_from_schema,
    read_toml,
    write_toml,
)
from modloader.core.log import LOG_FORMATS, setup_logging
from modloader.plugin.errors import RegistrationError
from modloader.plugin.hooks import HookType
from modloader.plugin.matcher import pattern_list

SECTION = "modloader"

SETTINGS_SCHEMA: dict[str, ConfigField] = {
    "plugin_delimiter": ConfigField(
        str, "!", "Separates plugin names from the module name, as in 'less!style.less'", min=1
    ),
    "log_level": ConfigField(
        str, "INFO", "Logging level used by setup_logging()", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    ),
    "log_format": ConfigField(str, "console", "Log renderer", choices=list(LOG_FORMATS)),
    "ignore": ConfigField(
        dict, {}, "Module name patterns each stage skips plugins for, e.g. fetch = ['vendor/**']"
    ),
}


class ConfigError(Exception):
    """Base exception for config API errors."""

    pass


@dataclass
class LoaderSettings:
    """
    Validated loader settings.

    Attributes:
        plugin_delimiter: Separator between plugin prefixes and the module name
        log_level: Level used by setup_logging()
        log_format: "console" or "json"
        ignore: Stage name -> module name patterns excluded from that stage
    """

    plugin_delimiter: str = "!"
    log_level: str = "INFO"
    log_format: str = "console"
    ignore: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LoaderSettings":
        """
        Build settings from the contents of a [modloader] table.

        Raises:
            ValidationError: If a key is unknown or a value fails validation
        """
        config = validate_config(dict(data), SETTINGS_SCHEMA)
        config["ignore"] = _parse_ignore(config["ignore"])
        return cls(**config)

    @classmethod
    def from_file(cls, path: Path) -> "LoaderSettings":
        """
        Load settings from a TOML file. A file without a [modloader] table gives defaults.

        Raises:
            ConfigError: If the file cannot be read or its settings are invalid
        """
        try:
            data = read_toml(Path(path))
            section = data.get(SECTION, {})
            if not isinstance(section, Mapping):
                raise ValidationError(f"[{SECTION}] must be a table")
            return cls.from_mapping(section)
        except (TOMLError, SchemaError) as e:
            raise ConfigError(f"Failed to load settings from {path}: {e}") from e

    def setup_logging(self) -> None:
        """Configure structlog with the configured level and format."""
        setup_logging(self.log_level, self.log_format)

    def to_dict(self) -> dict[str, Any]:
        return {
            "plugin_delimiter": self.plugin_delimiter,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "ignore": {stage: list(patterns) for stage, patterns in self.ignore.items()},
        }


def _parse_ignore(ignore: Mapping[str, Any]) -> dict[str, list[str]]:
    result = {}
    for stage, patterns in ignore.items():
        try:
            hook = HookType.parse(stage)
            result[hook.value] = pattern_list(patterns)
        except RegistrationError as e:
            raise ValidationError(f"Field 'ignore': {e}") from e
    return result


def write_default_config(path: Path) -> None:
    """
    Write a commented settings file with every default value.

    Raises:
        ConfigError: If the file cannot be written
    """
    content = generate_toml_from_schema(SECTION, SETTINGS_SCHEMA, generate_default_config(SETTINGS_SCHEMA))
    try:
        write_toml(Path(path), content)
    except TOMLError as e:
        raise ConfigError(str(e)) from e


__all__ = [
    "SECTION",
    "SETTINGS_SCHEMA",
    "ConfigError",
    "ConfigField",
    "LoaderSettings",
    "SchemaError",
    "ValidationError",
    "write_default_config",
]
