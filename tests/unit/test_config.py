"""
Tests for Configuration - Settings schema, validation and TOML files.

This test suite covers:
1. Field definitions and validation
2. LoaderSettings from mappings and files
3. Default config file generation
4. Logging setup arguments
"""

from unittest.mock import patch

import pytest

from modloader.config import (
    ConfigError,
    ConfigField,
    LoaderSettings,
    SchemaError,
    ValidationError,
    write_default_config,
)
from modloader.config.schema import generate_default_config, validate_config
from modloader.config.toml_handler import TOMLError, read_toml
from modloader.core.log import setup_logging


class TestConfigField:
    """Test field definitions."""

    def test_default_must_match_type(self):
        with pytest.raises(SchemaError):
            ConfigField(int, "not an int")

    def test_default_must_be_a_choice(self):
        with pytest.raises(SchemaError):
            ConfigField(str, "TRACE", choices=["INFO", "DEBUG"])

    def test_validate_type(self):
        field = ConfigField(int, 1)

        field.validate(2)
        with pytest.raises(ValidationError):
            field.validate("2")
        with pytest.raises(ValidationError):
            field.validate(True)

    def test_validate_string_length(self):
        field = ConfigField(str, "!", min=1)

        with pytest.raises(ValidationError, match="less than minimum"):
            field.validate("")

    def test_length_bounds_only_for_str_and_list(self):
        ConfigField(list, [], max=3)
        with pytest.raises(SchemaError, match="only supported for str and list"):
            ConfigField(int, 1, min=0)

    def test_validate_choices(self):
        field = ConfigField(str, "INFO", choices=["INFO", "DEBUG"])

        with pytest.raises(ValidationError, match="not in allowed choices"):
            field.validate("TRACE")


class TestValidateConfig:
    """Test validating a whole table."""

    def test_missing_fields_take_defaults(self):
        schema = {"a": ConfigField(int, 1), "b": ConfigField(dict, {})}

        config = validate_config({"a": 5}, schema)

        assert config == {"a": 5, "b": {}}

    def test_defaults_are_copied(self):
        schema = {"b": ConfigField(dict, {})}

        generate_default_config(schema)["b"]["x"] = 1

        assert schema["b"].default == {}

    def test_unknown_field(self):
        with pytest.raises(ValidationError, match="Unknown configuration field"):
            validate_config({"nope": 1}, {"a": ConfigField(int, 1)})


class TestLoaderSettings:
    """Test LoaderSettings."""

    def test_defaults(self):
        settings = LoaderSettings.from_mapping({})

        assert settings == LoaderSettings()
        assert settings.plugin_delimiter == "!"
        assert settings.log_level == "INFO"
        assert settings.log_format == "console"
        assert settings.ignore == {}

    def test_from_mapping(self):
        settings = LoaderSettings.from_mapping(
            {"plugin_delimiter": "|", "log_format": "json", "ignore": {"fetch": "vendor/*"}}
        )

        assert settings.plugin_delimiter == "|"
        assert settings.log_format == "json"
        assert settings.ignore == {"fetch": ["vendor/*"]}

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            LoaderSettings.from_mapping({"log_level": "TRACE"})
        with pytest.raises(ValidationError):
            LoaderSettings.from_mapping({"plugin_delimiter": ""})
        with pytest.raises(ValidationError):
            LoaderSettings.from_mapping({"extra": 1})

    def test_invalid_ignore_stage(self):
        with pytest.raises(ValidationError, match="ignore"):
            LoaderSettings.from_mapping({"ignore": {"bundle": ["*"]}})

    def test_from_file(self, tmp_path):
        path = tmp_path / "modloader.toml"
        path.write_text(
            '[modloader]\nlog_level = "DEBUG"\n\n[modloader.ignore]\ntransform = ["vendor/**"]\n',
            encoding="utf-8",
        )

        settings = LoaderSettings.from_file(path)

        assert settings.log_level == "DEBUG"
        assert settings.ignore == {"transform": ["vendor/**"]}

    def test_from_file_without_section(self, tmp_path):
        path = tmp_path / "other.toml"
        path.write_text('[other]\nkey = 1\n', encoding="utf-8")

        assert LoaderSettings.from_file(path) == LoaderSettings()

    def test_from_file_errors(self, tmp_path):
        with pytest.raises(ConfigError):
            LoaderSettings.from_file(tmp_path / "missing.toml")

        broken = tmp_path / "broken.toml"
        broken.write_text("[modloader\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            LoaderSettings.from_file(broken)

        invalid = tmp_path / "invalid.toml"
        invalid.write_text('[modloader]\nlog_format = "xml"\n', encoding="utf-8")
        with pytest.raises(ConfigError):
            LoaderSettings.from_file(invalid)

    def test_to_dict(self):
        settings = LoaderSettings(ignore={"fetch": ["a"]})

        assert settings.to_dict()["ignore"] == {"fetch": ["a"]}

    def test_setup_logging_uses_settings(self):
        settings = LoaderSettings(log_level="DEBUG", log_format="json")

        with patch("modloader.config.setup_logging") as configure:
            settings.setup_logging()

        configure.assert_called_once_with("DEBUG", "json")


class TestDefaultConfigFile:
    """Test writing the default config file."""

    def test_write_default_config(self, tmp_path):
        path = tmp_path / "config" / "modloader.toml"

        write_default_config(path)

        content = path.read_text(encoding="utf-8")
        assert "[modloader]" in content
        assert "# Choices: DEBUG, INFO, WARNING, ERROR" in content
        assert LoaderSettings.from_file(path) == LoaderSettings()

    def test_read_toml_missing(self, tmp_path):
        with pytest.raises(TOMLError, match="not found"):
            read_toml(tmp_path / "missing.toml")


class TestLoggingSetup:
    """Test setup_logging argument validation."""

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logging("LOUD")

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown log format"):
            setup_logging("INFO", "xml")
