"""
Tests for Manager - Host facade.

This test suite covers:
1. Plugin prefixes and default collaborators
2. The module cache and require()
3. import_() of one or several modules
4. Plugin registration, named handlers and ignore rules
5. Error reporting
"""

from unittest.mock import Mock

import pytest

from modloader.config import LoaderSettings
from modloader.loader import LOAD_FAILURE, FetchError, ModuleStateError
from modloader.manager import Manager, ManagerError
from modloader.module.meta import MetaError, ModuleMeta
from modloader.module.types import Module
from modloader.plugin import Plugin


def compile_source(manager, meta):
    return {"code": meta.source}


def fetch_name(meta):
    return {"source": meta.path}


class TestCreateMeta:
    """Test meta creation from requested names."""

    def test_plugin_prefixes(self):
        meta = Manager().create_meta("less!theme.less")

        assert meta.name == "less!theme.less"
        assert meta.plugins == ["less"]
        assert meta.target == "theme.less"

    def test_custom_delimiter(self):
        manager = Manager(settings=LoaderSettings(plugin_delimiter="|"))

        meta = manager.create_meta("css|less|theme.less")

        assert meta.plugins == ["css", "less"]
        assert meta.target == "theme.less"

    def test_referrer(self):
        meta = Manager().create_meta("a", ModuleMeta("parent"))

        assert meta.referrer == "parent"

    @pytest.mark.asyncio
    async def test_default_resolve_sets_path(self):
        manager = Manager(fetch=fetch_name, compile=compile_source)

        assert await manager.import_("less!theme.less") == "theme.less"

    @pytest.mark.asyncio
    async def test_prefixed_name_runs_named_plugin(self):
        less = Mock(return_value={"source": "compiled"})
        css = Mock(return_value=None)
        manager = Manager(fetch=fetch_name, compile=compile_source)
        manager.plugin("less", {"transform": less})
        manager.plugin("css", {"transform": css})

        assert await manager.import_("less!theme.less") == "compiled"
        less.assert_called_once()
        css.assert_not_called()


class TestDefaultCollaborators:
    """Test the collaborators used when the host provides none."""

    @pytest.mark.asyncio
    async def test_default_fetch_fails(self):
        manager = Manager()

        with pytest.raises(FetchError, match="No fetch provider"):
            await manager.import_("a")

    @pytest.mark.asyncio
    async def test_fetch_plugin_provides_source(self):
        """Fetch plugins supply content before the fetch provider is asked."""
        manager = Manager(compile=compile_source)
        manager.plugin({"match": {"path": "virtual/*"}, "fetch": lambda meta, options: {"source": "virtual"}})

        assert await manager.import_("virtual/a") == "virtual"

    def test_factories_build_without_providers(self):
        manager = Manager()
        manager.register("a", lambda: 1)

        assert manager.require("a").code == 1


class TestModuleCache:
    """Test the permanent module cache."""

    def test_set_get_delete(self):
        manager = Manager()
        mod = Module("a", code=1)

        assert manager.set_module(mod) is mod
        assert manager.has_module("a")
        assert manager.get_module("a") is mod
        assert manager.delete_module("a") is mod
        assert not manager.has_module("a")
        assert manager.delete_module("a") is None

    def test_set_module_requires_module(self):
        with pytest.raises(ManagerError):
            Manager().set_module("a")

    def test_require_unknown(self):
        with pytest.raises(ModuleStateError, match="import_"):
            Manager().require("missing")

    def test_require_builds_loaded_meta(self):
        manager = Manager()
        manager.register("b", lambda: 2)
        manager.register("a", ["b"], lambda b: b + 1)

        # a is pending until its dependencies are loaded
        with pytest.raises(ModuleStateError):
            manager.require("a")

        assert manager.require("b").code == 2


class TestImport:
    """Test import_()."""

    @pytest.mark.asyncio
    async def test_import_list(self):
        manager = Manager(fetch=fetch_name, compile=compile_source)

        assert await manager.import_(["a", "b"]) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_import_registered(self):
        manager = Manager()
        manager.register("b", lambda: 2)
        manager.register("a", ["b"], lambda b: b + 1)

        assert await manager.import_("a") == 3


class TestPlugins:
    """Test the plugin registration surface."""

    def test_plugin_by_name(self):
        manager = Manager()

        plugin = manager.plugin("css", {"match": {"path": "**/*.css"}, "transform": Mock()})

        assert isinstance(plugin, Plugin)
        assert manager.plugins.get("css") is plugin

    def test_plugin_list(self):
        manager = Manager()

        plugins = manager.plugin([{"transform": Mock()}, {"dependency": Mock()}])

        assert len(plugins) == 2
        assert manager.plugins.plugins == plugins

    @pytest.mark.asyncio
    async def test_named_handler_loaded_as_module(self):
        """A string handler names a module whose code is the handler."""
        manager = Manager(fetch=fetch_name, compile=compile_source)
        manager.register("upper", lambda: lambda meta, options: {"source": meta.source.upper()})
        manager.plugin({"match": {"path": "src/*"}, "transform": "upper"})

        assert await manager.import_("src/main") == "SRC/MAIN"

    @pytest.mark.asyncio
    async def test_transform_mapping(self):
        manager = Manager()
        manager.plugin({"transform": lambda meta, options: {"source": meta.source * 2}})
        options = {"name": "a", "source": "ab"}

        result = await manager.transform(options)

        assert result is options
        assert result["source"] == "abab"

    @pytest.mark.asyncio
    async def test_transform_without_plugins_keeps_object(self):
        options = {"source": "x"}

        result = await Manager().transform(options)

        assert result is options
        assert result["deps"] == []

    @pytest.mark.asyncio
    async def test_ignore_skips_stage_plugins(self):
        transform = Mock(return_value=None)
        manager = Manager(fetch=fetch_name, compile=compile_source)
        manager.plugin({"transform": transform})

        assert manager.ignore("transform", "vendor/*") is manager

        assert await manager.import_("vendor/jquery") == "vendor/jquery"
        transform.assert_not_called()

        await manager.import_("app")
        transform.assert_called_once()

    @pytest.mark.asyncio
    async def test_ignore_from_settings(self):
        transform = Mock(return_value=None)
        settings = LoaderSettings(ignore={"transform": ["static/*"]})
        manager = Manager(fetch=fetch_name, compile=compile_source, settings=settings)
        manager.plugin({"transform": transform})

        await manager.import_("static/a")

        transform.assert_not_called()

    @pytest.mark.asyncio
    async def test_ignored_fetch_skips_whole_stage(self):
        """An ignored fetch asks neither fetch plugins nor the fetch provider."""
        fetch = Mock(return_value={"source": "x"})
        fetch_plugin = Mock(return_value=None)
        manager = Manager(fetch=fetch, compile=compile_source)
        manager.plugin({"fetch": fetch_plugin})
        manager.ignore("fetch", "static/*")

        with pytest.raises(MetaError):
            await manager.import_("static/a")

        fetch.assert_not_called()
        fetch_plugin.assert_not_called()


class TestReportError:
    """Test the error reporting hook."""

    def test_report_error_emits_failure(self):
        manager = Manager()
        failures = []
        manager.events.subscribe(LOAD_FAILURE, failures.append)
        error = RuntimeError("boom")

        manager.report_error("a", error)

        assert len(failures) == 1
        assert failures[0].name == "a"
        assert failures[0].error is error
