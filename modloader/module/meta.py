"""
Module Meta - Intermediate record describing a module in progress.

A ModuleMeta is created when a module is requested or registered, threaded
through the fetch, transform and dependency stages, and consumed once by
compile. Its content is a tagged variant:
- Source(text): raw or transformed text, compile-ready
- Factory(fn): callable producing the module value when linked
- Code(value): the final module value
- Pending(): nothing fetched yet

Code and Factory mark the meta as already compiled.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from modloader.module.types import _UNSET, ModuleType


class MetaError(TypeError):
    """Raised when a module meta is malformed."""

    pass


@dataclass(frozen=True)
class Source:
    """Source text to be transformed and compiled."""

    text: str


@dataclass(frozen=True)
class Factory:
    """Callable invoked with the dependency values when the module is linked."""

    fn: Callable[..., Any]


@dataclass(frozen=True)
class Code:
    """Final module value."""

    value: Any


@dataclass(frozen=True)
class Pending:
    """No content yet."""


Content = Source | Factory | Code | Pending

PENDING = Pending()

# Fields configure() assigns directly; everything else goes into attributes
_FIELDS = ("name", "path", "deps", "plugins", "type", "referrer", "source", "code", "factory")


class ModuleMeta:
    """
    Mutable module meta record.

    Attributes:
        name: Unique module name (required)
        path: Resolved location, set by the resolve stage
        content: Tagged content variant (Source, Factory, Code or Pending)
        deps: Ordered dependency names
        plugins: Plugin names forced to apply regardless of matching rules
        type: Module type hint for compile and link collaborators
        referrer: Name of the module that requested this one
        attributes: Extra fields merged by configure()
    """

    def __init__(
        self,
        name: str,
        *,
        path: str | None = None,
        source: str | None = None,
        code: Any = _UNSET,
        factory: Callable[..., Any] | None = None,
        deps: list[str] | None = None,
        plugins: list[str] | None = None,
        type: ModuleType = ModuleType.UNKNOWN,
        referrer: str | None = None,
        **attributes: Any,
    ):
        if not isinstance(name, str) or not name:
            raise MetaError(
                "Must provide a name, which is used by the resolver to create a location for the resource"
            )

        self.name = name
        self.path = path
        self.content: Content = PENDING
        self.deps: list[str] = list(deps) if isinstance(deps, (list, tuple)) else []
        self.plugins: list[str] = list(plugins) if plugins else []
        self.type = ModuleType(type)
        self.referrer = referrer
        self.attributes: dict[str, Any] = dict(attributes)

        if source is not None:
            self.source = source
        if factory is not None:
            self.factory = factory
        if code is not _UNSET:
            self.code = code

    @classmethod
    def coerce(
        cls, value: "ModuleMeta | str | Mapping[str, Any]", *, name: str | None = None
    ) -> "ModuleMeta":
        """
        Build a meta from a name or a mapping of options. Metas pass through.

        Args:
            value: Meta, module name or mapping of options
            name: Name used when a mapping carries none
        """
        if isinstance(value, ModuleMeta):
            return value
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, Mapping):
            options = dict(value)
            meta = cls(options.pop("name", name))
            return meta.configure(options)
        raise MetaError(f"Cannot create a module meta from {type(value).__name__}")

    # Content variant accessors

    @property
    def source(self) -> str | None:
        return self.content.text if isinstance(self.content, Source) else None

    @source.setter
    def source(self, text: str) -> None:
        if not isinstance(text, str):
            raise MetaError(f"Module source must be a string. Got: {type(text).__name__}")
        self.content = Source(text)

    @property
    def factory(self) -> Callable[..., Any] | None:
        return self.content.fn if isinstance(self.content, Factory) else None

    @factory.setter
    def factory(self, fn: Callable[..., Any]) -> None:
        if not callable(fn):
            raise MetaError(f"Module factory must be callable. Got: {type(fn).__name__}")
        self.content = Factory(fn)

    @property
    def code(self) -> Any:
        return self.content.value if isinstance(self.content, Code) else None

    @code.setter
    def code(self, value: Any) -> None:
        self.content = Code(value)

    @property
    def is_compiled(self) -> bool:
        """True if the meta holds code or a factory."""
        return isinstance(self.content, (Code, Factory))

    @property
    def can_compile(self) -> bool:
        """True if the meta holds source text waiting to be compiled."""
        return isinstance(self.content, Source)

    @property
    def has_dependencies(self) -> bool:
        return bool(self.deps)

    def validate(self) -> None:
        """
        Check that the meta is compile-ready.

        Raises:
            MetaError: If the meta has neither source, code nor factory
        """
        if not self.is_compiled and not self.can_compile:
            raise MetaError(f"ModuleMeta '{self.name}' must provide a `source` string or `code`.")

    def configure(self, options: "Mapping[str, Any] | ModuleMeta") -> "ModuleMeta":
        """
        Merge options into this meta in place.

        Args:
            options: Mapping of fields, or another meta whose fields are copied

        Returns:
            self
        """
        if isinstance(options, ModuleMeta):
            options = options.to_dict()

        for key, value in options.items():
            if key == "content":
                self.content = value
            elif key == "deps":
                self.deps = list(value) if isinstance(value, (list, tuple)) else []
            elif key == "plugins":
                self.plugins = list(value) if value else []
            elif key == "type":
                self.type = ModuleType(value)
            elif key == "name":
                if not isinstance(value, str) or not value:
                    raise MetaError("Module meta name must be a non-empty string")
                self.name = value
            elif key in _FIELDS:
                setattr(self, key, value)
            else:
                self.attributes[key] = value

        return self

    def to_dict(self) -> dict[str, Any]:
        """Snapshot of every field, suitable for Module.settings."""
        data: dict[str, Any] = dict(self.attributes)
        data.update(
            name=self.name,
            path=self.path,
            deps=list(self.deps),
            plugins=list(self.plugins),
            type=self.type,
            referrer=self.referrer,
        )
        if isinstance(self.content, Source):
            data["source"] = self.content.text
        elif isinstance(self.content, Factory):
            data["factory"] = self.content.fn
        elif isinstance(self.content, Code):
            data["code"] = self.content.value

        return data

    def __getattr__(self, name: str) -> Any:
        # Only called for names not found normally: expose extra attributes
        attributes = self.__dict__.get("attributes")
        if attributes is not None and name in attributes:
            return attributes[name]
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __repr__(self) -> str:
        return f"ModuleMeta(name={self.name!r}, path={self.path!r}, content={type(self.content).__name__}, deps={self.deps!r})"


def merge_result(meta: ModuleMeta, result: Any) -> ModuleMeta:
    """
    Thread a stage or handler result onto a meta.

    Args:
        meta: The meta the stage was called with
        result: What the stage returned

    Returns:
        meta when result is None, result when it is a ModuleMeta, or meta
        configured with result when it is a mapping

    Raises:
        TypeError: For any other result
    """
    if result is None:
        return meta
    if isinstance(result, ModuleMeta):
        return result
    if isinstance(result, Mapping):
        return meta.configure(result)
    raise TypeError(
        f"Handler for module '{meta.name}' must return None, a ModuleMeta or a mapping. "
        f"Got: {type(result).__name__}"
    )
