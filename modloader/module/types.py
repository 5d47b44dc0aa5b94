"""
Module Types - Final module records handed to the host.

A Module is created by compiling a finished ModuleMeta, linked (dependencies
resolved and factory invoked), and then owned by the manager's module cache.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from modloader.module.meta import ModuleMeta


class ModuleError(Exception):
    """Raised when a Module is used against its invariants."""

    pass


class ModuleType(Enum):
    """Behavioral tag compile and link collaborators use to invoke factories."""

    UNKNOWN = "UNKNOWN"
    AMD = "AMD"  # Asynchronous Module Definition
    CJS = "CJS"  # CommonJS
    IIFE = "IIFE"  # Immediately-Invoked Function Expression


_UNSET = object()


class Module:
    """
    Compiled module.

    Attributes:
        type: Module type tag
        name: Module name (read-only)
        deps: Dependency names, copied at construction
        factory: Factory callable, if the module was registered with one
        settings: Full options the module was built from
    """

    def __init__(
        self,
        name: str,
        *,
        type: ModuleType = ModuleType.UNKNOWN,
        deps: "list[str] | tuple[str, ...]" = (),
        code: Any = _UNSET,
        factory: Callable[..., Any] | None = None,
        settings: dict[str, Any] | None = None,
    ):
        if not isinstance(name, str) or not name:
            raise ModuleError("Must provide a name to create the module")

        self._name = name
        self._code = code
        self.type = ModuleType(type)
        self.deps: list[str] = list(deps)
        self.factory = factory
        self.settings: dict[str, Any] = dict(settings or {})

    @classmethod
    def from_meta(cls, meta: "ModuleMeta") -> "Module":
        """Create a Module from a compiled (or self-registered) module meta."""
        code = meta.code if meta.is_compiled and meta.factory is None else _UNSET
        return cls(
            meta.name,
            type=meta.type,
            deps=meta.deps,
            code=code,
            factory=meta.factory,
            settings=meta.to_dict(),
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def has_code(self) -> bool:
        return self._code is not _UNSET

    @property
    def code(self) -> Any:
        """Module value, or None before the module is linked."""
        return None if self._code is _UNSET else self._code

    @code.setter
    def code(self, value: Any) -> None:
        if self._code is not _UNSET:
            raise ModuleError(f"Module '{self._name}' code is already set")
        self._code = value

    def __repr__(self) -> str:
        return f"Module(name={self._name!r}, type={self.type.value}, deps={self.deps!r})"
