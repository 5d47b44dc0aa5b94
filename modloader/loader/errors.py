"""Loader exceptions."""


class LoaderError(Exception):
    """Base exception for loader errors."""

    pass


class ModuleStateError(LoaderError, TypeError):
    """Raised when an operation is called on a module in the wrong state."""

    pass


class CircularDependencyError(LoaderError):
    """Raised when a module would wait on a load that is waiting on it."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Circular dependency detected: {' -> '.join(cycle)}")


class FetchError(LoaderError):
    """Raised when a module's source cannot be fetched."""

    pass


class CompileError(LoaderError):
    """Raised when a module meta cannot be compiled into a Module."""

    pass
