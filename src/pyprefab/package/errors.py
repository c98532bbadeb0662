from __future__ import annotations

from collections.abc import Iterable


class FatalApplicationError(RuntimeError):
    """
    An error that ends a generation run.
    """


class DuplicatePackageNamesError(FatalApplicationError):
    def __init__(self, name: str, paths: Iterable[object]):
        self.name = name
        listing = ", ".join(str(p) for p in paths)
        super().__init__(f"Found multiple packages named {name}: {listing}")


class UnknownDependencyError(FatalApplicationError):
    def __init__(self, package: str, dependency: str):
        self.package = package
        self.dependency = dependency
        super().__init__(
            f"Package {package} depends on {dependency}, which was not found. "
            "All dependencies must be passed as package paths.")


class UnsupportedBuildSystemError(FatalApplicationError):
    def __init__(self, name: str, known: Iterable[str]):
        self.name = name
        super().__init__(
            f"Unsupported build system {name!r}; expected one of: {', '.join(known)}")
