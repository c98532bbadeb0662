from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING

from pyprefab.constants import SHARED_LIBRARY_SUFFIX, STATIC_LIBRARY_SUFFIX
from pyprefab.model.library_reference_model import External, LibraryReference, Literal, Local

if TYPE_CHECKING:
    from pyprefab.model.platform.platform_model import PlatformIdentity
    from pyprefab.package.domain.module_model import Module
    from pyprefab.package.domain.package_model import Package


class LinkKind(str, Enum):
    """
    How a consumer links against a module.
    """
    HEADER_ONLY = "HEADER_ONLY"
    STATIC = "STATIC"
    SHARED = "SHARED"


class UnresolvedLibraryReferenceError(RuntimeError):
    def __init__(self, reference: LibraryReference):
        self.reference = reference
        super().__init__(f"Could not find a module matching {reference}")


def find_referred_module(
        reference: LibraryReference,
        current_module: Module,
        packages: Iterable[Package]) -> Module:
    """
    Finds the module a local or external library reference points to.

    Args:
        reference (LibraryReference): The reference to resolve.
        current_module (Module): The module declaring the reference; local
            references resolve within its package.
        packages (Iterable[Package]): The loaded packages.

    Returns:
        Module: The referred module.

    Raises:
        ValueError: If the reference is a literal, which names no module.
        UnresolvedLibraryReferenceError: If no loaded module matches.
    """
    match reference:
        case Literal():
            raise ValueError("Literal library references do not have types")
        case Local(name=name):
            package_name, module_name = current_module.package_name, name
        case External(package=package, module=module):
            package_name, module_name = package, module
        case _:
            raise TypeError(f"Unrecognized library reference: {reference!r}")

    for pkg in packages:
        if pkg.name != package_name:
            continue
        for module in pkg.modules:
            if module.name == module_name:
                return module
    raise UnresolvedLibraryReferenceError(reference)


def link_kind_for(module: Module, requirement: PlatformIdentity) -> LinkKind:
    """
    Classifies how a module is linked for a requirement.

    Header-only modules are not resolved. Otherwise the selected library's
    file extension decides.

    Raises:
        NoMatchingLibraryError: If the module has no usable library.
        RuntimeError: If the selected library has an unrecognized extension.
    """
    if module.is_header_only:
        return LinkKind.HEADER_ONLY
    library = module.get_library_for(requirement)
    match library.path.suffix:
        case suffix if suffix == SHARED_LIBRARY_SUFFIX:
            return LinkKind.SHARED
        case suffix if suffix == STATIC_LIBRARY_SUFFIX:
            return LinkKind.STATIC
        case suffix:
            raise RuntimeError(f"Unrecognized library extension: {suffix.lstrip('.')}")
