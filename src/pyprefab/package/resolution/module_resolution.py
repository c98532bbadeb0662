from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from pyprefab.model.platform.platform_model import IncompatibleLibrary

if TYPE_CHECKING:
    from pyprefab.model.platform.platform_model import PlatformIdentity
    from pyprefab.package.domain.library_variant_model import LibraryVariant
    from pyprefab.package.domain.module_model import Module


class NoMatchingLibraryError(Exception):
    """
    No library of a module is usable with the user's requirements.

    This is an expected outcome of targeting, not a malformed package. Build
    systems decide whether to skip the module or abort.

    Attributes:
        module (Module): The module that was being resolved.
        rejections (dict[LibraryVariant, str]): Every variant of the module
            with the reason it was rejected, ordered by variant directory
            name.
    """

    def __init__(self, module: Module, rejections: Mapping[LibraryVariant, str]):
        self.module = module
        self.rejections = dict(sorted(rejections.items(), key=lambda kv: kv[0].directory.name))
        listing = "\n".join(f"{lib.directory.name}: {reason}" for lib, reason in self.rejections.items())
        super().__init__(
            f"No compatible library found for {module.canonical_name}. Rejected "
            f"the following libraries:\n{listing}")

    def rejection_payload(self) -> dict[str, str]:
        return {lib.directory.name: reason for lib, reason in self.rejections.items()}


def resolve(module: Module, requirement: PlatformIdentity) -> LibraryVariant:
    """
    Selects the library of a module to use for a requirement.

    Every variant is checked for usability; the usable ones are handed to the
    requirement's best-match selector.

    Args:
        module (Module): The module to resolve. Must not be header-only.
        requirement (PlatformIdentity): The user's requirements.

    Returns:
        LibraryVariant: The selected library.

    Raises:
        ValueError: If the module is header-only.
        NoMatchingLibraryError: If no variant is usable.
        ModuleInconsistencyError: If the usable variants cannot be narrowed
            to one.
    """
    if module.is_header_only:
        raise ValueError(f"{module.canonical_name} is header only and has no libraries to resolve")

    compatible: list[LibraryVariant] = []
    rejections: dict[LibraryVariant, str] = {}
    for library in module.libraries:
        match requirement.check_if_usable(library):
            case IncompatibleLibrary(reason=reason):
                rejections[library] = reason
            case _:
                compatible.append(library)

    if not compatible:
        raise NoMatchingLibraryError(module, rejections)
    return requirement.find_best_match(compatible)
