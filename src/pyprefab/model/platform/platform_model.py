from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from pyprefab.config_model import PrefabConfig
    from pyprefab.model.metadata.schema_version import SchemaVersion
    from pyprefab.package.domain.library_variant_model import LibraryVariant
    from pyprefab.package.domain.module_model import Module


# --------------------------------------------------------------------------- #
# Usability results
# --------------------------------------------------------------------------- #

@dataclass(slots=True, frozen=True)
class CompatibleLibrary:
    """
    The candidate library may be used to satisfy the requirement.
    """


@dataclass(slots=True, frozen=True)
class IncompatibleLibrary:
    """
    The candidate library may not be used to satisfy the requirement.

    Attributes:
        reason (str): A human-readable explanation of the rejection.
    """
    reason: str


LibraryUsabilityResult = CompatibleLibrary | IncompatibleLibrary


# --------------------------------------------------------------------------- #
# Errors
# --------------------------------------------------------------------------- #

class ModuleInconsistencyError(RuntimeError):
    """
    A module ships a set of library variants that cannot be resolved to a
    single library. This is a defect in the package, not in the user's
    targeting choices.
    """


class VariantCoverageGapError(ModuleInconsistencyError):
    def __init__(self, module_name: str, requested: object):
        self.module_name = module_name
        self.requested = requested
        super().__init__(
            f"{module_name} contains a library per NDK version but no match "
            f"was found for {requested}")


class AmbiguousLibraryMatchError(ModuleInconsistencyError):
    def __init__(self, module_name: str, directories: Sequence[Path]):
        self.module_name = module_name
        self.directories = list(directories)
        listing = "\n".join(str(d) for d in self.directories)
        super().__init__(
            f"Unable to resolve a single library match for {module_name}. The "
            f"following libraries are redundant:\n{listing}")


# --------------------------------------------------------------------------- #
# Platform identity
# --------------------------------------------------------------------------- #

class PlatformIdentity(ABC):
    """
    The identity of a target platform.

    The same type describes both a user's requirements and the platform a
    prebuilt library was built for. Each concrete platform declares the
    identifier used as the library directory prefix (`libs/<identifier>.<id>`)
    and as the `--platform` command line value.

    Attributes:
        identifier (ClassVar[str]): The platform identifier.
    """

    identifier: ClassVar[str]

    @property
    @abstractmethod
    def target_triple(self) -> str:
        ...

    @property
    def is_static(self) -> bool:
        """
        Whether the described library file is a static archive. Always False
        for a requirement.
        """
        return False

    @abstractmethod
    def check_if_usable(self, library: LibraryVariant) -> LibraryUsabilityResult:
        """
        Checks whether a library may be used by a user with these requirements.

        Mismatches are reported by value, never raised.

        Args:
            library (LibraryVariant): The candidate library.

        Returns:
            LibraryUsabilityResult: CompatibleLibrary, or IncompatibleLibrary
            with the reason for the rejection.
        """
        ...

    @abstractmethod
    def find_best_match(self, libraries: Sequence[LibraryVariant]) -> LibraryVariant:
        """
        Selects the best library from a list of usable libraries.

        Args:
            libraries (Sequence[LibraryVariant]): Libraries of a single module,
                all of which are usable with these requirements.

        Returns:
            LibraryVariant: The selected library.

        Raises:
            ValueError: If the list is empty, contains an unusable library, or
                mixes libraries from different modules.
            ModuleInconsistencyError: If no single library can be selected.
        """
        ...

    def _check_best_match_preconditions(self, libraries: Sequence[LibraryVariant]) -> None:
        if not libraries:
            raise ValueError("libraries must be non-empty")
        if not all(isinstance(self.check_if_usable(lib), CompatibleLibrary) for lib in libraries):
            raise ValueError("all libraries must be compatible")
        first = libraries[0].module
        if any(lib.module is not first for lib in libraries):
            raise ValueError("all libraries must belong to the same module")


def check_if_usable(requirement: PlatformIdentity, candidate: LibraryVariant) -> LibraryUsabilityResult:
    return requirement.check_if_usable(candidate)


def find_best_match(requirement: PlatformIdentity, candidates: Sequence[LibraryVariant]) -> LibraryVariant:
    return requirement.find_best_match(list(candidates))


# --------------------------------------------------------------------------- #
# Platform factories
# --------------------------------------------------------------------------- #

class PlatformFactory(ABC):
    """
    Builds platform identities for one platform, either from a library
    directory on disk or from the user's configuration.

    Attributes:
        identifier (ClassVar[str]): The identifier of the platform built by
            this factory.
        precedence (ClassVar[int]): Ordering hint for plugin discovery. Lower
            values are listed first.
    """

    identifier: ClassVar[str]
    precedence: ClassVar[int] = 100

    @abstractmethod
    def library_from_directory(
            self,
            directory: Path,
            module: Module,
            schema_version: SchemaVersion) -> LibraryVariant:
        """
        Builds the library variant found in a `libs/<platform>.<artifact>`
        directory.

        Args:
            directory (Path): The variant directory.
            module (Module): The module owning the variant.
            schema_version (SchemaVersion): The schema version of the package.

        Returns:
            LibraryVariant: The loaded variant.
        """
        ...

    @abstractmethod
    def requirements_from_config(self, config: PrefabConfig) -> list[PlatformIdentity]:
        """
        Builds the list of user requirements described by the configuration.

        Raises:
            ConfigError: If a required value is missing.
            ValueError: If a value cannot be parsed.
        """
        ...
