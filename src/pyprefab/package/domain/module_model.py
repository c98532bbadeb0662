from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from pyprefab.constants import INCLUDE_DIR, LIBS_DIR
from pyprefab.model.library_reference_model import LibraryReference
from pyprefab.model.metadata.module_metadata_model import MODULE_METADATA, ModuleMetadataV1
from pyprefab.model.metadata.schema_version import SchemaVersion
from pyprefab.model.platform.platform_registry import find_platform
from pyprefab.package.resolution.module_resolution import resolve

if TYPE_CHECKING:
    from pyprefab.model.platform.platform_model import PlatformIdentity
    from pyprefab.package.domain.library_variant_model import LibraryVariant

_NAME_FORMAT_HINT = "It should have the name format <platform ID>.<artifact ID> e.g. android.x86"


class ModuleLoadError(RuntimeError):
    pass


class InvalidDirectoryNameError(ModuleLoadError):
    def __init__(self, module: Module, directory: Path):
        super().__init__(
            f"{module.canonical_name} artifact directory {directory} has an "
            f"invalid name. {_NAME_FORMAT_HINT}")


class MissingPlatformIDError(ModuleLoadError):
    def __init__(self, module: Module, directory: Path):
        super().__init__(
            f"{module.canonical_name} artifact directory {directory} does not "
            f"contain a platform ID. {_NAME_FORMAT_HINT}")


class MissingArtifactIDError(ModuleLoadError):
    def __init__(self, module: Module, directory: Path):
        super().__init__(
            f"{module.canonical_name} artifact directory {directory} is "
            f"missing an artifact ID. {_NAME_FORMAT_HINT}")


class UnsupportedPlatformError(ModuleLoadError):
    def __init__(self, module: Module, platform_name: str):
        self.platform_name = platform_name
        super().__init__(
            f"{module.canonical_name} contains artifacts for an unsupported "
            f"platform \"{platform_name}\"")


def _split_library_directory_name(module: Module, directory: Path) -> str:
    components = directory.name.split(".", 1)
    if len(components) != 2:
        raise InvalidDirectoryNameError(module, directory)
    platform_name, artifact_id = components
    if not platform_name:
        raise MissingPlatformIDError(module, directory)
    if not artifact_id:
        raise MissingArtifactIDError(module, directory)
    return platform_name


@dataclass(eq=False)
class Module:
    """
    A named unit of library distribution inside a package.

    A module is loaded once with its package and not modified afterwards. A
    module without library variants is header-only.

    Attributes:
        name (str): The module name, which is its directory name.
        package_name (str): The name of the owning package.
        path (Path): The module directory.
        metadata (ModuleMetadataV1): The module's migrated `module.json`.
        libraries (list[LibraryVariant]): The prebuilt variants, ordered by
            directory name.
    """
    name: str
    package_name: str
    path: Path
    metadata: ModuleMetadataV1 = field(default_factory=ModuleMetadataV1)
    libraries: list[LibraryVariant] = field(default_factory=list)

    @classmethod
    def load(cls, path: Path, package_name: str, schema_version: SchemaVersion) -> Module:
        """
        Loads a module directory.

        Each entry of `libs/` must be a `<platform>.<artifact>` directory
        belonging to an installed platform.

        Args:
            path (Path): The module directory.
            package_name (str): The name of the owning package.
            schema_version (SchemaVersion): The schema version of the package.

        Returns:
            Module: The loaded module.

        Raises:
            ModuleLoadError: If a library directory is misnamed or targets an
                unknown platform.
            ValueError: If a metadata file is malformed.
        """
        path = Path(path)
        module = cls(
            name=path.name,
            package_name=package_name,
            path=path,
            metadata=MODULE_METADATA.load_and_migrate(schema_version, path))

        libs_dir = path / LIBS_DIR
        if libs_dir.is_dir():
            for directory in sorted(libs_dir.iterdir(), key=lambda p: p.name):
                platform_name = _split_library_directory_name(module, directory)
                factory = find_platform(platform_name)
                if factory is None:
                    raise UnsupportedPlatformError(module, platform_name)
                module.libraries.append(
                    factory.library_from_directory(directory, module, schema_version))
        return module

    @property
    def canonical_name(self) -> str:
        return f"//{self.package_name}/{self.name}"

    @property
    def include_path(self) -> Path:
        return self.path / INCLUDE_DIR

    @property
    def is_header_only(self) -> bool:
        return not self.libraries

    def library_name_for_platform(self, identifier: str) -> str:
        """
        Returns the library file name (without extension) used on a platform.

        The platform override wins over the module's `library_name`, which
        wins over the default `lib<module name>`.
        """
        return (
                self.metadata.for_platform(identifier).library_name
                or self.metadata.library_name
                or f"lib{self.name}")

    def link_libs_for_platform(self, platform: PlatformIdentity | str) -> list[LibraryReference]:
        """
        Returns the libraries exported by this module on a platform.

        Args:
            platform (PlatformIdentity | str): The platform, or its identifier.

        Returns:
            list[LibraryReference]: The parsed references, in declaration
            order.

        Raises:
            LibraryReferenceError: If a reference is malformed.
        """
        identifier = platform if isinstance(platform, str) else platform.identifier
        override = self.metadata.for_platform(identifier).export_libraries
        exported = override if override is not None else self.metadata.export_libraries
        return [LibraryReference.parse(ref) for ref in exported]

    def get_library_for(self, requirement: PlatformIdentity) -> LibraryVariant:
        return resolve(self, requirement)

    def __repr__(self) -> str:
        return f"Module({self.canonical_name})"
