from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pyprefab.constants import MODULES_DIR
from pyprefab.model.metadata.package_metadata_model import PACKAGE_METADATA, PackageMetadataV1
from pyprefab.model.metadata.schema_version import SchemaVersion
from pyprefab.package.domain.module_model import Module


class PackageLoadError(RuntimeError):
    pass


@dataclass(eq=False)
class Package:
    """
    A prefab package: a `prefab.json` and a `modules/` directory.

    Attributes:
        path (Path): The package root directory.
        schema_version (SchemaVersion): The declared schema version.
        metadata (PackageMetadataV1): The package metadata.
        modules (list[Module]): The modules, ordered by name.
    """
    path: Path
    schema_version: SchemaVersion
    metadata: PackageMetadataV1
    modules: list[Module] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def dependencies(self) -> list[str]:
        return list(self.metadata.dependencies)

    @property
    def version(self) -> str | None:
        return self.metadata.version

    @classmethod
    def load(cls, path: str | Path) -> Package:
        """
        Loads a package directory.

        The schema version is read first; it selects how every other metadata
        file of the package is parsed and migrated.

        Args:
            path (str | Path): The package root directory.

        Returns:
            Package: The loaded package with all of its modules.

        Raises:
            PackageLoadError: If the package has no `modules/` directory.
            ValueError: If any metadata is malformed.
            ModuleLoadError: If a module directory is malformed.
        """
        path = Path(path)
        schema_version = SchemaVersion.from_package_directory(path)
        metadata = PACKAGE_METADATA.load_and_migrate(schema_version, path)
        modules_dir = path / MODULES_DIR
        if not modules_dir.is_dir():
            raise PackageLoadError(f"Unable to retrieve file list for {modules_dir}")

        modules = [
            Module.load(module_dir, metadata.name, schema_version)
            for module_dir in sorted(modules_dir.iterdir(), key=lambda p: p.name)
            if module_dir.is_dir()
        ]
        return cls(path=path, schema_version=schema_version, metadata=metadata, modules=modules)

    def find_module(self, name: str) -> Module | None:
        return next((m for m in self.modules if m.name == name), None)

    def __repr__(self) -> str:
        return f"Package({self.name}, {self.path})"
