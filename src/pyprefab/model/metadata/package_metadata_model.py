from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from packaging.version import InvalidVersion, Version
from typing_extensions import Self

from pyprefab.constants import PACKAGE_METADATA_FILE
from pyprefab.model.metadata.metadata_loader_model import (
    MetadataError,
    MetadataLoader,
    VersionedMetadata,
    optional_field,
    require_field,
    string_list_field,
)
from pyprefab.model.metadata.schema_version import SchemaVersion

# CMake compatible: major[.minor[.patch[.tweak]]], numeric only
_CMAKE_VERSION_RE = re.compile(r"^\d+(\.\d+){0,3}$")


def validate_package_version(version: str) -> Version:
    """
    Validates a package version string.

    Package versions are consumed by build systems with strict version
    grammars, so only dotted numeric versions with one to four components are
    accepted.

    Args:
        version (str): The version declared by the package.

    Returns:
        Version: The parsed version.

    Raises:
        MetadataError: If the version is not in the accepted format.
    """
    if not _CMAKE_VERSION_RE.match(version):
        raise MetadataError(
            f"version must be compatible with CMake, if present: {version!r} "
            "is not of the form major[.minor[.patch[.tweak]]]")
    try:
        return Version(version)
    except InvalidVersion as e:
        raise MetadataError(f"invalid package version {version!r}: {e}") from e


@dataclass(slots=True, frozen=True)
class PackageMetadataV1(VersionedMetadata):
    """
    The contents of a package's `prefab.json`.

    The same record shape is used for every schema version released so far.

    Attributes:
        name (str): The package name.
        schema_version (int): The declared schema version.
        dependencies (list[str]): Names of the packages this package depends
            on.
        version (str | None): The optional package version.
    """
    file_name: ClassVar[str] = PACKAGE_METADATA_FILE

    name: str
    schema_version: int
    dependencies: list[str] = field(default_factory=list)
    version: str | None = None

    def __post_init__(self):
        if not self.name:
            raise MetadataError("package name must not be empty")
        if self.version is not None:
            validate_package_version(self.version)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        owner = "prefab.json"
        return cls(
            name=require_field(mapping, "name", str, owner),
            schema_version=require_field(mapping, "schema_version", int, owner),
            dependencies=string_list_field(mapping, "dependencies", owner, required=True),
            version=optional_field(mapping, "version", str, owner))

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "name": self.name,
            "schema_version": self.schema_version,
            "dependencies": list(self.dependencies),
            "version": self.version,
        }


PACKAGE_METADATA = MetadataLoader[PackageMetadataV1](
    "package",
    {
        SchemaVersion.V1: PackageMetadataV1,
        SchemaVersion.V2: PackageMetadataV1,
    })
