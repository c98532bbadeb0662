from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from typing_extensions import Self

from pyprefab.constants import ABI_METADATA_FILE
from pyprefab.model.metadata.metadata_loader_model import (
    MetadataLoader,
    VersionedMetadata,
    optional_field,
    require_field,
)
from pyprefab.model.metadata.schema_version import SchemaVersion
from pyprefab.package.domain.library_file_utils import find_library_file, is_static_library

if TYPE_CHECKING:
    from pyprefab.package.domain.module_model import Module

GNULINUX_IDENTIFIER = "gnulinux"


@dataclass(slots=True, frozen=True)
class GnuLinuxAbiMetadataV2(VersionedMetadata):
    """
    The schema version 2 `abi.json` of a GNU/Linux library directory.

    Attributes:
        arch (str): The Debian architecture name, e.g. `amd64`.
        glibc_version (str): The glibc version the library was built against,
            as `major.minor`.
        static (bool): True if the library is a static archive.
    """
    file_name: ClassVar[str] = ABI_METADATA_FILE

    arch: str
    glibc_version: str
    static: bool = False

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        owner = "abi.json"
        return cls(
            arch=require_field(mapping, "arch", str, owner),
            glibc_version=require_field(mapping, "glibc_version", str, owner),
            static=optional_field(mapping, "static", bool, owner, default=False))

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {"arch": self.arch, "glibc_version": self.glibc_version, "static": self.static}


@dataclass(slots=True, frozen=True)
class GnuLinuxAbiMetadataV1(VersionedMetadata):
    file_name: ClassVar[str] = ABI_METADATA_FILE

    arch: str
    glibc_version: str

    def migrate(self, context: Module, directory: Path) -> GnuLinuxAbiMetadataV2:
        library = find_library_file(directory, context.library_name_for_platform(GNULINUX_IDENTIFIER))
        return GnuLinuxAbiMetadataV2(
            arch=self.arch,
            glibc_version=self.glibc_version,
            static=is_static_library(library))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        owner = "abi.json"
        return cls(
            arch=require_field(mapping, "arch", str, owner),
            glibc_version=require_field(mapping, "glibc_version", str, owner))

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {"arch": self.arch, "glibc_version": self.glibc_version}


GNULINUX_ABI_METADATA = MetadataLoader[GnuLinuxAbiMetadataV2](
    "gnulinux abi",
    {
        SchemaVersion.V1: GnuLinuxAbiMetadataV1,
        SchemaVersion.V2: GnuLinuxAbiMetadataV2,
    })
