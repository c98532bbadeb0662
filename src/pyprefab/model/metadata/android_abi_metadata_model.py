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

ANDROID_IDENTIFIER = "android"


@dataclass(slots=True, frozen=True)
class AndroidAbiMetadataV2(VersionedMetadata):
    """
    The schema version 2 `abi.json` of an Android library directory.

    Attributes:
        abi (str): The Android ABI name, e.g. `arm64-v8a`.
        api (int): The minSdkVersion the library was built for.
        ndk (int): The major version of the NDK used to build the library.
        stl (str): The STL the library was built against, e.g. `c++_shared`.
        static (bool): True if the library is a static archive.
    """
    file_name: ClassVar[str] = ABI_METADATA_FILE

    abi: str
    api: int
    ndk: int
    stl: str
    static: bool = False

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        owner = "abi.json"
        return cls(
            abi=require_field(mapping, "abi", str, owner),
            api=require_field(mapping, "api", int, owner),
            ndk=require_field(mapping, "ndk", int, owner),
            stl=require_field(mapping, "stl", str, owner),
            static=optional_field(mapping, "static", bool, owner, default=False))

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {"abi": self.abi, "api": self.api, "ndk": self.ndk, "stl": self.stl, "static": self.static}


@dataclass(slots=True, frozen=True)
class AndroidAbiMetadataV1(VersionedMetadata):
    """
    The schema version 1 `abi.json` of an Android library directory.

    Version 1 did not record whether the library is static. Migration infers
    it from the artifact found on disk.
    """
    file_name: ClassVar[str] = ABI_METADATA_FILE

    abi: str
    api: int
    ndk: int
    stl: str

    def migrate(self, context: Module, directory: Path) -> AndroidAbiMetadataV2:
        library = find_library_file(directory, context.library_name_for_platform(ANDROID_IDENTIFIER))
        return AndroidAbiMetadataV2(
            abi=self.abi,
            api=self.api,
            ndk=self.ndk,
            stl=self.stl,
            static=is_static_library(library))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        owner = "abi.json"
        return cls(
            abi=require_field(mapping, "abi", str, owner),
            api=require_field(mapping, "api", int, owner),
            ndk=require_field(mapping, "ndk", int, owner),
            stl=require_field(mapping, "stl", str, owner))

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {"abi": self.abi, "api": self.api, "ndk": self.ndk, "stl": self.stl}


ANDROID_ABI_METADATA = MetadataLoader[AndroidAbiMetadataV2](
    "android abi",
    {
        SchemaVersion.V1: AndroidAbiMetadataV1,
        SchemaVersion.V2: AndroidAbiMetadataV2,
    })
