from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from typing_extensions import Self

from pyprefab.constants import MODULE_METADATA_FILE
from pyprefab.model.metadata.metadata_loader_model import (
    MetadataError,
    MetadataLoader,
    VersionedMetadata,
    optional_field,
    string_list_field,
)
from pyprefab.model.metadata.schema_version import SchemaVersion

_COMMON_KEYS = ("export_libraries", "library_name")


@dataclass(slots=True, frozen=True)
class PlatformSpecificModuleMetadataV1:
    """
    Per-platform overrides of a module's metadata.

    Attributes:
        export_libraries (list[str] | None): Replaces the module's exported
            libraries on this platform when set.
        library_name (str | None): Replaces the module's library name on this
            platform when set.
    """
    export_libraries: list[str] | None = None
    library_name: str | None = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], owner: str) -> PlatformSpecificModuleMetadataV1:
        return cls(
            export_libraries=string_list_field(mapping, "export_libraries", owner, required=False),
            library_name=optional_field(mapping, "library_name", str, owner))

    def to_mapping(self) -> dict[str, Any]:
        return {
            "export_libraries": None if self.export_libraries is None else list(self.export_libraries),
            "library_name": self.library_name,
        }


@dataclass(slots=True, frozen=True)
class ModuleMetadataV1(VersionedMetadata):
    """
    The contents of a module's `module.json`.

    Every key other than `export_libraries` and `library_name` is a
    per-platform override table keyed by platform identifier (for example
    `android` or `gnulinux`). Overrides for platforms that are not installed
    are kept so old packages remain loadable when new platforms appear.

    Attributes:
        export_libraries (list[str]): The library references exported to
            consumers of the module.
        library_name (str | None): The library file name without extension.
            Defaults to `lib<module name>` when unset.
        platform_overrides (dict[str, PlatformSpecificModuleMetadataV1]):
            Per-platform overrides.
    """
    file_name: ClassVar[str] = MODULE_METADATA_FILE

    export_libraries: list[str] = field(default_factory=list)
    library_name: str | None = None
    platform_overrides: dict[str, PlatformSpecificModuleMetadataV1] = field(default_factory=dict)

    def for_platform(self, identifier: str) -> PlatformSpecificModuleMetadataV1:
        return self.platform_overrides.get(identifier) or PlatformSpecificModuleMetadataV1()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        owner = "module.json"
        overrides: dict[str, PlatformSpecificModuleMetadataV1] = {}
        for key, value in mapping.items():
            if key in _COMMON_KEYS:
                continue
            if not isinstance(value, Mapping):
                raise MetadataError(f"{owner} platform override {key!r} must be an object")
            overrides[key] = PlatformSpecificModuleMetadataV1.from_mapping(value, f"{owner} [{key}]")

        return cls(
            export_libraries=string_list_field(mapping, "export_libraries", owner, required=True),
            library_name=optional_field(mapping, "library_name", str, owner),
            platform_overrides=overrides)

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        mapping: dict[str, Any] = {
            "export_libraries": list(self.export_libraries),
            "library_name": self.library_name,
        }
        for identifier, override in self.platform_overrides.items():
            mapping[identifier] = override.to_mapping()
        return mapping


MODULE_METADATA = MetadataLoader[ModuleMetadataV1](
    "module",
    {
        SchemaVersion.V1: ModuleMetadataV1,
        SchemaVersion.V2: ModuleMetadataV1,
    })
