from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, ClassVar, Generic, TypeVar

from typing_extensions import Self

from pyprefab.helper.multiformat_model_mixin import MultiformatModelMixin
from pyprefab.model.metadata.schema_version import SchemaVersion

T = TypeVar("T", bound="VersionedMetadata")


class MetadataError(ValueError):
    """
    A metadata file is missing a required field or has a field of the wrong
    type.
    """


def require_field(mapping: Mapping[str, Any], key: str, expected: type | tuple[type, ...], owner: str) -> Any:
    """
    Returns a required field of a metadata mapping after checking its type.

    Args:
        mapping (Mapping[str, Any]): The parsed metadata.
        key (str): The field name.
        expected (type | tuple[type, ...]): The accepted type(s).
        owner (str): The record name, used in error messages.

    Returns:
        Any: The field value.

    Raises:
        MetadataError: If the field is missing or has the wrong type.
    """
    if key not in mapping:
        raise MetadataError(f"{owner} is missing required field {key!r}")
    return check_field(mapping[key], key, expected, owner)


def optional_field(
        mapping: Mapping[str, Any],
        key: str,
        expected: type | tuple[type, ...],
        owner: str,
        default: Any = None) -> Any:
    value = mapping.get(key)
    if value is None:
        return default
    return check_field(value, key, expected, owner)


def check_field(value: Any, key: str, expected: type | tuple[type, ...], owner: str) -> Any:
    # bool is an int subclass; never accept it where a number is expected
    bad_bool = isinstance(value, bool) and bool not in (expected if isinstance(expected, tuple) else (expected,))
    if bad_bool or not isinstance(value, expected):
        raise MetadataError(f"{owner} field {key!r} has invalid value {value!r}")
    return value


def string_list_field(mapping: Mapping[str, Any], key: str, owner: str, *, required: bool) -> list[str] | None:
    if key not in mapping or mapping[key] is None:
        if required:
            raise MetadataError(f"{owner} is missing required field {key!r}")
        return None
    value = mapping[key]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MetadataError(f"{owner} field {key!r} must be a list of strings")
    return list(value)


class VersionedMetadata(MultiformatModelMixin):
    """
    Base class of the on-disk metadata records.

    Each record type describes exactly one schema version of one metadata
    file and knows how to migrate itself to the current in-memory shape.

    Attributes:
        file_name (ClassVar[str]): The name of the file the record is read
            from, relative to the directory passed to `load`.
    """

    file_name: ClassVar[str]

    @classmethod
    def load(cls, directory: Path) -> Self:
        """
        Loads the record from its file in the given directory.

        Args:
            directory (Path): The directory containing the metadata file.

        Returns:
            Self: The loaded record.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is malformed.
        """
        return cls.from_file(Path(directory) / cls.file_name, fmt="json")

    def migrate(self, context: Any, directory: Path) -> VersionedMetadata:
        """
        Migrates this record to the current shape.

        Args:
            context (Any): Additional data some migrations need, such as the
                module owning the record.
            directory (Path): The directory the record was loaded from.

        Returns:
            VersionedMetadata: The migrated record. Records that are already
            current return themselves.
        """
        return self


class MetadataLoader(Generic[T]):
    """
    Loads one kind of metadata file for any supported schema version.

    The loader holds a read-only dispatch table from schema version to
    record type. Construction fails unless every schema version has an
    entry, so supporting a new schema version means updating every loader.
    """

    def __init__(self, name: str, table: Mapping[SchemaVersion, type[VersionedMetadata]]):
        missing = [v.name for v in SchemaVersion if v not in table]
        if missing:
            raise ValueError(f"{name} metadata loader has no record type for {', '.join(missing)}")
        self.name = name
        self._table: Mapping[SchemaVersion, type[VersionedMetadata]] = MappingProxyType(dict(table))

    def metadata_class_for(self, schema_version: SchemaVersion) -> type[VersionedMetadata]:
        return self._table[schema_version]

    def load_and_migrate(self, schema_version: SchemaVersion, directory: Path, context: Any = None) -> T:
        """
        Loads a metadata file and migrates it to the current shape.

        Args:
            schema_version (SchemaVersion): The schema version of the package.
            directory (Path): The directory containing the metadata file.
            context (Any): Additional data passed to the migration.

        Returns:
            T: The current-shape record.
        """
        record = self.metadata_class_for(schema_version).load(directory)
        return record.migrate(context, Path(directory))  # type: ignore[return-value]
