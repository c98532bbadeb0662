from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

from pyprefab.constants import PACKAGE_METADATA_FILE


class SchemaVersion(int, Enum):
    """
    The versions of the on-disk metadata format.

    The version is declared once per package, in the `schema_version` key of
    its `prefab.json`, and governs how every metadata file of the package is
    parsed. Members are ordered by their integer value.
    """
    V1 = 1
    V2 = 2

    @classmethod
    def latest(cls) -> SchemaVersion:
        return LATEST_SCHEMA_VERSION

    @classmethod
    def from_version(cls, version: int) -> SchemaVersion:
        """
        Returns the schema version matching an integer version number.

        Args:
            version (int): The version number declared by a package.

        Returns:
            SchemaVersion: The matching member.

        Raises:
            ValueError: If the version is outside the supported range.
        """
        if isinstance(version, bool) or not isinstance(version, int):
            raise ValueError(f"schema_version must be an integer, got {version!r}")
        for member in cls:
            if member.value == version:
                return member
        lowest = min(cls).value
        highest = max(cls).value
        raise ValueError(
            f"schema_version must be between {lowest} and {highest}. Package "
            f"uses version {version}.")

    @classmethod
    def from_package_directory(cls, package_path: Path) -> SchemaVersion:
        """
        Reads the schema version declared by a package.

        Only the `schema_version` key of the package's `prefab.json` is
        examined; all other keys are ignored.

        Args:
            package_path (Path): The package root directory.

        Returns:
            SchemaVersion: The declared schema version.

        Raises:
            FileNotFoundError: If the package has no `prefab.json`.
            ValueError: If the file is malformed or the version is missing or
                unsupported.
        """
        metadata_file = Path(package_path) / PACKAGE_METADATA_FILE
        try:
            data = json.loads(metadata_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Malformed JSON in {metadata_file}: {e}") from e
        if not isinstance(data, dict) or "schema_version" not in data:
            raise ValueError(f"{metadata_file} does not declare a schema_version")
        return cls.from_version(data["schema_version"])


LATEST_SCHEMA_VERSION = SchemaVersion.V2
