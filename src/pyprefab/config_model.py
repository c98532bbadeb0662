from __future__ import annotations

from argparse import Namespace
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from typing_extensions import Self

from pyprefab.constants import DEFAULT_AUDIT_LOG, DEFAULT_PLATFORM
from pyprefab.helper.multiformat_model_mixin import MultiformatModelMixin
from pyprefab.helper.toml_utils import dump_toml_to_file

_SCALAR_FIELDS = (
    "build_system",
    "output",
    "platform",
    "abi",
    "os_version",
    "stl",
    "ndk_version",
    "audit_log",
    "verbose",
)


class ConfigError(ValueError):
    pass


def _normalize_str_list(value: Any) -> list[str]:
    """
    Normalizes a value into a list of strings.

    None becomes an empty list, a single string becomes a one-element list
    and any other iterable has its items converted with `str`.

    Raises:
        ConfigError: If the value is neither a string nor a list.
    """
    if value is None:
        return []
    if isinstance(value, (str, Path)):
        return [str(value)]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ConfigError(f"Expected a string or a list of strings, got {type(value).__name__}")


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _os_version(value: Any) -> str:
    """
    Converts an OS version (an API level or a glibc version) to a string.

    Floats are rejected: an unquoted `2.30` in YAML or TOML is read as the
    float 2.3, which names a different glibc version.

    Raises:
        ConfigError: If the value is not a string or an integer.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        raise ConfigError(f"os_version must be a string or an integer, got {value!r}; quote the version in the config file")
    raise ConfigError(f"os_version must be a string or an integer, got {value!r}")


def _bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false, got {value!r}")
    return value


def check_audit_log(value: str) -> str:
    """
    Checks a space-separated list of audit log destinations.

    Valid destinations are "stdout", "stderr" and "file:<path>".

    Returns:
        str: The value, unchanged.

    Raises:
        ConfigError: If a destination is not recognized.
    """
    for dest in value.split():
        if dest in ("stdout", "stderr"):
            continue
        if dest.startswith("file:") and len(dest) > len("file:"):
            continue
        raise ConfigError(f"Unknown audit log destination: {dest}")
    return value


def _optional_int(value: Any, name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _select_config_table(doc: Mapping[str, Any], toml_name: str | None) -> Mapping[str, Any]:
    """
    Selects the pyprefab table of a TOML document.

    A pyproject.toml must have a `[tool.pyprefab]` table. Any other TOML file
    may use `[tool.pyprefab]`, `[pyprefab]`, or put the options at the top
    level.

    Raises:
        ConfigError: If a pyproject.toml has no `[tool.pyprefab]` table.
    """
    tool_table = doc.get("tool", {}).get("pyprefab") if isinstance(doc.get("tool"), Mapping) else None
    if isinstance(tool_table, Mapping):
        return tool_table
    if toml_name == "pyproject.toml":
        raise ConfigError("[tool.pyprefab] not found in pyproject.toml")
    table = doc.get("pyprefab")
    if isinstance(table, Mapping):
        return table
    return doc


@dataclass(kw_only=True)
class PrefabConfig(MultiformatModelMixin):
    """
    The options of a generation run.

    Options come from an optional config file (TOML, YAML or JSON) and from
    the command line; command line values override file values.

    Attributes:
        build_system (str | None): The build system to generate for.
        output (str | None): The output directory.
        platform (str): The target platform identifier. Defaults to "android".
        abi (str | None): The target ABI. For Android, all ABIs are targeted
            when unset.
        os_version (str | None): The minimum OS version: the API level on
            Android, the glibc version on GNU/Linux.
        stl (str | None): The STL (Android only).
        ndk_version (int | None): The NDK major version (Android only).
        package_paths (list[str]): The package directories to load.
        audit_log (str): Space-separated audit log destinations.
        verbose (bool): Emit the full audit log instead of warnings only.
    """
    build_system: str | None = None
    output: str | None = None
    platform: str = DEFAULT_PLATFORM
    abi: str | None = None
    os_version: str | None = None
    stl: str | None = None
    ndk_version: int | None = None
    package_paths: list[str] = field(default_factory=list)
    audit_log: str = DEFAULT_AUDIT_LOG
    verbose: bool = False

    @classmethod
    def _preprocess_mapping(
            cls,
            mapping: Mapping[str, Any],
            *,
            fmt: str,
            path: Path | None,
            **_: Any) -> Mapping[str, Any]:
        if fmt != "toml":
            return mapping
        return _select_config_table(mapping, path.name if path is not None else None)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        inst = cls()
        inst.merge_from_mapping(mapping)
        return inst

    def merge_from_mapping(self, data: Mapping[str, Any] | None) -> None:
        """
        Merges values from a mapping into this configuration.

        Scalars present with a non-None value override the current value.
        Package paths are appended, dropping duplicates and keeping the
        existing order first.

        Args:
            data (Mapping[str, Any] | None): The values to merge.

        Raises:
            ConfigError: If a value has the wrong type.
        """
        if not data:
            return

        for field_name in _SCALAR_FIELDS:
            value = data.get(field_name)
            if value is None:
                continue
            match field_name:
                case "ndk_version":
                    self.ndk_version = _optional_int(value, field_name)
                case "os_version":
                    self.os_version = _os_version(value)
                case "verbose":
                    self.verbose = _bool(value, field_name)
                case _:
                    setattr(self, field_name, _optional_str(value))

        if "package_paths" in data:
            combined: list[str] = []
            for item in self.package_paths + _normalize_str_list(data["package_paths"]):
                if item not in combined:
                    combined.append(item)
            self.package_paths = combined

    def validate(self) -> None:
        """
        Checks that the options needed for a generation run are present.

        Raises:
            ConfigError: If the build system, output directory or package
                paths are missing, or an audit log destination is unknown.
        """
        check_audit_log(self.audit_log)
        if not self.build_system:
            raise ConfigError("a build system is required (--build-system)")
        if not self.output:
            raise ConfigError("an output directory is required (--output)")
        if not self.package_paths:
            raise ConfigError("at least one package path is required")

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "build_system": self.build_system,
            "output": self.output,
            "platform": self.platform,
            "abi": self.abi,
            "os_version": self.os_version,
            "stl": self.stl,
            "ndk_version": self.ndk_version,
            "package_paths": list(self.package_paths),
            "audit_log": self.audit_log,
            "verbose": self.verbose,
        }

    @staticmethod
    def cli_to_mapping(args: Namespace) -> dict[str, object]:
        """
        Converts parsed command-line arguments into a configuration mapping.

        Options that were not given are None and therefore do not override
        values from a config file.
        """
        return {
            "build_system": args.build_system,
            "output": None if args.output is None else str(args.output),
            "platform": args.platform,
            "abi": args.abi,
            "os_version": args.os_version,
            "stl": args.stl,
            "ndk_version": args.ndk_version,
            "audit_log": args.audit_log,
            "verbose": True if args.verbose else None,
            "package_paths": [str(p) for p in args.package_paths or []],
        }

    def save_file(self, path: str | Path) -> Path:
        """
        Writes this configuration as a `[tool.pyprefab]` table of a TOML file.

        Unset options are omitted.

        Returns:
            Path: The written file.
        """
        obj = {k: v for k, v in self.to_mapping().items() if v is not None}
        return dump_toml_to_file({"tool": {"pyprefab": obj}}, path)
