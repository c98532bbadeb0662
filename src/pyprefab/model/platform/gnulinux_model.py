from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from packaging.version import InvalidVersion, Version

from pyprefab.config_model import ConfigError
from pyprefab.model.metadata.gnulinux_abi_metadata_model import GNULINUX_ABI_METADATA, GNULINUX_IDENTIFIER
from pyprefab.model.platform.platform_model import (
    AmbiguousLibraryMatchError,
    CompatibleLibrary,
    IncompatibleLibrary,
    LibraryUsabilityResult,
    PlatformFactory,
    PlatformIdentity,
)
from pyprefab.package.domain.library_file_utils import library_path_for
from pyprefab.package.domain.library_variant_model import LibraryVariant

if TYPE_CHECKING:
    from pyprefab.config_model import PrefabConfig
    from pyprefab.model.metadata.schema_version import SchemaVersion
    from pyprefab.package.domain.module_model import Module


class Arch(Enum):
    """
    A GNU/Linux architecture, named as Debian names it, with its multiarch
    triple.
    """
    AMD64 = ("amd64", "x86_64-linux-gnu")
    ARM64 = ("arm64", "aarch64-linux-gnu")
    ARMHF = ("armhf", "arm-linux-gnueabihf")
    I386 = ("i386", "i386-linux-gnu")
    PPC64EL = ("ppc64el", "powerpc64le-linux-gnu")

    @property
    def arch_name(self) -> str:
        return self.value[0]

    @property
    def triple(self) -> str:
        return self.value[1]

    @classmethod
    def from_string(cls, name: str) -> Arch:
        for arch in cls:
            if arch.arch_name == name:
                return arch
        raise ValueError(f"Unknown architecture: {name}")

    def __str__(self) -> str:
        return self.arch_name


def parse_glibc_version(text: str) -> Version:
    """
    Parses a `major.minor` glibc version.

    Args:
        text (str): The version string, e.g. "2.31".

    Returns:
        Version: The parsed version, ordered numerically.

    Raises:
        ValueError: If the string is not exactly `major.minor`.
    """
    if text.count(".") != 1:
        raise ValueError(f"Expected exactly one . in glibc version string: {text!r}")
    major, minor = text.split(".")
    if not (major.isdigit() and minor.isdigit()):
        raise ValueError(f"Invalid glibc version: {text!r}")
    try:
        return Version(text)
    except InvalidVersion as e:
        raise ValueError(f"Invalid glibc version: {text!r}") from e


@dataclass(slots=True, frozen=True)
class GnuLinux(PlatformIdentity):
    """
    The GNU/Linux platform identity.

    A library is usable when it targets the same architecture and was built
    against a glibc no newer than the user's.

    Attributes:
        arch (Arch): The targeted architecture.
        glibc_version (Version): The glibc version.
        is_static (bool): True when this describes a static library artifact.
    """
    identifier: ClassVar[str] = GNULINUX_IDENTIFIER

    arch: Arch
    glibc_version: Version
    is_static: bool = False

    @property
    def target_triple(self) -> str:
        return self.arch.triple

    def __str__(self) -> str:
        return f"GnuLinux({self.arch}, {self.glibc_version})"

    def check_if_usable(self, library: LibraryVariant) -> LibraryUsabilityResult:
        platform = library.platform
        if not isinstance(platform, GnuLinux):
            return IncompatibleLibrary("Library is not a GNU/Linux library")

        if self.arch is not platform.arch:
            return IncompatibleLibrary(
                f"User is targeting {self.arch.arch_name} but library is for "
                f"{platform.arch.arch_name}")

        if self.glibc_version < platform.glibc_version:
            return IncompatibleLibrary(
                f"User has glibc {self.glibc_version} but library was built for "
                f"{platform.glibc_version}")

        return CompatibleLibrary()

    def find_best_match(self, libraries: Sequence[LibraryVariant]) -> LibraryVariant:
        self._check_best_match_preconditions(libraries)

        newest = max(lib.platform.glibc_version for lib in libraries)
        matches = [lib for lib in libraries if lib.platform.glibc_version == newest]
        if len(matches) == 1:
            return matches[0]
        raise AmbiguousLibraryMatchError(
            libraries[0].module.canonical_name,
            [lib.directory for lib in matches])


class GnuLinuxPlatformFactory(PlatformFactory):
    identifier: ClassVar[str] = GNULINUX_IDENTIFIER
    precedence: ClassVar[int] = 20

    def library_from_directory(
            self,
            directory: Path,
            module: Module,
            schema_version: SchemaVersion) -> LibraryVariant:
        metadata = GNULINUX_ABI_METADATA.load_and_migrate(schema_version, directory, module)
        platform = GnuLinux(
            arch=Arch.from_string(metadata.arch),
            glibc_version=parse_glibc_version(metadata.glibc_version),
            is_static=metadata.static)
        path = library_path_for(directory, module.library_name_for_platform(self.identifier), metadata.static)
        return LibraryVariant(path=path, module=module, platform=platform)

    def requirements_from_config(self, config: PrefabConfig) -> list[GnuLinux]:
        if config.abi is None:
            raise ConfigError("GNU/Linux targets require an ABI (--abi)")
        if config.os_version is None:
            raise ConfigError("GNU/Linux targets require an OS version (--os-version)")
        return [
            GnuLinux(
                arch=Arch.from_string(config.abi),
                glibc_version=parse_glibc_version(str(config.os_version)))
        ]
