from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from pyprefab.config_model import ConfigError
from pyprefab.model.metadata.android_abi_metadata_model import ANDROID_ABI_METADATA, ANDROID_IDENTIFIER
from pyprefab.model.platform.platform_model import (
    AmbiguousLibraryMatchError,
    CompatibleLibrary,
    IncompatibleLibrary,
    LibraryUsabilityResult,
    PlatformFactory,
    PlatformIdentity,
    VariantCoverageGapError,
)
from pyprefab.package.domain.library_file_utils import library_path_for
from pyprefab.package.domain.library_variant_model import LibraryVariant

if TYPE_CHECKING:
    from pyprefab.config_model import PrefabConfig
    from pyprefab.model.metadata.schema_version import SchemaVersion
    from pyprefab.package.domain.module_model import Module

# 64-bit ABIs were introduced in this API level
FIRST_LP64_API_LEVEL = 21


class Abi(Enum):
    """
    An Android ABI.

    Each member carries the Android ABI name (the `APP_ABI` / `ANDROID_ABI`
    value, also used in `abi.json`), the library target triple, and whether
    the ABI is 64-bit. The triple names the library architecture, so 32-bit
    Arm is `arm-linux-androideabi` rather than `armv7a-linux-androideabi`.
    """
    ARM32 = ("armeabi-v7a", "arm-linux-androideabi", False)
    ARM64 = ("arm64-v8a", "aarch64-linux-android", True)
    X86 = ("x86", "i686-linux-android", False)
    X86_64 = ("x86_64", "x86_64-linux-android", True)

    @property
    def target_arch_abi(self) -> str:
        return self.value[0]

    @property
    def triple(self) -> str:
        return self.value[1]

    @property
    def is_64_bit(self) -> bool:
        return self.value[2]

    @classmethod
    def from_string(cls, name: str) -> Abi:
        for abi in cls:
            if abi.target_arch_abi == name:
                return abi
        raise ValueError(f"Unknown ABI: {name}")

    def __str__(self) -> str:
        return self.target_arch_abi


class StlFamily(Enum):
    """
    A family of STLs sharing the same linking constraints.
    """
    CXX = "libc++"
    GNUSTL = "libstdc++"
    NONE = "no STL"
    STLPORT = "STLport"

    @property
    def family_name(self) -> str:
        return self.value


class Stl(Enum):
    """
    An Android STL.

    STLs removed from current NDKs are still listed because old artifacts may
    have been built with them. `system` belongs to the "no STL" family
    because it has the same (lack of) linking requirements.
    """
    CXX_SHARED = ("c++_shared", StlFamily.CXX, True)
    CXX_STATIC = ("c++_static", StlFamily.CXX, False)
    GNUSTL_SHARED = ("gnustl_shared", StlFamily.GNUSTL, True)
    GNUSTL_STATIC = ("gnustl_static", StlFamily.GNUSTL, False)
    NONE = ("none", StlFamily.NONE, False)
    STLPORT_SHARED = ("stlport_shared", StlFamily.STLPORT, True)
    STLPORT_STATIC = ("stlport_static", StlFamily.STLPORT, False)
    SYSTEM = ("system", StlFamily.NONE, True)

    @property
    def stl_name(self) -> str:
        return self.value[0]

    @property
    def family(self) -> StlFamily:
        return self.value[1]

    @property
    def is_shared(self) -> bool:
        return self.value[2]

    @classmethod
    def from_string(cls, name: str) -> Stl:
        for stl in cls:
            if stl.stl_name == name:
                return stl
        raise ValueError(f"Unknown STL: {name}")

    def __str__(self) -> str:
        return self.stl_name


@dataclass(slots=True, frozen=True)
class Android(PlatformIdentity):
    """
    The Android platform identity.

    For 64-bit ABIs the API level is raised to at least 21, whatever value was
    declared or requested.

    Attributes:
        abi (Abi): The targeted ABI.
        api (int): The minSdkVersion.
        stl (Stl): The STL.
        ndk_major_version (int): The major version of the NDK.
        is_static (bool): True when this describes a static library artifact.
            Always False for user requirements.
    """
    identifier: ClassVar[str] = ANDROID_IDENTIFIER

    abi: Abi
    api: int
    stl: Stl
    ndk_major_version: int
    is_static: bool = False

    def __post_init__(self):
        if self.abi.is_64_bit and self.api < FIRST_LP64_API_LEVEL:
            object.__setattr__(self, "api", FIRST_LP64_API_LEVEL)

    @property
    def target_triple(self) -> str:
        return self.abi.triple

    def __str__(self) -> str:
        return f"Android({self.abi}, {self.api}, {self.stl})"

    def _stls_are_compatible(self, library: Android) -> LibraryUsabilityResult:
        # A user statically linking an STL that is hidden behind a version
        # script is indistinguishable from a conflict here; such users must
        # declare "none".

        if library.stl.family is StlFamily.NONE:
            return CompatibleLibrary()

        if self.stl.family is not library.stl.family:
            return IncompatibleLibrary(
                f"User requested {self.stl.family.family_name} but library "
                f"requires {library.stl.family.family_name}")

        # a static library uses whatever STL the final link uses
        if library.is_static:
            return CompatibleLibrary()

        if not library.stl.is_shared:
            return IncompatibleLibrary(
                "Library is a shared library with a statically linked STL "
                "and cannot be used with any library using the STL")

        if not self.stl.is_shared:
            return IncompatibleLibrary(
                "User is using a static STL but library requires a shared STL")

        return CompatibleLibrary()

    def check_if_usable(self, library: LibraryVariant) -> LibraryUsabilityResult:
        platform = library.platform
        if not isinstance(platform, Android):
            return IncompatibleLibrary("Library is not an Android library")

        if self.abi is not platform.abi:
            return IncompatibleLibrary(
                f"User is targeting {self.abi.target_arch_abi} but library is "
                f"for {platform.abi.target_arch_abi}")

        if self.api < platform.api:
            return IncompatibleLibrary(
                f"User has minSdkVersion {self.api} but library was built for "
                f"{platform.api}")

        return self._stls_are_compatible(platform)

    def find_best_match(self, libraries: Sequence[LibraryVariant]) -> LibraryVariant:
        """
        Selects the best Android library for these requirements.

        Libraries built for the highest API level are preferred. If more than
        one remains, the user's NDK major version is clamped into the range
        covered by the remaining libraries and an exact match is required.

        Args:
            libraries (Sequence[LibraryVariant]): Usable libraries of a single
                module.

        Returns:
            LibraryVariant: The selected library.

        Raises:
            ValueError: If the preconditions are violated.
            VariantCoverageGapError: If no library matches the clamped NDK
                version.
            AmbiguousLibraryMatchError: If several libraries match the clamped
                NDK version.
        """
        self._check_best_match_preconditions(libraries)
        module_name = libraries[0].module.canonical_name

        best_api = max(lib.platform.api for lib in libraries)
        best_api_matches = [lib for lib in libraries if lib.platform.api == best_api]
        if len(best_api_matches) == 1:
            return best_api_matches[0]

        ndk_versions = [lib.platform.ndk_major_version for lib in best_api_matches]
        clamped = min(max(self.ndk_major_version, min(ndk_versions)), max(ndk_versions))
        ndk_matches = [lib for lib in best_api_matches if lib.platform.ndk_major_version == clamped]

        if not ndk_matches:
            raise VariantCoverageGapError(module_name, self.ndk_major_version)

        if len(ndk_matches) == 1:
            return ndk_matches[0]

        # TODO: reject redundant variants when the module is loaded instead of on first use
        raise AmbiguousLibraryMatchError(module_name, [lib.directory for lib in ndk_matches])


class AndroidPlatformFactory(PlatformFactory):
    identifier: ClassVar[str] = ANDROID_IDENTIFIER
    precedence: ClassVar[int] = 10

    def library_from_directory(
            self,
            directory: Path,
            module: Module,
            schema_version: SchemaVersion) -> LibraryVariant:
        metadata = ANDROID_ABI_METADATA.load_and_migrate(schema_version, directory, module)
        platform = Android(
            abi=Abi.from_string(metadata.abi),
            api=metadata.api,
            stl=Stl.from_string(metadata.stl),
            ndk_major_version=metadata.ndk,
            is_static=metadata.static)
        path = library_path_for(directory, module.library_name_for_platform(self.identifier), metadata.static)
        return LibraryVariant(path=path, module=module, platform=platform)

    def requirements_from_config(self, config: PrefabConfig) -> list[Android]:
        """
        Builds one requirement per targeted ABI.

        All ABIs are targeted when the configuration does not name one.

        Raises:
            ConfigError: If the OS version, STL or NDK version is missing.
            ValueError: If a value cannot be parsed.
        """
        if config.os_version is None:
            raise ConfigError("Android targets require an OS version (--os-version)")
        if config.stl is None:
            raise ConfigError("Android targets require an STL (--stl)")
        if config.ndk_version is None:
            raise ConfigError("Android targets require an NDK version (--ndk-version)")

        api = _parse_int(config.os_version, "os_version")
        ndk = _parse_int(config.ndk_version, "ndk_version")
        stl = Stl.from_string(config.stl)
        abis = [Abi.from_string(config.abi)] if config.abi else list(Abi)
        return [Android(abi=abi, api=api, stl=stl, ndk_major_version=ndk) for abi in abis]


def _parse_int(value: object, name: str) -> int:
    try:
        return int(str(value))
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
