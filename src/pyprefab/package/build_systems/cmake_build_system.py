from __future__ import annotations

from collections.abc import Sequence
from typing import ClassVar

from pyprefab.model.library_reference_model import External, Literal, Local
from pyprefab.model.platform.platform_model import PlatformIdentity
from pyprefab.package.build_systems.build_system_base import (
    BuildSystem,
    UnsupportedRequirementsError,
    sanitize_path,
)
from pyprefab.package.domain.library_file_utils import is_static_library
from pyprefab.package.domain.module_model import Module
from pyprefab.package.domain.package_model import Package

# https://cmake.org/cmake/help/latest/manual/cmake-packages.7.html#package-version-file
_VERSION_FILE_TEMPLATE = """\
set(PACKAGE_VERSION {version})
if("${{PACKAGE_VERSION}}" VERSION_LESS "${{PACKAGE_FIND_VERSION}}")
    set(PACKAGE_VERSION_COMPATIBLE FALSE)
else()
    set(PACKAGE_VERSION_COMPATIBLE TRUE)
    if("${{PACKAGE_VERSION}}" VERSION_EQUAL "${{PACKAGE_FIND_VERSION}}")
        set(PACKAGE_VERSION_EXACT TRUE)
    endif()
endif()"""


class CMakeBuildSystem(BuildSystem):
    """
    Generates CMake package config files, one `<package>-config.cmake` per
    package, importable with `find_package`.

    CMake config files cannot describe more than one target configuration,
    so exactly one requirement is accepted.
    """

    name: ClassVar[str] = "cmake"
    precedence: ClassVar[int] = 10

    def generate(self, requirements: Sequence[PlatformIdentity]) -> None:
        if len(requirements) != 1:
            raise UnsupportedRequirementsError("CMake cannot generate multiple targets to a single directory")
        requirement = requirements[0]

        self.prepare_output_directory()
        for pkg in self.packages:
            self._generate_package(pkg, requirement)

    def _generate_package(self, pkg: Package, requirement: PlatformIdentity) -> None:
        blocks = [f"find_package({dep} REQUIRED)\n\n" for dep in sorted(pkg.dependencies)]
        for module in sorted(pkg.modules, key=lambda m: m.name):
            block = self._module_block(pkg, module, requirement)
            if block is not None:
                blocks.append(block)

        self.write_output(self.output_directory / f"{pkg.name}-config.cmake", "".join(blocks))

        if pkg.version is not None:
            self.write_output(
                self.output_directory / f"{pkg.name}-config-version.cmake",
                _VERSION_FILE_TEMPLATE.format(version=pkg.version))

    def _module_block(self, pkg: Package, module: Module, requirement: PlatformIdentity) -> str | None:
        references = module.link_libs_for_platform(requirement)
        ld_libs = [r.arg for r in references if isinstance(r, Literal)]
        local_refs = [f"{pkg.name}::{r.name}" for r in references if isinstance(r, Local)]
        external_refs = [f"{r.package}::{r.module}" for r in references if isinstance(r, External)]
        libraries = ";".join(ld_libs + local_refs + external_refs)

        target = f"{pkg.name}::{module.name}"

        if module.is_header_only:
            return (
                f"add_library({target} INTERFACE)\n"
                f"set_target_properties({target} PROPERTIES\n"
                f"    INTERFACE_INCLUDE_DIRECTORIES \"{sanitize_path(module.include_path)}\"\n"
                f"    INTERFACE_LINK_LIBRARIES \"{libraries}\"\n"
                f")\n\n")

        library = self.resolve_library(module, requirement)
        if library is None:
            return None

        kind = "STATIC" if is_static_library(library.path) else "SHARED"
        return (
            f"add_library({target} {kind} IMPORTED)\n"
            f"set_target_properties({target} PROPERTIES\n"
            f"    IMPORTED_LOCATION \"{sanitize_path(library.path)}\"\n"
            f"    INTERFACE_INCLUDE_DIRECTORIES \"{sanitize_path(library.include_path)}\"\n"
            f"    INTERFACE_LINK_LIBRARIES \"{libraries}\"\n"
            f")\n\n")
