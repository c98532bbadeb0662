from __future__ import annotations

from collections.abc import Sequence
from typing import ClassVar

from pyprefab.model.library_reference_model import Literal
from pyprefab.model.platform.android_model import Android
from pyprefab.model.platform.platform_model import PlatformIdentity
from pyprefab.package.build_systems.build_system_base import (
    BuildSystem,
    UnsupportedRequirementsError,
    sanitize_path,
)
from pyprefab.package.domain.library_file_utils import is_static_library
from pyprefab.package.domain.module_model import Module
from pyprefab.package.domain.package_model import Package
from pyprefab.package.resolution.module_resolution import NoMatchingLibraryError
from pyprefab.package.resolution.reference_resolver import LinkKind, find_referred_module, link_kind_for


class DuplicateModuleNameError(RuntimeError):
    """
    The requested packages cannot be used together with ndk-build because
    module names are not unique across them.
    """

    def __init__(self, a: Module, b: Module):
        super().__init__(
            f"Duplicate module name found ({a.canonical_name} and "
            f"{b.canonical_name}). ndk-build does not support fully qualified "
            "module names.")


def _export_list(items: list[str]) -> str:
    # "LOCAL_X :=" with no trailing space when empty
    return "".join(f" {item}" for item in items)


class NdkBuildSystem(BuildSystem):
    """
    Generates an `Android.mk` per package for ndk-build, importable with
    `$(call import-module,prefab/<package>)`.

    Every requirement gets its own `ifeq ($(TARGET_ARCH_ABI),<abi>)` block,
    so one output directory serves all targeted ABIs.
    """

    name: ClassVar[str] = "ndk-build"
    precedence: ClassVar[int] = 20

    def generate(self, requirements: Sequence[PlatformIdentity]) -> None:
        android_requirements = [r for r in requirements if isinstance(r, Android)]
        if len(android_requirements) != len(requirements):
            raise UnsupportedRequirementsError("ndk-build only supports Android targets")

        seen: dict[str, Module] = {}
        for pkg in self.packages:
            for module in pkg.modules:
                duplicate = seen.get(module.name)
                if duplicate is not None:
                    raise DuplicateModuleNameError(module, duplicate)
                seen[module.name] = module

        self.prepare_output_directory()
        for pkg in self.packages:
            self._generate_package(pkg, android_requirements)

    def _generate_package(self, pkg: Package, requirements: list[Android]) -> None:
        blocks = ["LOCAL_PATH := $(call my-dir)\n\n"]
        for requirement in requirements:
            abi = requirement.abi.target_arch_abi
            blocks.append(f"ifeq ($(TARGET_ARCH_ABI),{abi})\n\n")
            for module in sorted(pkg.modules, key=lambda m: m.name):
                try:
                    block = self._module_block(module, requirement)
                except NoMatchingLibraryError as e:
                    self.record_skip(module, requirement, e)
                    continue
                if block is not None:
                    blocks.append(block)
            blocks.append(f"endif  # {abi}\n\n")

        for dep in sorted(pkg.dependencies):
            blocks.append(f"$(call import-module,prefab/{dep})\n")

        self.write_output(self.output_directory / pkg.name / "Android.mk", "".join(blocks))

    def _module_block(self, module: Module, requirement: Android) -> str | None:
        library = None
        if not module.is_header_only:
            library = self.resolve_library(module, requirement)
            if library is None:
                return None

        ld_libs: list[str] = []
        shared_libraries: list[str] = []
        static_libraries: list[str] = []

        for reference in module.link_libs_for_platform(requirement):
            if isinstance(reference, Literal):
                ld_libs.append(reference.arg)
                continue
            referred = find_referred_module(reference, module, self.packages)
            match link_kind_for(referred, requirement):
                case LinkKind.SHARED:
                    shared_libraries.append(referred.name)
                case LinkKind.STATIC | LinkKind.HEADER_ONLY:
                    static_libraries.append(referred.name)

        exports = (
            f"LOCAL_EXPORT_SHARED_LIBRARIES :={_export_list(shared_libraries)}\n"
            f"LOCAL_EXPORT_STATIC_LIBRARIES :={_export_list(static_libraries)}\n"
            f"LOCAL_EXPORT_LDLIBS :={_export_list(ld_libs)}\n")

        if library is None:
            # ndk-build has no header-only type; a static library with no
            # sources behaves as one
            return (
                "include $(CLEAR_VARS)\n"
                f"LOCAL_MODULE := {module.name}\n"
                f"LOCAL_EXPORT_C_INCLUDES := {sanitize_path(module.include_path)}\n"
                f"{exports}"
                "include $(BUILD_STATIC_LIBRARY)\n\n")

        prebuilt_type = "PREBUILT_STATIC_LIBRARY" if is_static_library(library.path) else "PREBUILT_SHARED_LIBRARY"
        return (
            "include $(CLEAR_VARS)\n"
            f"LOCAL_MODULE := {module.name}\n"
            f"LOCAL_SRC_FILES := {sanitize_path(library.path)}\n"
            f"LOCAL_EXPORT_C_INCLUDES := {sanitize_path(library.include_path)}\n"
            f"{exports}"
            f"include $({prebuilt_type})\n\n")
