"""
Pytest configuration and shared fixtures for the pyprefab tests.

Provides an autouse fixture binding a fresh GenerationPlan to the context so
audited code can run, builders for in-memory modules and library variants,
and a builder for on-disk package trees.
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pyprefab.model.platform.android_model import Abi, Android, Stl
from pyprefab.package.context_vars import current_generation_plan
from pyprefab.package.domain.library_variant_model import LibraryVariant
from pyprefab.package.domain.module_model import Module
from pyprefab.package.generation_plan import GenerationPlan


@pytest.fixture(autouse=True)
def generation_plan():
    plan = GenerationPlan()
    token = current_generation_plan.set(plan)
    yield plan
    current_generation_plan.reset(token)


# =============================================================================
# In-memory builders
# =============================================================================

def make_module(name: str = "foo", package_name: str = "pkg", path: Path | None = None) -> Module:
    return Module(name=name, package_name=package_name, path=path or Path("/prefab") / package_name / "modules" / name)


def add_android_variant(
        module: Module,
        directory_name: str,
        abi: Abi = Abi.ARM64,
        api: int = 21,
        stl: Stl = Stl.CXX_SHARED,
        ndk: int = 21,
        static: bool = False) -> LibraryVariant:
    """Adds an Android variant under `libs/<directory_name>` of the module."""
    suffix = ".a" if static else ".so"
    path = module.path / "libs" / directory_name / f"lib{module.name}{suffix}"
    variant = LibraryVariant(
        path=path,
        module=module,
        platform=Android(abi=abi, api=api, stl=stl, ndk_major_version=ndk, is_static=static))
    module.libraries.append(variant)
    return variant


@pytest.fixture
def module():
    return make_module()


# =============================================================================
# On-disk package trees
# =============================================================================

class PackageTreeBuilder:
    """
    Writes prefab package directories under a root directory.
    """

    def __init__(self, root: Path):
        self.root = root

    def package(
            self,
            name: str,
            *,
            dependencies: list[str] | None = None,
            version: str | None = None,
            schema_version: int = 2) -> Path:
        path = self.root / name
        (path / "modules").mkdir(parents=True)
        metadata = {"name": name, "schema_version": schema_version, "dependencies": dependencies or []}
        if version is not None:
            metadata["version"] = version
        (path / "prefab.json").write_text(json.dumps(metadata))
        return path

    def module(
            self,
            package_path: Path,
            name: str,
            *,
            export_libraries: list[str] | None = None,
            library_name: str | None = None,
            overrides: dict[str, dict] | None = None,
            include: bool = True) -> Path:
        path = package_path / "modules" / name
        path.mkdir(parents=True)
        metadata: dict = {"export_libraries": export_libraries or []}
        if library_name is not None:
            metadata["library_name"] = library_name
        metadata.update(overrides or {})
        (path / "module.json").write_text(json.dumps(metadata))
        if include:
            (path / "include").mkdir()
            (path / "include" / f"{name}.h").write_text("")
        return path

    def android_library(
            self,
            module_path: Path,
            abi: str,
            *,
            api: int = 21,
            ndk: int = 21,
            stl: str = "c++_shared",
            static: bool | None = False,
            file_static: bool | None = None,
            library_name: str | None = None,
            directory_name: str | None = None) -> Path:
        """
        Writes `libs/android.<abi>` with an `abi.json` and a library file.

        `static=None` omits the key, as schema version 1 does. The library
        file is `.a` when `file_static` (defaulting to `static`) is true.
        """
        directory = module_path / "libs" / (directory_name or f"android.{abi}")
        directory.mkdir(parents=True)
        metadata: dict = {"abi": abi, "api": api, "ndk": ndk, "stl": stl}
        if static is not None:
            metadata["static"] = static
        (directory / "abi.json").write_text(json.dumps(metadata))
        is_static = bool(static if file_static is None else file_static)
        name = library_name or f"lib{module_path.name}"
        (directory / f"{name}{'.a' if is_static else '.so'}").write_text("")
        return directory

    def gnulinux_library(
            self,
            module_path: Path,
            arch: str,
            glibc_version: str,
            *,
            static: bool = False) -> Path:
        directory = module_path / "libs" / f"gnulinux.{arch}-{glibc_version}"
        directory.mkdir(parents=True)
        (directory / "abi.json").write_text(
            json.dumps({"arch": arch, "glibc_version": glibc_version, "static": static}))
        (directory / f"lib{module_path.name}{'.a' if static else '.so'}").write_text("")
        return directory


@pytest.fixture
def package_tree(tmp_path):
    return PackageTreeBuilder(tmp_path / "packages")
