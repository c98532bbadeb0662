import pytest

from pyprefab.model.platform.android_model import Abi, Android, Stl
from pyprefab.model.platform.platform_model import AmbiguousLibraryMatchError
from pyprefab.package.audit.generation_event_model import EventType, LevelType
from pyprefab.package.build_systems.build_system_base import UnsupportedRequirementsError
from pyprefab.package.build_systems.build_system_registry import build_systems, create_build_system
from pyprefab.package.build_systems.cmake_build_system import CMakeBuildSystem
from pyprefab.package.domain.package_model import Package
from pyprefab.package.errors import UnsupportedBuildSystemError


def _requirement(abi: Abi = Abi.ARM64) -> Android:
    return Android(abi=abi, api=21, stl=Stl.CXX_SHARED, ndk_major_version=21)


@pytest.fixture
def foo(package_tree):
    pkg_path = package_tree.package("foo", dependencies=["qux", "quux"])
    bar = package_tree.module(pkg_path, "bar", export_libraries=["-landroid", ":baz", "//qux:libqux"])
    package_tree.android_library(bar, "arm64-v8a")
    baz = package_tree.module(pkg_path, "baz", export_libraries=["-llog"])
    package_tree.android_library(baz, "arm64-v8a", static=True)
    package_tree.module(pkg_path, "headers")
    return Package.load(pkg_path)


def test_build_systems_are_registered():
    assert list(build_systems()) == ["cmake", "ndk-build"]
    assert isinstance(create_build_system("cmake", "out", []), CMakeBuildSystem)
    with pytest.raises(UnsupportedBuildSystemError, match="Unsupported build system 'make'"):
        create_build_system("make", "out", [])


def test_config_file(tmp_path, foo):
    out = tmp_path / "out"
    CMakeBuildSystem(out, [foo]).generate([_requirement()])

    bar = foo.path / "modules" / "bar"
    baz = foo.path / "modules" / "baz"
    headers = foo.path / "modules" / "headers"
    assert (out / "foo-config.cmake").read_text() == (
        "find_package(quux REQUIRED)\n\n"
        "find_package(qux REQUIRED)\n\n"
        "add_library(foo::bar SHARED IMPORTED)\n"
        "set_target_properties(foo::bar PROPERTIES\n"
        f"    IMPORTED_LOCATION \"{bar}/libs/android.arm64-v8a/libbar.so\"\n"
        f"    INTERFACE_INCLUDE_DIRECTORIES \"{bar}/include\"\n"
        "    INTERFACE_LINK_LIBRARIES \"-landroid;foo::baz;qux::libqux\"\n"
        ")\n\n"
        "add_library(foo::baz STATIC IMPORTED)\n"
        "set_target_properties(foo::baz PROPERTIES\n"
        f"    IMPORTED_LOCATION \"{baz}/libs/android.arm64-v8a/libbaz.a\"\n"
        f"    INTERFACE_INCLUDE_DIRECTORIES \"{baz}/include\"\n"
        "    INTERFACE_LINK_LIBRARIES \"-llog\"\n"
        ")\n\n"
        "add_library(foo::headers INTERFACE)\n"
        "set_target_properties(foo::headers PROPERTIES\n"
        f"    INTERFACE_INCLUDE_DIRECTORIES \"{headers}/include\"\n"
        "    INTERFACE_LINK_LIBRARIES \"\"\n"
        ")\n\n")


def test_link_libraries_are_grouped_by_kind(tmp_path, package_tree):
    pkg_path = package_tree.package("foo")
    package_tree.module(pkg_path, "bar", export_libraries=["//qux:a", ":b", "-lz", ":c", "-lm"])
    out = tmp_path / "out"

    CMakeBuildSystem(out, [Package.load(pkg_path)]).generate([_requirement()])

    assert 'INTERFACE_LINK_LIBRARIES "-lz;-lm;foo::b;foo::c;qux::a"' in (out / "foo-config.cmake").read_text()


def test_version_file_is_written_for_versioned_packages(tmp_path, package_tree):
    versioned = Package.load(package_tree.package("foo", version="1.2.3"))
    unversioned = Package.load(package_tree.package("bar"))
    out = tmp_path / "out"

    build_system = CMakeBuildSystem(out, [versioned, unversioned])
    build_system.generate([_requirement()])

    version_file = (out / "foo-config-version.cmake").read_text()
    assert version_file.startswith("set(PACKAGE_VERSION 1.2.3)\n")
    assert 'if("${PACKAGE_VERSION}" VERSION_LESS "${PACKAGE_FIND_VERSION}")' in version_file
    assert not (out / "bar-config-version.cmake").exists()
    assert build_system.outputs == [
        out / "foo-config.cmake",
        out / "foo-config-version.cmake",
        out / "bar-config.cmake",
    ]


def test_multiple_requirements_are_rejected(tmp_path, foo):
    with pytest.raises(UnsupportedRequirementsError, match="CMake cannot generate multiple targets"):
        CMakeBuildSystem(tmp_path / "out", [foo]).generate([_requirement(Abi.ARM64), _requirement(Abi.X86)])


def test_output_directory_is_recreated(tmp_path, foo):
    out = tmp_path / "out"
    out.mkdir()
    (out / "stale.cmake").write_text("")

    CMakeBuildSystem(out, [foo]).generate([_requirement()])

    assert not (out / "stale.cmake").exists()
    assert (out / "foo-config.cmake").exists()


def test_module_without_usable_library_is_skipped(tmp_path, foo, generation_plan):
    out = tmp_path / "out"
    CMakeBuildSystem(out, [foo]).generate([_requirement(Abi.X86)])

    text = (out / "foo-config.cmake").read_text()
    assert "foo::bar" not in text
    assert "foo::baz" not in text
    assert "add_library(foo::headers INTERFACE)" in text

    skips = [e for e in generation_plan.audit_log if e.event_type is EventType.SKIP]
    assert [e.payload["module"] for e in skips] == ["//foo/bar", "//foo/baz"]
    assert all(e.level is LevelType.WARN for e in skips)
    assert skips[0].payload["rejections"] == {
        "android.arm64-v8a": "User is targeting x86 but library is for arm64-v8a",
    }


def test_ambiguous_module_is_fatal(tmp_path, package_tree):
    pkg_path = package_tree.package("foo")
    bar = package_tree.module(pkg_path, "bar")
    package_tree.android_library(bar, "arm64-v8a", directory_name="android.one")
    package_tree.android_library(bar, "arm64-v8a", directory_name="android.two")

    with pytest.raises(AmbiguousLibraryMatchError):
        CMakeBuildSystem(tmp_path / "out", [Package.load(pkg_path)]).generate([_requirement()])
