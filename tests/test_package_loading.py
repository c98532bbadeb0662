import pytest

from pyprefab.model.metadata.schema_version import SchemaVersion
from pyprefab.model.platform.android_model import Abi, Android, Stl
from pyprefab.model.platform.gnulinux_model import Arch, GnuLinux
from pyprefab.model.platform.platform_registry import (
    UnknownPlatformError,
    find_platform,
    get_platform,
    platform_factories,
)
from pyprefab.package.domain.module_model import (
    InvalidDirectoryNameError,
    MissingArtifactIDError,
    MissingPlatformIDError,
    UnsupportedPlatformError,
)
from pyprefab.package.domain.package_model import Package, PackageLoadError


def test_builtin_platforms_are_registered():
    assert list(platform_factories()) == ["android", "gnulinux"]
    assert find_platform("windows") is None
    with pytest.raises(UnknownPlatformError, match="Unknown platform 'windows'"):
        get_platform("windows")


def test_load_package(package_tree):
    pkg_path = package_tree.package("foo", dependencies=["bar"], version="1.2")
    zlib = package_tree.module(pkg_path, "zlib", export_libraries=["-lz"])
    package_tree.android_library(zlib, "arm64-v8a", api=21, static=True)
    package_tree.android_library(zlib, "x86", api=16, directory_name="android.x86")
    package_tree.module(pkg_path, "headers")

    pkg = Package.load(pkg_path)

    assert pkg.name == "foo"
    assert pkg.dependencies == ["bar"]
    assert pkg.version == "1.2"
    assert pkg.schema_version is SchemaVersion.V2
    assert [m.name for m in pkg.modules] == ["headers", "zlib"]

    headers, zlib_module = pkg.modules
    assert headers.is_header_only
    assert headers.canonical_name == "//foo/headers"
    assert headers.include_path == pkg_path / "modules" / "headers" / "include"

    assert [lib.directory.name for lib in zlib_module.libraries] == ["android.arm64-v8a", "android.x86"]
    arm64, x86 = zlib_module.libraries
    assert arm64.platform == Android(abi=Abi.ARM64, api=21, stl=Stl.CXX_SHARED, ndk_major_version=21, is_static=True)
    assert arm64.path.name == "libzlib.a"
    assert arm64.is_static
    assert x86.platform.api == 16
    assert x86.path.name == "libzlib.so"
    assert all(lib.module is zlib_module for lib in zlib_module.libraries)


def test_load_schema_v1_package_infers_static(package_tree):
    pkg_path = package_tree.package("foo", schema_version=1)
    module = package_tree.module(pkg_path, "bar")
    package_tree.android_library(module, "arm64-v8a", static=None, file_static=True)
    package_tree.android_library(module, "x86", static=None, file_static=False)

    pkg = Package.load(pkg_path)

    arm64, x86 = pkg.modules[0].libraries
    assert arm64.is_static
    assert not x86.is_static


def test_load_gnulinux_library(package_tree):
    pkg_path = package_tree.package("foo")
    module = package_tree.module(pkg_path, "bar")
    package_tree.gnulinux_library(module, "amd64", "2.31")

    lib = Package.load(pkg_path).modules[0].libraries[0]
    assert isinstance(lib.platform, GnuLinux)
    assert lib.platform.arch is Arch.AMD64
    assert str(lib.platform.glibc_version) == "2.31"


def test_variant_include_directory_wins(package_tree):
    pkg_path = package_tree.package("foo")
    module = package_tree.module(pkg_path, "bar")
    lib_dir = package_tree.android_library(module, "arm64-v8a")
    (lib_dir / "include").mkdir()

    lib = Package.load(pkg_path).modules[0].libraries[0]
    assert lib.include_path == lib_dir / "include"


def test_library_name_override_selects_artifact(package_tree):
    pkg_path = package_tree.package("foo")
    module = package_tree.module(pkg_path, "bar", overrides={"android": {"library_name": "libbar_droid"}})
    package_tree.android_library(module, "arm64-v8a", library_name="libbar_droid")

    lib = Package.load(pkg_path).modules[0].libraries[0]
    assert lib.path.name == "libbar_droid.so"


@pytest.mark.parametrize(
    "directory_name, error",
    [
        ("android", InvalidDirectoryNameError),
        (".arm64-v8a", MissingPlatformIDError),
        ("android.", MissingArtifactIDError),
    ])
def test_malformed_library_directory_names(package_tree, directory_name, error):
    pkg_path = package_tree.package("foo")
    module = package_tree.module(pkg_path, "bar")
    (module / "libs" / directory_name).mkdir(parents=True)

    with pytest.raises(error, match="<platform ID>.<artifact ID>"):
        Package.load(pkg_path)


def test_unsupported_platform(package_tree):
    pkg_path = package_tree.package("foo")
    module = package_tree.module(pkg_path, "bar")
    (module / "libs" / "windows.x64").mkdir(parents=True)

    with pytest.raises(UnsupportedPlatformError) as exc_info:
        Package.load(pkg_path)
    assert str(exc_info.value) == '//foo/bar contains artifacts for an unsupported platform "windows"'


def test_missing_modules_directory(tmp_path):
    (tmp_path / "prefab.json").write_text('{"name": "foo", "schema_version": 2, "dependencies": []}')
    with pytest.raises(PackageLoadError, match="Unable to retrieve file list"):
        Package.load(tmp_path)


def test_unsupported_schema_version(package_tree):
    pkg_path = package_tree.package("foo", schema_version=3)
    with pytest.raises(ValueError, match="Package uses version 3"):
        Package.load(pkg_path)


def test_find_module(package_tree):
    pkg_path = package_tree.package("foo")
    package_tree.module(pkg_path, "bar")
    pkg = Package.load(pkg_path)
    assert pkg.find_module("bar") is pkg.modules[0]
    assert pkg.find_module("baz") is None
