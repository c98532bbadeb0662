import pytest

from pyprefab.model.platform.android_model import Abi, Android, Stl
from pyprefab.model.platform.gnulinux_model import Arch, GnuLinux, parse_glibc_version
from pyprefab.package.audit.generation_event_model import EventType
from pyprefab.package.build_systems.build_system_base import UnsupportedRequirementsError
from pyprefab.package.build_systems.ndk_build_system import DuplicateModuleNameError, NdkBuildSystem
from pyprefab.package.domain.package_model import Package
from pyprefab.package.resolution.reference_resolver import UnresolvedLibraryReferenceError


def _requirement(abi: Abi) -> Android:
    return Android(abi=abi, api=21, stl=Stl.CXX_SHARED, ndk_major_version=21)


@pytest.fixture
def packages(package_tree):
    foo_path = package_tree.package("foo", dependencies=["qux"])
    bar = package_tree.module(foo_path, "bar", export_libraries=["-llog", ":baz", "//qux:qux_lib"])
    package_tree.android_library(bar, "arm64-v8a")
    package_tree.android_library(bar, "x86", static=True)
    package_tree.module(foo_path, "baz")

    qux_path = package_tree.package("qux")
    qux_lib = package_tree.module(qux_path, "qux_lib")
    package_tree.android_library(qux_lib, "arm64-v8a", static=True)
    package_tree.android_library(qux_lib, "x86")

    return [Package.load(foo_path), Package.load(qux_path)]


def test_android_mk(tmp_path, packages):
    out = tmp_path / "out"
    NdkBuildSystem(out, packages).generate([_requirement(Abi.ARM64), _requirement(Abi.X86)])

    foo = packages[0]
    bar = foo.path / "modules" / "bar"
    baz = foo.path / "modules" / "baz"
    assert (out / "foo" / "Android.mk").read_text() == (
        "LOCAL_PATH := $(call my-dir)\n\n"
        "ifeq ($(TARGET_ARCH_ABI),arm64-v8a)\n\n"
        "include $(CLEAR_VARS)\n"
        "LOCAL_MODULE := bar\n"
        f"LOCAL_SRC_FILES := {bar}/libs/android.arm64-v8a/libbar.so\n"
        f"LOCAL_EXPORT_C_INCLUDES := {bar}/include\n"
        "LOCAL_EXPORT_SHARED_LIBRARIES :=\n"
        "LOCAL_EXPORT_STATIC_LIBRARIES := baz qux_lib\n"
        "LOCAL_EXPORT_LDLIBS := -llog\n"
        "include $(PREBUILT_SHARED_LIBRARY)\n\n"
        "include $(CLEAR_VARS)\n"
        "LOCAL_MODULE := baz\n"
        f"LOCAL_EXPORT_C_INCLUDES := {baz}/include\n"
        "LOCAL_EXPORT_SHARED_LIBRARIES :=\n"
        "LOCAL_EXPORT_STATIC_LIBRARIES :=\n"
        "LOCAL_EXPORT_LDLIBS :=\n"
        "include $(BUILD_STATIC_LIBRARY)\n\n"
        "endif  # arm64-v8a\n\n"
        "ifeq ($(TARGET_ARCH_ABI),x86)\n\n"
        "include $(CLEAR_VARS)\n"
        "LOCAL_MODULE := bar\n"
        f"LOCAL_SRC_FILES := {bar}/libs/android.x86/libbar.a\n"
        f"LOCAL_EXPORT_C_INCLUDES := {bar}/include\n"
        "LOCAL_EXPORT_SHARED_LIBRARIES := qux_lib\n"
        "LOCAL_EXPORT_STATIC_LIBRARIES := baz\n"
        "LOCAL_EXPORT_LDLIBS := -llog\n"
        "include $(PREBUILT_STATIC_LIBRARY)\n\n"
        "include $(CLEAR_VARS)\n"
        "LOCAL_MODULE := baz\n"
        f"LOCAL_EXPORT_C_INCLUDES := {baz}/include\n"
        "LOCAL_EXPORT_SHARED_LIBRARIES :=\n"
        "LOCAL_EXPORT_STATIC_LIBRARIES :=\n"
        "LOCAL_EXPORT_LDLIBS :=\n"
        "include $(BUILD_STATIC_LIBRARY)\n\n"
        "endif  # x86\n\n"
        "$(call import-module,prefab/qux)\n")
    assert (out / "qux" / "Android.mk").exists()


def test_module_without_usable_library_is_skipped(tmp_path, packages, generation_plan):
    out = tmp_path / "out"
    NdkBuildSystem(out, packages).generate([_requirement(Abi.X86_64)])

    text = (out / "foo" / "Android.mk").read_text()
    assert "LOCAL_MODULE := bar\n" not in text
    assert "LOCAL_MODULE := baz\n" in text

    skipped = [e.payload["module"] for e in generation_plan.audit_log if e.event_type is EventType.SKIP]
    assert skipped == ["//foo/bar", "//qux/qux_lib"]


def test_unusable_referred_module_skips_the_referring_module(tmp_path, package_tree, generation_plan):
    foo_path = package_tree.package("foo")
    bar = package_tree.module(foo_path, "bar", export_libraries=[":baz"])
    package_tree.android_library(bar, "x86")
    baz = package_tree.module(foo_path, "baz")
    package_tree.android_library(baz, "arm64-v8a")
    out = tmp_path / "out"

    NdkBuildSystem(out, [Package.load(foo_path)]).generate([_requirement(Abi.X86)])

    assert "LOCAL_MODULE" not in (out / "foo" / "Android.mk").read_text()
    skipped = [e.payload["module"] for e in generation_plan.audit_log if e.event_type is EventType.SKIP]
    assert skipped == ["//foo/bar", "//foo/baz"]


def test_unresolved_reference_is_fatal(tmp_path, package_tree):
    foo_path = package_tree.package("foo")
    package_tree.module(foo_path, "bar", export_libraries=["//missing:lib"])

    with pytest.raises(UnresolvedLibraryReferenceError):
        NdkBuildSystem(tmp_path / "out", [Package.load(foo_path)]).generate([_requirement(Abi.X86)])


def test_duplicate_module_names_are_rejected(tmp_path, package_tree):
    first = package_tree.package("foo")
    package_tree.module(first, "common")
    second = package_tree.package("bar")
    package_tree.module(second, "common")

    with pytest.raises(DuplicateModuleNameError, match="ndk-build does not support fully qualified module names"):
        NdkBuildSystem(tmp_path / "out", [Package.load(first), Package.load(second)]).generate(
            [_requirement(Abi.X86)])


def test_non_android_requirements_are_rejected(tmp_path, packages):
    requirement = GnuLinux(arch=Arch.AMD64, glibc_version=parse_glibc_version("2.31"))
    with pytest.raises(UnsupportedRequirementsError, match="ndk-build only supports Android targets"):
        NdkBuildSystem(tmp_path / "out", packages).generate([requirement])
