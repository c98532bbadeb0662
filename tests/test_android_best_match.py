import pytest

from pyprefab.model.platform.android_model import Abi, Android, Stl
from pyprefab.model.platform.platform_model import (
    AmbiguousLibraryMatchError,
    ModuleInconsistencyError,
    VariantCoverageGapError,
    find_best_match,
)

from conftest import add_android_variant, make_module


def _requirement(api: int = 21, ndk: int = 21) -> Android:
    return Android(abi=Abi.ARM64, api=api, stl=Stl.CXX_SHARED, ndk_major_version=ndk)


@pytest.fixture
def api_module():
    module = make_module("bar", "foo")
    for api in (21, 23, 24, 28):
        add_android_variant(module, f"android.api{api}", api=api)
    return module


def _by_directory(module, name):
    return next(lib for lib in module.libraries if lib.directory.name == name)


def test_single_library_is_returned(api_module):
    lollipop = _by_directory(api_module, "android.api21")
    assert _requirement(21).find_best_match([lollipop]) is lollipop


@pytest.mark.parametrize(
    "user_api, expected",
    [
        (23, "android.api23"),
        (24, "android.api24"),
        (26, "android.api24"),
        (28, "android.api28"),
        (29, "android.api28"),
    ])
def test_highest_usable_api_level_wins(api_module, user_api, expected):
    requirement = _requirement(user_api)
    usable = [lib for lib in api_module.libraries if lib.platform.api <= user_api]
    assert requirement.find_best_match(usable) is _by_directory(api_module, expected)


def test_module_level_best_match_delegates_to_requirement(api_module):
    usable = api_module.libraries[:2]
    assert find_best_match(_requirement(23), usable) is _by_directory(api_module, "android.api23")


@pytest.fixture
def ndk_module():
    module = make_module("bar", "foo")
    for ndk in (18, 19, 20, 21):
        add_android_variant(module, f"android.ndk{ndk}", ndk=ndk)
    return module


@pytest.mark.parametrize(
    "user_ndk, expected",
    [
        (17, "android.ndk18"),
        (18, "android.ndk18"),
        (19, "android.ndk19"),
        (20, "android.ndk20"),
        (21, "android.ndk21"),
        (22, "android.ndk21"),
    ])
def test_ndk_version_is_clamped_to_available_range(ndk_module, user_ndk, expected):
    match = _requirement(ndk=user_ndk).find_best_match(ndk_module.libraries)
    assert match is _by_directory(ndk_module, expected)


def test_api_level_is_preferred_over_ndk_version():
    module = make_module("bar", "foo")
    add_android_variant(module, "android.old", api=21, ndk=21)
    newer = add_android_variant(module, "android.new", api=24, ndk=18)
    assert _requirement(api=24, ndk=21).find_best_match(module.libraries) is newer


def test_gap_in_ndk_coverage_is_an_error():
    module = make_module("bar", "foo")
    add_android_variant(module, "android.ndk19", ndk=19)
    add_android_variant(module, "android.ndk21", ndk=21)

    with pytest.raises(VariantCoverageGapError) as exc_info:
        _requirement(ndk=20).find_best_match(module.libraries)
    assert str(exc_info.value) == (
        "//foo/bar contains a library per NDK version but no match was found for 20")
    assert isinstance(exc_info.value, ModuleInconsistencyError)


def test_identical_variants_are_ambiguous():
    module = make_module("bar", "foo")
    first = add_android_variant(module, "android.first")
    second = add_android_variant(module, "android.second")

    with pytest.raises(AmbiguousLibraryMatchError) as exc_info:
        _requirement().find_best_match(module.libraries)
    assert exc_info.value.directories == [first.directory, second.directory]
    assert str(exc_info.value).startswith(
        "Unable to resolve a single library match for //foo/bar. The following "
        "libraries are redundant:\n")


def test_empty_library_list_is_rejected():
    with pytest.raises(ValueError, match="libraries must be non-empty"):
        _requirement().find_best_match([])


def test_incompatible_library_is_rejected():
    module = make_module()
    lib = add_android_variant(module, "android.x86", abi=Abi.X86)
    with pytest.raises(ValueError, match="all libraries must be compatible"):
        _requirement().find_best_match([lib])


def test_libraries_from_different_modules_are_rejected():
    first = add_android_variant(make_module("a"), "android.arm64-v8a")
    second = add_android_variant(make_module("b"), "android.arm64-v8a")
    with pytest.raises(ValueError, match="all libraries must belong to the same module"):
        _requirement().find_best_match([first, second])
