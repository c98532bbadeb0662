from __future__ import annotations

from pathlib import Path

from pyprefab.constants import SHARED_LIBRARY_SUFFIX, STATIC_LIBRARY_SUFFIX


class LibraryFileError(RuntimeError):
    """
    A library directory does not contain exactly one library artifact.
    """


def find_library_file(directory: Path, name: str) -> Path:
    """
    Finds the single library artifact for `name` in a library directory.

    The directory must contain exactly one of `<name>.a` and `<name>.so`.

    Args:
        directory (Path): The library directory to search.
        name (str): The library name without extension, e.g. `libfoo`.

    Returns:
        Path: The path to the artifact.

    Raises:
        LibraryFileError: If neither or both artifacts exist.
    """
    directory = Path(directory)
    found = [
        candidate
        for candidate in (
            directory / f"{name}{STATIC_LIBRARY_SUFFIX}",
            directory / f"{name}{SHARED_LIBRARY_SUFFIX}")
        if candidate.is_file()
    ]
    if len(found) > 1:
        raise LibraryFileError(f"Prebuilt directory contains multiple library artifacts: {directory}")
    if not found:
        raise LibraryFileError(f"Prebuilt directory contains no library artifacts: {directory}")
    return found[0]


def library_path_for(directory: Path, name: str, is_static: bool) -> Path:
    suffix = STATIC_LIBRARY_SUFFIX if is_static else SHARED_LIBRARY_SUFFIX
    return Path(directory) / f"{name}{suffix}"


def is_static_library(path: Path) -> bool:
    return Path(path).suffix == STATIC_LIBRARY_SUFFIX
