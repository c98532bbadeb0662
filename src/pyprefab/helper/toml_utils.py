from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomli
import tomli_w


def load_toml_file(path: str | Path) -> dict[str, Any]:
    """
    Loads and parses a TOML file.

    Args:
        path (str | Path): The path to the TOML file.

    Returns:
        dict[str, Any]: The parsed document.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file content is not valid TOML.
    """
    p = Path(path)
    with open(p, "rb") as f:
        try:
            return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ValueError(f"Malformed TOML in {p}: {e}") from e


def load_toml_text(text: str, source: str = "<inline>") -> dict[str, Any]:
    """
    Parses a TOML formatted string.

    Args:
        text (str): The TOML text.
        source (str): A description of where the text came from, used in the
            error message. Defaults to "<inline>".

    Returns:
        dict[str, Any]: The parsed document.

    Raises:
        ValueError: If the text is not valid TOML.
    """
    try:
        return tomli.loads(text)
    except tomli.TOMLDecodeError as e:
        raise ValueError(f"Malformed TOML in {source}: {e}") from e


def dump_toml_to_file(data: Mapping[str, Any], path: str | Path) -> Path:
    """
    Writes the TOML representation of a mapping to a file, creating parent
    directories as needed.

    Args:
        data (Mapping[str, Any]): The data to serialize.
        path (str | Path): The destination file.

    Returns:
        Path: The resolved path that was written.
    """
    p = Path(path).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(tomli_w.dumps(data), encoding="utf-8")
    return p
