from __future__ import annotations

from collections.abc import Mapping, Sequence
from functools import cache
from pathlib import Path
from types import MappingProxyType

from pyprefab.helper.strategy_loader import load_plugin_classes
from pyprefab.package.build_systems.build_system_base import BuildSystem
from pyprefab.package.domain.package_model import Package
from pyprefab.package.errors import UnsupportedBuildSystemError

ENTRYPOINT_GROUP = "pyprefab.build_systems"
PACKAGE_NAME = __name__.rsplit(".", 1)[0]


@cache
def build_systems() -> Mapping[str, type[BuildSystem]]:
    """
    Returns the installed build systems keyed by name.

    Build systems are discovered once, from this package and from the
    `pyprefab.build_systems` entry point group.
    """
    classes = load_plugin_classes(
        base=BuildSystem,
        package_name=PACKAGE_NAME,
        entrypoint_group=ENTRYPOINT_GROUP)
    return MappingProxyType({cls.name: cls for cls in classes})


def create_build_system(name: str, output_directory: Path, packages: Sequence[Package]) -> BuildSystem:
    """
    Instantiates a build system by name.

    Raises:
        UnsupportedBuildSystemError: If no such build system is installed.
    """
    cls = build_systems().get(name)
    if cls is None:
        raise UnsupportedBuildSystemError(name, build_systems())
    return cls(output_directory, packages)
