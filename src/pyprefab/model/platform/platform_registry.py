from __future__ import annotations

from collections.abc import Mapping
from functools import cache
from types import MappingProxyType

from pyprefab.helper.strategy_loader import load_plugin_classes
from pyprefab.model.platform.platform_model import PlatformFactory

ENTRYPOINT_GROUP = "pyprefab.platforms"
PACKAGE_NAME = __name__.rsplit(".", 1)[0]


class UnknownPlatformError(ValueError):
    def __init__(self, identifier: str, known: list[str]):
        self.identifier = identifier
        super().__init__(f"Unknown platform {identifier!r}; expected one of: {', '.join(known)}")


@cache
def platform_factories() -> Mapping[str, PlatformFactory]:
    """
    Returns the installed platform factories keyed by platform identifier.

    Factories are discovered once, from this package and from the
    `pyprefab.platforms` entry point group. The returned table is read-only.

    Returns:
        Mapping[str, PlatformFactory]: The factories in precedence order.
    """
    classes = load_plugin_classes(
        base=PlatformFactory,
        package_name=PACKAGE_NAME,
        entrypoint_group=ENTRYPOINT_GROUP,
        name_attr="identifier")
    return MappingProxyType({cls.identifier: cls() for cls in classes})


def find_platform(identifier: str) -> PlatformFactory | None:
    return platform_factories().get(identifier)


def get_platform(identifier: str) -> PlatformFactory:
    """
    Returns the factory for a platform identifier.

    Raises:
        UnknownPlatformError: If no such platform is installed.
    """
    factory = find_platform(identifier)
    if factory is None:
        raise UnknownPlatformError(identifier, list(platform_factories()))
    return factory
