from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pyprefab.constants import INCLUDE_DIR

if TYPE_CHECKING:
    from pyprefab.model.platform.platform_model import PlatformIdentity
    from pyprefab.package.domain.module_model import Module


@dataclass(slots=True, frozen=True, eq=False)
class LibraryVariant:
    """
    One prebuilt library artifact of a module.

    Variants compare by identity: two directories with identical metadata
    are still two distinct variants.

    Attributes:
        path (Path): The library file (`.a` or `.so`).
        module (Module): The module the variant belongs to.
        platform (PlatformIdentity): The platform the library was built for.
    """
    path: Path
    module: Module
    platform: PlatformIdentity

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def include_path(self) -> Path:
        """
        The headers of this variant: its own `include` directory if it has
        one, otherwise the module's.
        """
        variant_include = self.directory / INCLUDE_DIR
        if variant_include.exists():
            return variant_include
        return self.module.include_path

    @property
    def is_static(self) -> bool:
        return self.platform.is_static

    def __repr__(self) -> str:
        return f"LibraryVariant({self.path}, {self.platform})"
