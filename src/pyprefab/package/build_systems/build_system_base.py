from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import ClassVar

from pyprefab.model.platform.platform_model import PlatformIdentity
from pyprefab.package.audit.generation_event_model import EventType, LevelType, StageType, record_event
from pyprefab.package.domain.library_variant_model import LibraryVariant
from pyprefab.package.domain.module_model import Module
from pyprefab.package.domain.package_model import Package
from pyprefab.package.resolution.module_resolution import NoMatchingLibraryError


class UnsupportedRequirementsError(ValueError):
    """
    A build system cannot generate for the requested set of requirements.
    """


def sanitize_path(path: Path) -> str:
    """
    Renders a path with forward slashes, which build files expect on every
    host.
    """
    return str(path).replace("\\", "/")


class BuildSystem(ABC):
    """
    Generates the integration files of one build system for a set of
    packages.

    Modules with no library usable for a requirement are skipped with a
    warning in the audit log rather than failing the whole run.

    Attributes:
        name (ClassVar[str]): The build system name, as used by
            `--build-system`.
        precedence (ClassVar[int]): Ordering hint for plugin discovery. Lower
            values are listed first.
        output_directory (Path): Where files are generated.
        packages (list[Package]): The packages to generate for.
        outputs (list[Path]): The files written so far.
    """

    name: ClassVar[str]
    precedence: ClassVar[int] = 100

    def __init__(self, output_directory: Path, packages: Sequence[Package]):
        self.output_directory = Path(output_directory)
        self.packages = list(packages)
        self.outputs: list[Path] = []

    @abstractmethod
    def generate(self, requirements: Sequence[PlatformIdentity]) -> None:
        """
        Generates the build files for the given requirements.

        Args:
            requirements (Sequence[PlatformIdentity]): The user's
                requirements.

        Raises:
            UnsupportedRequirementsError: If the build system cannot generate
                for these requirements.
        """
        ...

    def prepare_output_directory(self) -> None:
        """
        Deletes and recreates the output directory.
        """
        if self.output_directory.exists():
            shutil.rmtree(self.output_directory)
        self.output_directory.mkdir(parents=True)

    def write_output(self, path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        self.outputs.append(path)
        record_event(
            StageType.GENERATE,
            EventType.OUTPUT,
            LevelType.DEBUG,
            substage=self.name,
            message=f"Wrote {path}")
        return path

    def resolve_library(self, module: Module, requirement: PlatformIdentity) -> LibraryVariant | None:
        """
        Resolves the library of a module, recording the outcome.

        Returns:
            LibraryVariant | None: The selected library, or None if the module
            has no usable library and should be skipped.

        Raises:
            ModuleInconsistencyError: If the module's variants are ambiguous.
        """
        try:
            library = module.get_library_for(requirement)
        except NoMatchingLibraryError as e:
            self.record_skip(module, requirement, e)
            return None
        record_event(
            StageType.GENERATE,
            EventType.RESOLVE,
            LevelType.DEBUG,
            substage=self.name,
            message=f"Selected {library.directory.name} for {module.canonical_name} ({requirement})")
        return library

    def record_skip(self, module: Module, requirement: PlatformIdentity, error: NoMatchingLibraryError) -> None:
        record_event(
            StageType.GENERATE,
            EventType.SKIP,
            LevelType.WARN,
            substage=self.name,
            message=f"Skipping {module.canonical_name} for {requirement}: {error}",
            payload={
                "module": module.canonical_name,
                "requirement": str(requirement),
                "rejections": error.rejection_payload(),
            })
