from __future__ import annotations

import datetime
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from typing_extensions import Self

from pyprefab.helper.multiformat_model_mixin import MultiformatModelMixin

if TYPE_CHECKING:
    from pyprefab.package.audit.generation_event_model import GenerationEvent


@dataclass(kw_only=True)
class GenerationPlan(MultiformatModelMixin):
    """
    The record of one generation run.

    The plan is bound to the current context for the duration of a run so
    that audited stages can append events without it being passed around.

    Attributes:
        audit_log (list[GenerationEvent]): Events recorded during the run.
        created_at (datetime.datetime): When the run started (UTC).
        pyprefab_version (str | None): The version of pyprefab performing the
            run.
        build_system (str | None): The build system that was generated for.
        packages (list[str]): Names of the loaded packages.
        outputs (list[Path]): Files written by the build system.
    """
    audit_log: list[GenerationEvent] = field(default_factory=list)
    created_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc))
    pyprefab_version: str | None = None
    build_system: str | None = None
    packages: list[str] = field(default_factory=list)
    outputs: list[Path] = field(default_factory=list)

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "audit_log": [e.to_mapping() for e in self.audit_log],
            "created_at": self.created_at.isoformat(),
            "pyprefab_version": self.pyprefab_version,
            "build_system": self.build_system,
            "packages": list(self.packages),
            "outputs": [str(p) for p in self.outputs],
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        from pyprefab.package.audit.generation_event_model import GenerationEvent

        created_at = mapping.get("created_at")
        return cls(
            audit_log=[GenerationEvent.from_mapping(e) for e in mapping.get("audit_log") or []],
            created_at=(
                datetime.datetime.fromisoformat(created_at)
                if created_at else datetime.datetime.now(datetime.timezone.utc)),
            pyprefab_version=mapping.get("pyprefab_version"),
            build_system=mapping.get("build_system"),
            packages=list(mapping.get("packages") or []),
            outputs=[Path(p) for p in mapping.get("outputs") or []])
