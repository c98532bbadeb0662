from __future__ import annotations

import datetime
import functools
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ParamSpec, TypeVar

from typing_extensions import Self

from pyprefab.helper.multiformat_model_mixin import MultiformatModelMixin
from pyprefab.package.context_vars import current_generation_plan

P = ParamSpec("P")
R = TypeVar("R")


# --------------------------------------------------------------------------- #
# Typed + runtime-safe event type definition
# --------------------------------------------------------------------------- #

class StageType(str, Enum):
    """
    The stages of a generation run.

    Attributes:
        LIFECYCLE (str): The overall orchestration, start to completion.
        INIT (str): Configuration loading and CLI handling.
        LOAD (str): Package discovery, metadata loading and migration.
        PLAN (str): Building the user's platform requirements.
        GENERATE (str): Module resolution and build-system file emission.
    """
    LIFECYCLE = "LIFECYCLE"
    INIT = "INIT"
    LOAD = "LOAD"
    PLAN = "PLAN"
    GENERATE = "GENERATE"


class LevelType(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class EventType(str, Enum):
    """
    The kinds of event recorded in the audit log.
    """
    ACTION = "ACTION"  # Meaningful step taken
    COMPLETE = "COMPLETE"  # Successfully finished
    DECISION = "DECISION"  # Conditional logic branch taken
    EXCEPTION = "EXCEPTION"  # Exception raised out of an audited stage
    FAIL = "FAIL"  # Run failed, unrecoverable
    INPUT = "INPUT"  # External input received or used
    OUTPUT = "OUTPUT"  # File written
    RESOLVE = "RESOLVE"  # Library selected for a module
    SKIP = "SKIP"  # Intentionally bypassed
    START = "START"  # Beginning of a stage or substage
    VALIDATION = "VALIDATION"  # Validation check performed


def audit(stage: StageType, substage: str | None = None) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator that records START, COMPLETE and EXCEPTION events for a
    function in the active GenerationPlan's audit log.

    Args:
        stage (StageType): The stage the events belong to.
        substage (str | None): Optional substage name.

    Returns:
        Callable[[Callable[P, R]], Callable[P, R]]: The decorator.

    Raises:
        RuntimeError: If the wrapped function is called with no
            GenerationPlan bound to the current context.
    """
    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            plan = current_generation_plan.get(None)
            if plan is None:
                raise RuntimeError("No active GenerationPlan in context for @audit-decorated function")

            plan.audit_log.append(
                GenerationEvent.make(
                    stage,
                    EventType.START,
                    substage=substage))

            try:
                result = fn(*args, **kwargs)
                plan.audit_log.append(
                    GenerationEvent.make(
                        stage,
                        EventType.COMPLETE,
                        substage=substage))
                return result
            except Exception as e:
                plan.audit_log.append(
                    GenerationEvent.make(
                        stage,
                        EventType.EXCEPTION,
                        LevelType.ERROR,
                        substage=substage,
                        message=str(e)))
                raise

        return wrapper

    return decorator


def record_event(
        stage: StageType,
        event_type: EventType,
        level: LevelType = LevelType.INFO,
        *,
        substage: str | None = None,
        message: str | None = None,
        payload: dict[str, Any] | None = None) -> GenerationEvent | None:
    """
    Appends an event to the active GenerationPlan, if there is one.

    Library code that may run outside a generation run (for example from
    tests or a third-party caller) uses this instead of requiring a plan.

    Returns:
        GenerationEvent | None: The recorded event, or None if no plan is
        bound.
    """
    plan = current_generation_plan.get(None)
    if plan is None:
        return None
    event = GenerationEvent.make(stage, event_type, level, substage=substage, message=message, payload=payload)
    plan.audit_log.append(event)
    return event


# --------------------------------------------------------------------------- #
# Data model
# --------------------------------------------------------------------------- #

@dataclass(slots=True, frozen=True)
class GenerationEvent(MultiformatModelMixin):
    """
    One entry of the audit log.

    Attributes:
        event_id (str): Unique identifier for the event.
        event_type (EventType): What happened.
        level (LevelType): Severity of the event.
        message (str | None): Optional human-readable description.
        payload (Mapping[str, Any] | None): Optional structured details.
        stage (StageType | None): The stage the event belongs to.
        substage (str | None): Optional substage name.
        timestamp (datetime.datetime): When the event happened (UTC).
    """
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: EventType = EventType.ACTION
    level: LevelType = LevelType.INFO
    message: str | None = field(default=None)
    payload: Mapping[str, Any] | None = field(default=None)
    stage: StageType | None = None
    substage: str | None = field(default=None)
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc))

    def __post_init__(self):
        if not isinstance(self.stage, StageType):
            raise TypeError("GenerationEvent.stage must be a StageType")
        if not isinstance(self.event_type, EventType):
            raise TypeError("GenerationEvent.event_type must be an EventType")
        if not isinstance(self.level, LevelType):
            raise TypeError("GenerationEvent.level must be a LevelType")

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "level": self.level.value,
            "message": self.message or "",
            "payload": dict(self.payload or {}),
            "stage": self.stage.value if self.stage else None,
            "substage": self.substage or "",
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def make(
            cls,
            stage: StageType,
            event_type: EventType,
            level: LevelType = LevelType.INFO,
            *,
            substage: str | None = None,
            message: str | None = None,
            payload: dict[str, Any] | None = None) -> GenerationEvent:
        """
        Creates an event with a read-only payload.

        Args:
            stage: The stage the event belongs to.
            event_type: What happened.
            level: Severity. Defaults to LevelType.INFO.
            substage: Optional substage name.
            message: Optional description.
            payload: Optional structured details.

        Returns:
            GenerationEvent: The new event.
        """
        frozen_payload = MappingProxyType(dict(payload or {}))
        return cls(
            stage=stage,
            substage=substage,
            event_type=event_type,
            level=level,
            message=message,
            payload=frozen_payload)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        return cls(
            event_id=mapping.get("event_id", str(uuid.uuid4())),
            event_type=EventType(mapping.get("event_type", EventType.ACTION.value)),
            level=LevelType(mapping.get("level", LevelType.INFO.value)),
            message=mapping.get("message"),
            payload=mapping.get("payload"),
            stage=StageType(mapping.get("stage", StageType.LIFECYCLE.value)),
            substage=mapping.get("substage"),
            timestamp=datetime.datetime.fromisoformat(
                mapping.get("timestamp", datetime.datetime.now(datetime.timezone.utc).isoformat())))
