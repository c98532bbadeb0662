import logging
import sys

from pyprefab.package.audit.generation_event_model import GenerationEvent, LevelType
from pyprefab.package.generation_plan import GenerationPlan

AUDIT_LOGGER_NAME = "pyprefab.audit"

_LEVELS = {
    LevelType.DEBUG: logging.DEBUG,
    LevelType.INFO: logging.INFO,
    LevelType.WARN: logging.WARNING,
    LevelType.ERROR: logging.ERROR,
}


def to_logging_level(level: LevelType | str) -> int:
    """
    Converts an event level to the matching `logging` level.

    Args:
        level (LevelType | str): The event level, as a member or its value.

    Returns:
        int: The logging level. Unknown values map to INFO.
    """
    if isinstance(level, LevelType):
        return _LEVELS[level]
    try:
        return _LEVELS[LevelType(level.upper())]
    except ValueError:
        return logging.INFO


def format_event(event: GenerationEvent) -> str:
    stage = event.stage.value if event.stage else "-"
    where = f"{stage}/{event.substage}" if event.substage else stage
    text = f"[{event.level.value}] {where} {event.event_type.value}"
    if event.message:
        text += f": {event.message}"
    return text


def emit_event(logger: logging.Logger, event: GenerationEvent, fmt: str = "text", indent: int = 2) -> None:
    """
    Logs one event at the logging level derived from its level.

    Args:
        logger (logging.Logger): The audit logger.
        event (GenerationEvent): The event to emit.
        fmt (str): "text" for a one-line summary or "json" for the full
            record. Defaults to "text".
        indent (int): JSON indentation. Defaults to 2.
    """
    message = event.to_json(indent=indent) if fmt == "json" else format_event(event)
    logger.log(to_logging_level(event.level), message)


def emit_all(logger: logging.Logger, events: list[GenerationEvent], fmt: str = "text", indent: int = 2) -> None:
    for event in events:
        emit_event(logger, event, fmt=fmt, indent=indent)


def configure_emitter(dest: list[str], level: int = logging.WARNING) -> logging.Logger:
    """
    Configures the audit logger. Existing handlers are replaced.

    Args:
        dest (list[str]): Destinations for the audit log:
            - "stdout": standard output.
            - "stderr": standard error.
            - "file:<path>": the file at <path>.
        level (int, optional): The minimum level emitted. Defaults to
            `logging.WARNING`.

    Returns:
        logging.Logger: The configured logger.

    Raises:
        ValueError: If a destination is not recognized.
    """
    logger = logging.getLogger(AUDIT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    close_emitter(logger)

    for d in dest:
        handler: logging.Handler
        if d == "stdout":
            handler = logging.StreamHandler(sys.stdout)
        elif d == "stderr":
            handler = logging.StreamHandler(sys.stderr)
        elif d.startswith("file:") and len(d) > len("file:"):
            handler = logging.FileHandler(d[len("file:"):], encoding="utf-8")
        else:
            raise ValueError(f"Unknown audit log destination: {d}")

        handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(handler)

    return logger


def close_emitter(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def emit_audit_log(plan: GenerationPlan, dest: str = "stderr", verbose: bool = False) -> None:
    """
    Emits the audit log of a generation run.

    Warnings and errors are always emitted; everything else only when
    `verbose` is set. File destinations receive full JSON records, streams
    receive one-line summaries. Handlers are closed once the log is written.

    Args:
        plan (GenerationPlan): The plan whose audit log is emitted.
        dest (str): Space-separated destinations (see `configure_emitter`).
            Defaults to "stderr".
        verbose (bool): Emit DEBUG and INFO events too.

    Raises:
        ValueError: If a destination is unknown.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    for d in dest.split():
        logger = configure_emitter([d], level)
        try:
            emit_all(logger, plan.audit_log, fmt="json" if d.startswith("file:") else "text")
        finally:
            close_emitter(logger)
