"""
Structured logging for ollama-stream.

Every record can carry keyword fields, and records emitted while a chat call
is running also carry the call's request id, model and current attempt.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, ClassVar


class LogLevel(str, Enum):
    """Log levels accepted by StreamLogger.configure."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"

    def to_logging_level(self) -> int:
        return logging.getLevelName(self.value)


@dataclass
class LogContext:
    """Fields identifying the chat call a record belongs to.

    Attributes:
        request_id: Client-generated id of the logical call
        model: Model name
        attempt: Current transport attempt (1-based)
    """

    request_id: str | None = None
    model: str | None = None
    attempt: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


_current_context: ContextVar[LogContext | None] = ContextVar(
    "ollama_stream_log_context", default=None
)


def get_log_context() -> LogContext:
    """Return a copy of the active context; changes need set_log_context."""
    context = _current_context.get()
    return replace(context) if context is not None else LogContext()


def set_log_context(context: LogContext) -> None:
    _current_context.set(replace(context))


def clear_log_context() -> None:
    _current_context.set(None)


def _record_fields(record: logging.LogRecord, with_context: bool) -> dict[str, Any]:
    fields = get_log_context().to_dict() if with_context else {}
    fields.update(getattr(record, "extra_fields", {}))
    return fields


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with call context nested under "context"."""

    def __init__(self, include_timestamp: bool = True) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S")
        self._include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self._include_timestamp:
            entry["timestamp"] = self.formatTime(record, self.datefmt)

        context = get_log_context().to_dict()
        if context:
            entry["context"] = context
        entry.update(_record_fields(record, with_context=False))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Pipe-separated text with trailing key=value fields."""

    def __init__(self, include_context: bool = True) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
        self._include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _record_fields(record, with_context=self._include_context)
        if not fields:
            return line
        return line + " | " + " ".join(f"{key}={value}" for key, value in fields.items())


class StreamLogger:
    """Package logger accepting structured keyword fields.

    Example:
        >>> logger = StreamLogger.get_logger("ollama_stream.client")
        >>> logger.info("Starting chat stream attempt", attempt=1)
    """

    _loggers: ClassVar[dict[str, logging.Logger]] = {}
    _level: ClassVar[LogLevel] = LogLevel.INFO
    _handler: ClassVar[logging.Handler | None] = None

    @classmethod
    def configure(
        cls,
        level: LogLevel | str = LogLevel.INFO,
        format: str = "text",
        stream: Any = None,
    ) -> None:
        """Send package records to a stream instead of the root logger.

        Args:
            level: Log level
            format: 'json' or 'text'
            stream: Output stream (default: stderr)
        """
        cls._level = LogLevel(level.upper()) if isinstance(level, str) else level
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(JsonFormatter() if format == "json" else TextFormatter())
        cls._handler = handler
        for logger in cls._loggers.values():
            cls._attach(logger)

    @classmethod
    def reset(cls) -> None:
        """Drop the configured handler and let records propagate again."""
        handler, cls._handler = cls._handler, None
        cls._level = LogLevel.INFO
        for logger in cls._loggers.values():
            if handler is not None:
                logger.removeHandler(handler)
            logger.setLevel(cls._level.to_logging_level())
            logger.propagate = True

    @classmethod
    def _attach(cls, logger: logging.Logger) -> None:
        logger.setLevel(cls._level.to_logging_level())
        if cls._handler is not None:
            logger.handlers = [cls._handler]
            logger.propagate = False

    @classmethod
    def get_logger(cls, name: str) -> StreamLogger:
        if name not in cls._loggers:
            cls._loggers[name] = logging.getLogger(name)
            cls._attach(cls._loggers[name])
        return cls(cls._loggers[name])

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, fields: dict[str, Any]) -> None:
        self._logger.log(level, msg, extra={"extra_fields": fields} if fields else None)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, fields)


def get_logger(name: str) -> StreamLogger:
    """Get a package logger by dotted name."""
    return StreamLogger.get_logger(name)
