"""Logging setup for the chat client.

The terminal belongs to the prompt, so records go to a rotating file (and to
stderr only on request). Call sites log short event names through
`log_event`; `log_context` tags everything logged inside a block, typically
with the session a command works on.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping

from chatterm.paths import log_dir

DEFAULT_LOG_FILE = "chatterm.log"
DEFAULT_LOG_MAX_BYTES = 5_000_000
DEFAULT_LOG_BACKUPS = 3
# Field values longer than this are cut; message bodies never land in logs whole.
MAX_FIELD_CHARS = 300

QUIET_LOGGERS = ("httpx", "httpcore")

_LOG_CONTEXT: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar("chatterm_log_context", default={})
_STREAM_EVENTS = False

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class LogConfig:
    log_file: Path
    level: int = logging.INFO
    stderr: bool = False
    json: bool = False
    stream_events: bool = False
    max_bytes: int = DEFAULT_LOG_MAX_BYTES
    backup_count: int = DEFAULT_LOG_BACKUPS
    logger_levels: Dict[str, int] = field(default_factory=dict)


def build_log_config(
    env: Mapping[str, str] | None = None,
    *,
    log_file_name: str = DEFAULT_LOG_FILE,
    default_level: int = logging.INFO,
) -> LogConfig:
    """Read `CHATTERM_LOG_*` settings; invalid values keep their defaults."""
    env = os.environ if env is None else env

    def flag(name: str) -> bool:
        return (env.get(name) or "").strip().lower() in _TRUTHY

    def number(name: str, default: int) -> int:
        with contextlib.suppress(ValueError):
            return int(env.get(name) or default)
        return default

    level_name = (env.get("CHATTERM_LOG_LEVEL") or "").strip()
    if level_name.isdigit():
        level = int(level_name)
    else:
        level = logging._nameToLevel.get(level_name.upper(), default_level)

    directory = Path(env["CHATTERM_LOG_DIR"]) if env.get("CHATTERM_LOG_DIR") else log_dir()
    directory.mkdir(parents=True, exist_ok=True)

    return LogConfig(
        log_file=directory / log_file_name,
        level=level,
        stderr=flag("CHATTERM_LOG_STDERR"),
        json=flag("CHATTERM_LOG_JSON"),
        stream_events=flag("CHATTERM_LOG_STREAM_EVENTS"),
        max_bytes=number("CHATTERM_LOG_MAX_BYTES", DEFAULT_LOG_MAX_BYTES),
        backup_count=number("CHATTERM_LOG_BACKUPS", DEFAULT_LOG_BACKUPS),
        logger_levels={name: logging.WARNING for name in QUIET_LOGGERS},
    )


def configure_logging(config: LogConfig) -> None:
    """Install handlers on the root logger, replacing any from an earlier call."""
    global _STREAM_EVENTS
    _STREAM_EVENTS = config.stream_events

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(config.level)

    formatter: logging.Formatter = (
        JsonFormatter() if config.json else ContextFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            config.log_file,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    ]
    if config.stderr:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
        root.addHandler(handler)

    for name, level in config.logger_levels.items():
        logging.getLogger(name).setLevel(level)


def stream_events_logged() -> bool:
    """Whether every server-sent event is logged (noisy; off unless asked for)."""
    return _STREAM_EVENTS


@contextlib.contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    current = _LOG_CONTEXT.get()
    token = _LOG_CONTEXT.set({**current, **{k: v for k, v in fields.items() if v is not None}})
    try:
        yield
    finally:
        _LOG_CONTEXT.reset(token)


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    logger.log(level, event, extra={"event_fields": fields})


def _clip(text: str) -> str:
    if len(text) <= MAX_FIELD_CHARS:
        return text
    return f"{text[:MAX_FIELD_CHARS]}...(+{len(text) - MAX_FIELD_CHARS})"


def _render(value: Any) -> str:
    if isinstance(value, (dict, list, tuple)):
        return _clip(json.dumps(value, ensure_ascii=True, separators=(",", ":"), default=str))
    text = _clip(str(value))
    if text == "":
        return '""'
    if any(ch.isspace() or ch in '="' for ch in text):
        return json.dumps(text)
    return text


def _pairs(fields: Mapping[str, Any]) -> str:
    return " ".join(f"{key}={_render(fields[key])}" for key in sorted(fields) if fields[key] is not None)


class ContextFilter(logging.Filter):
    """Copy the active `log_context` fields onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 - logging API name
        record.context_fields = dict(_LOG_CONTEXT.get())
        if not hasattr(record, "event_fields"):
            record.event_fields = {}
        return True


class ContextFormatter(logging.Formatter):
    """`<base line> key=value ...` with context fields before event fields."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        tail = " ".join(
            part
            for part in (
                _pairs(getattr(record, "context_fields", {})),
                _pairs(getattr(record, "event_fields", {})),
            )
            if part
        )
        return f"{base} {tail}" if tail else base


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        context = getattr(record, "context_fields", {})
        fields = getattr(record, "event_fields", {})
        if context:
            payload["context"] = context
        if fields:
            payload["fields"] = {key: _clip(value) if isinstance(value, str) else value for key, value in fields.items()}
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)
