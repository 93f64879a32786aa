# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
storekit.core.log
=================

Structured logging for the partition engine, built on stdlib `logging`:
- Context propagation via contextvars (partition_id, attempt, table).
- JSON formatter for cluster logs; human formatter for local runs.
- LoggerAdapter that accepts arbitrary keyword fields.
- Silent by default: library code installs only a NullHandler.
"""

import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, ClassVar, Final

__all__ = [
    "bind_context",
    "configure_from_env",
    "disable_stdout_logging",
    "enable_stdout_logging",
    "get_logger",
    "log_context",
    "set_level",
]

_ROOT_LOGGER_NAME = "storekit"

# ---------- Context ----------

_log_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "storekit_log_ctx", default=None
)


def _ctx_copy() -> dict[str, Any]:
    ctx = _log_context.get()
    return dict(ctx) if ctx else {}


def bind_context(**fields: Any) -> None:
    """Merge fields into the current structured log context (None values are dropped)."""
    ctx = _ctx_copy()
    ctx.update({k: v for k, v in fields.items() if v is not None})
    _log_context.set(ctx)


@contextmanager
def log_context(**fields: Any):
    """
    Temporarily add fields to the structured log context.
    Used by the partition runner to tag every record emitted while a partition is processed.
    """
    token = _log_context.set({**_ctx_copy(), **{k: v for k, v in fields.items() if v is not None}})
    try:
        yield
    finally:
        _log_context.reset(token)


# ---------- Formatters ----------

_STD_ATTRS: Final[frozenset[str]] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "asctime",
        "taskName",
    }
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, message, context and extras."""

    def __init__(self, *, include_stack: bool = False) -> None:
        super().__init__()
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=UTC)
        out: dict[str, Any] = {
            "ts": ts.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
        }
        msg = record.getMessage()
        if msg:
            out["message"] = msg

        ctx = _log_context.get()
        if ctx:
            out.update(ctx)

        for k, v in record.__dict__.items():
            if k in _STD_ATTRS or k in out:
                continue
            out[k] = v

        if record.exc_info:
            exc_type, exc, _ = record.exc_info
            out["error"] = {
                "type": exc_type.__name__ if exc_type else "Exception",
                "message": str(exc) if exc else None,
            }
            if self.include_stack:
                out["error"]["stack"] = self.formatException(record.exc_info)

        return json.dumps(out, ensure_ascii=False, separators=(",", ":"), default=str)


class HumanFormatter(logging.Formatter):
    """Compact formatter for local debugging; appends partition context when present."""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    _context_keys: ClassVar[tuple[str, ...]] = ("partition_id", "attempt", "table", "pid")

    def format(self, record: logging.LogRecord) -> str:
        s = f"{self.formatTime(record)} {record.levelname:<5} {record.name}: {record.getMessage()}"
        ctx = _log_context.get()
        if ctx:
            compact = {k: ctx[k] for k in self._context_keys if ctx.get(k) is not None}
            if compact:
                s += "  [" + ", ".join(f"{k}={v}" for k, v in compact.items()) + "]"
        if record.exc_info:
            s += "\n" + self.formatException(record.exc_info)
        return s


class ContextFilter(logging.Filter):
    """Copy contextvars into the record so handlers can route on them."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = _log_context.get()
        if ctx:
            for k, v in ctx.items():
                record.__dict__.setdefault(k, v)
        return True


class _KwExtraAdapter(logging.LoggerAdapter):
    """
    Moves unknown kwargs into `extra`, so call sites can write:
        log.info("flush done", event="mutations.flush", size=100)
    """

    _passthrough: ClassVar[frozenset[str]] = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

    def process(self, msg, kwargs):
        extra = kwargs.get("extra")
        if not isinstance(extra, dict):
            extra = {}
        for k in [k for k in kwargs if k not in self._passthrough]:
            key = f"field_{k}" if k in _STD_ATTRS else k
            extra.setdefault(key, kwargs.pop(k))
        kwargs["extra"] = extra
        return msg, kwargs


# ---------- Configuration ----------

_bootstrapped = False
_handler_name = "_storekit_stream_handler"


def _bootstrap_minimal() -> None:
    global _bootstrapped
    if _bootstrapped:
        return
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    if not any(isinstance(h, logging.NullHandler) for h in lg.handlers):
        lg.addHandler(logging.NullHandler())
    if not any(isinstance(f, ContextFilter) for f in lg.filters):
        lg.addFilter(ContextFilter())
    _bootstrapped = True


def get_logger(name: str | None = None) -> logging.LoggerAdapter:
    """Return a `storekit.<name>` logger adapter accepting keyword fields."""
    _bootstrap_minimal()
    base = logging.getLogger(_ROOT_LOGGER_NAME)
    lg = base.getChild(name) if name else base
    # logger filters do not run for records propagated from children
    if not any(isinstance(f, ContextFilter) for f in lg.filters):
        lg.addFilter(ContextFilter())
    return _KwExtraAdapter(lg, {})


def _coerce_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Invalid level name: {level!r}")
    return resolved


def set_level(level: int | str) -> None:
    logging.getLogger(_ROOT_LOGGER_NAME).setLevel(_coerce_level(level))


def enable_stdout_logging(
    *,
    level: int | str = logging.INFO,
    json_output: bool = True,
    include_stack: bool = False,
    pretty: bool = False,
) -> None:
    """Attach a stdout handler (replacing a previously attached one)."""
    lvl = _coerce_level(level)
    _bootstrap_minimal()
    disable_stdout_logging()

    fmt: logging.Formatter
    if pretty:
        fmt = HumanFormatter()
    elif json_output:
        fmt = JsonFormatter(include_stack=include_stack)
    else:
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    h = logging.StreamHandler(sys.stdout)
    h.set_name(_handler_name)
    h.setLevel(lvl)
    h.setFormatter(fmt)
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    lg.addHandler(h)
    lg.setLevel(min(lg.level or lvl, lvl))


def disable_stdout_logging() -> None:
    lg = logging.getLogger(_ROOT_LOGGER_NAME)
    for h in list(lg.handlers):
        if h.get_name() == _handler_name:
            lg.removeHandler(h)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


def configure_from_env() -> None:
    """
    Call once from executor bootstrap code or tests.
    Honors:
      - STOREKIT_LOG_STDOUT=1|true -> attach stdout handler
      - STOREKIT_LOG_LEVEL=DEBUG|INFO|...
      - STOREKIT_LOG_PRETTY=1 -> human formatter instead of JSON
      - STOREKIT_LOG_STACK=1 -> include stack traces in JSON
    """
    level = os.getenv("STOREKIT_LOG_LEVEL", "INFO")
    _bootstrap_minimal()
    set_level(level)
    if _env_flag("STOREKIT_LOG_STDOUT"):
        pretty = _env_flag("STOREKIT_LOG_PRETTY")
        enable_stdout_logging(
            level=level,
            json_output=not pretty,
            include_stack=_env_flag("STOREKIT_LOG_STACK"),
            pretty=pretty,
        )
    else:
        disable_stdout_logging()


_bootstrap_minimal()
