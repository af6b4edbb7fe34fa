"""
lightclient.logging
-------------------

Structured logging with:
- JSON or concise colored text formats
- Context-local fields via `contextvars` (network, block, component, run_id)
- Safe JSON serialization (bytes → hex, dataclasses → dicts)
- Simple, dependency-free setup (stdlib only)

Usage
-----
    from lightclient import logging as lclog

    lclog.configure(json=False, level="INFO")  # once at process start
    log = lclog.get_logger(__name__)

    with lclog.context_scope(network="Turing"):
        lclog.bind(block=1234)
        log.info("block admitted", extra={"cells": 8})

The pipeline binds `network` per run and `block` per processed block, so
every line emitted while a block is verifying carries both.
"""

from __future__ import annotations

import datetime as _dt
import io
import json
import logging
import os
import sys
import traceback
import types
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

# ----------------------------
# Context
# ----------------------------

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_LOG_CONTEXT", default={})

DEFAULT_CONTEXT_KEYS = (
    "run_id",
    "network",
    "component",
    "block",
)

# LogRecord attributes that are never treated as structured extras.
_RESERVED = frozenset(
    (
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
        "taskName",
        "message",
    )
)


def context() -> Dict[str, Any]:
    """Return a *copy* of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    """Merge fields into the active context."""
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def unbind(*keys: str) -> None:
    cur = dict(_LOG_CONTEXT.get())
    for k in keys:
        cur.pop(k, None)
    _LOG_CONTEXT.set(cur)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


@contextmanager
def context_scope(**fields: Any) -> Iterator[None]:
    """
    Bind fields for the duration of the scope and restore the prior context
    on exit.
    """
    prev = dict(_LOG_CONTEXT.get())
    try:
        bind(**fields)
        yield
    finally:
        _LOG_CONTEXT.set(prev)


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


# ----------------------------
# JSON & Text formatters
# ----------------------------


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


_LEVEL_TO_INT = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}

ANSI = types.SimpleNamespace(
    RESET="\x1b[0m",
    BOLD="\x1b[1m",
    FG=types.SimpleNamespace(
        RED="\x1b[31m",
        GREEN="\x1b[32m",
        YELLOW="\x1b[33m",
        MAGENTA="\x1b[35m",
        CYAN="\x1b[36m",
        GREY="\x1b[90m",
        WHITE="\x1b[37m",
    ),
)

_LEVEL_COLOR = {
    logging.DEBUG: ANSI.FG.GREY,
    logging.INFO: ANSI.FG.GREEN,
    logging.WARNING: ANSI.FG.YELLOW,
    logging.ERROR: ANSI.FG.RED,
    logging.CRITICAL: ANSI.BOLD + ANSI.FG.MAGENTA,
}


def _supports_color(stream: io.TextIOBase) -> bool:
    try:
        return stream.isatty() and os.environ.get("NO_COLOR") is None
    except (AttributeError, ValueError):
        return False


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    if is_dataclass(v) and not isinstance(v, type):
        return asdict(v)
    if isinstance(v, tuple):
        return [_coerce_value(x) for x in v]
    return str(v)


def _extras(record: logging.LogRecord, skip: Tuple[str, ...] = ()) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in record.__dict__.items():
        if k.startswith("_") or k in _RESERVED or k in skip:
            continue
        out[k] = _coerce_value(v)
    return out


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)

        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()

        return json.dumps(payload, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """
    Human-friendly one-liner:
      2025-01-05T12:34:56.789+00:00 | INFO  | lightclient.pipeline.coordinator | network=Turing block=12 | block done
    With colors when supported.
    """

    def __init__(self, stream: io.TextIOBase):
        super().__init__()
        self._color = _supports_color(stream)

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        ctx_str = " ".join(f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None)
        extras = _extras(record, skip=tuple(ctx))
        extras_str = (" " + " ".join(f"{k}={v}" for k, v in extras.items())) if extras else ""

        ts, lvl, name = _utcnow_iso(), f"{record.levelname:<5}", record.name
        if self._color:
            c = _LEVEL_COLOR.get(record.levelno, ANSI.FG.WHITE)
            lvl = f"{c}{lvl}{ANSI.RESET}"
            name = f"{ANSI.FG.CYAN}{name}{ANSI.RESET}"
            ts = f"{ANSI.FG.GREY}{ts}{ANSI.RESET}"

        line = f"{ts} | {lvl} | {name}"
        if ctx_str:
            line += f" | {ctx_str}"
        line += f"{extras_str} | {record.getMessage()}"

        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


# ----------------------------
# Public setup API
# ----------------------------


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int = "INFO",
    stream: io.TextIOBase = sys.stderr,  # type: ignore[assignment]
) -> None:
    """
    Configure the root logger with a single console handler.

    Parameters
    ----------
    json : bool | None
        If None, determined by env LC_LOG_FORMAT=(json|text) and TTY detection.
    level : str | int
        Minimum log level.
    stream : TextIO
        Stream for the console handler (default: stderr).
    """
    chosen_json = _decide_json(json, stream)

    root = logging.getLogger()
    root.setLevel(_coerce_level(level))
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(stream)
    console.setLevel(_coerce_level(level))
    console.setFormatter(JSONFormatter() if chosen_json else TextFormatter(stream))
    root.addHandler(console)

    logging.getLogger("asyncio").setLevel(max(_coerce_level(level), logging.WARNING))


def configure_from_config(cfg: Any) -> None:
    """Configure logging from `lightclient.config.LightClientConfig`."""
    fmt = getattr(cfg.logging, "format", None)
    configure(json=None if fmt is None else fmt == "json", level=cfg.logging.level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a standard logger (root child)."""
    return logging.getLogger(name or "lightclient")


# ----------------------------
# Internals
# ----------------------------


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return _LEVEL_TO_INT.get(level.upper(), logging.INFO)


def _decide_json(json_flag: Optional[bool], stream: io.TextIOBase) -> bool:
    if json_flag is not None:
        return json_flag
    env = os.environ.get("LC_LOG_FORMAT", "").strip().lower()
    if env in ("json", "text"):
        return env == "json"
    # JSON when piped (services), text when interactive
    return not _supports_color(stream)


__all__ = [
    "bind",
    "unbind",
    "clear_context",
    "context",
    "context_scope",
    "short_uuid",
    "configure",
    "configure_from_config",
    "get_logger",
    "JSONFormatter",
    "TextFormatter",
]
