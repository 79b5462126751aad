from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import sys
import traceback

_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

# Level number -> ANSI color for the pretty formatter.
_COLORS = ((logging.ERROR, "31"), (logging.WARNING, "33"), (logging.INFO, "32"))


def _timestamp(record: logging.LogRecord) -> str:
    return (
        _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc)
        .astimezone()
        .isoformat(timespec="milliseconds")
    )


def _exception_text(record: logging.LogRecord) -> str:
    return "".join(traceback.format_exception(*record.exc_info)).rstrip() if record.exc_info else ""


class PrettyFormatter(logging.Formatter):
    def __init__(self, *, use_color: bool) -> None:
        super().__init__()
        self._use_color = bool(use_color)

    def format(self, record: logging.LogRecord) -> str:
        line = f"{_timestamp(record)} {record.levelname} {record.name} {record.getMessage()}"
        exc = _exception_text(record)
        if exc:
            line += "\n" + exc
        if self._use_color:
            color = next((code for level, code in _COLORS if record.levelno >= level), "36")
            line = f"\x1b[{color}m{line}\x1b[0m"
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for feeding decode runs into log tooling."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": _timestamp(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        exc = _exception_text(record)
        if exc:
            payload["exc"] = exc
        return json.dumps(payload, separators=(",", ":"), sort_keys=True)


def parse_log_level(value: str | None) -> int:
    raw = (value or "").strip().lower()
    if not raw:
        return logging.WARNING
    try:
        return _LEVELS[raw]
    except KeyError:
        raise ValueError(f"invalid log level: {value}") from None


def setup_logging(
    *,
    level: int = logging.WARNING,
    log_format: str = "pretty",
    log_file: str | None = None,
    no_color: bool = False,
) -> None:
    """Configure root logging.

    - Logs go to stderr, optionally also to a file.
    - Stdout is reserved for decode results.
    """

    fmt = (log_format or "pretty").strip().lower()
    if fmt not in {"pretty", "json"}:
        raise ValueError("invalid log format")

    use_color = (not no_color) and bool(getattr(sys.stderr, "isatty", lambda: False)())

    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setFormatter(JsonFormatter() if fmt == "json" else PrettyFormatter(use_color=use_color))
    handlers: list[logging.Handler] = [stderr_handler]

    if log_file:
        path = os.path.expanduser(str(log_file))
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setFormatter(JsonFormatter() if fmt == "json" else PrettyFormatter(use_color=False))
        handlers.append(fh)

    logging.basicConfig(level=int(level), handlers=handlers, force=True)

    # python-can is chatty at INFO; only surface it when debugging.
    logging.getLogger("can").setLevel(logging.DEBUG if int(level) <= logging.DEBUG else logging.WARNING)
