"""
Logger - injectable facade over the stdlib ``logging`` module.

Messages take an optional context mapping, rendered as ``key=value`` pairs
(dev format) or as a JSON object (structured format). Everything that ends up
in a log line or in a rendered error passes through ``clean`` first.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .config import ServerConfig
from .di import injectable

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")

# ─── ANSI color codes for dev mode ────────────────────────────────────────────

_COLORS = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "yellow": "\033[33m",
    "green": "\033[32m",
    "cyan": "\033[36m",
}

_LEVEL_COLORS = {
    TRACE: _COLORS["dim"],
    logging.DEBUG: _COLORS["cyan"],
    logging.INFO: _COLORS["green"],
    logging.WARNING: _COLORS["yellow"],
    logging.ERROR: _COLORS["red"],
    logging.CRITICAL: _COLORS["red"],
}


def clean(text: Any) -> str:
    """
    Make text safe for a single log line or an error body.

    Strips ANSI escape sequences and escapes CR, LF and other control
    characters so user-controlled input cannot forge log entries.
    """
    text = _ANSI_RE.sub("", str(text))
    text = text.replace("\r", "\\r").replace("\n", "\\n")
    return _CONTROL_RE.sub(lambda m: f"\\x{ord(m.group()):02x}", text)


def _to_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    try:
        return _LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level!r}") from None


def _format_value(value: Any) -> str:
    if isinstance(value, BaseException):
        return f"{type(value).__name__}({value})"
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    return repr(value) if isinstance(value, str) else str(value)


# ─── Formatters ───────────────────────────────────────────────────────────────

class DevFormatter(logging.Formatter):
    """Color-coded developer-friendly format."""

    def format(self, record: logging.LogRecord) -> str:
        color = _LEVEL_COLORS.get(record.levelno, "")
        reset = _COLORS["reset"]
        line = f"{color}{record.levelname:8}{reset} {record.name}: {clean(record.getMessage())}"
        context = getattr(record, "context", None)
        if context:
            pairs = " ".join(f"{k}={clean(_format_value(v))}" for k, v in context.items())
            line += f" {_COLORS['dim']}{pairs}{reset}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredFormatter(logging.Formatter):
    """JSON-structured log output, one object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": clean(record.getMessage()),
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = {k: clean(_format_value(v)) for k, v in context.items()}
        if record.exc_info:
            entry["exception"] = clean(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


_FORMATTERS = {
    "dev": DevFormatter,
    "structured": StructuredFormatter,
}


def setup_logging(level: str | int = "info", format: str = "dev") -> logging.Logger:
    """
    Install a single stream handler on the ``harrier`` logger.

    Calling it again replaces the handler installed by the previous call.
    """
    level = _to_level(level)
    root = logging.getLogger("harrier")
    for handler in list(root.handlers):
        if getattr(handler, "_harrier_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(_FORMATTERS[format]())
    handler._harrier_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)
    return root


# ─── Logger ───────────────────────────────────────────────────────────────────

@injectable(inject=[ServerConfig])
class Logger:
    """
    Process-wide logger bound in the root injector.

    Example:
        logger.info("Route.parse_request", {"id": request_id, "path": "/"})
    """

    def __init__(self, config: Optional[ServerConfig] = None, name: str = "harrier"):
        self.config = config or ServerConfig()
        self._logger = logging.getLogger(name)
        self._logger.setLevel(_to_level(self.config.log_level))

    @property
    def level(self) -> int:
        return self._logger.level

    def is_enabled_for(self, level: str | int) -> bool:
        return self._logger.isEnabledFor(_to_level(level))

    def trace(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._log(TRACE, message, context)

    def debug(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.INFO, message, context)

    def warn(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.WARNING, message, context)

    def error(self, message: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.ERROR, message, context)

    def _log(self, level: int, message: str, context: Optional[Mapping[str, Any]]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        context = dict(context or {})
        error = context.get("error")
        exc_info = None
        if isinstance(error, BaseException):
            exc_info = (type(error), error, error.__traceback__)
        self._logger.log(level, message, exc_info=exc_info, extra={"context": context})
