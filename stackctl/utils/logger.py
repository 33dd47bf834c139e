"""Structured logger utility for the stackctl commands.

Emits JSON lines (or plain text for interactive shells) on stderr so that
stdout stays reserved for rendered stack outputs. Every record carries the
environment and stack name when the caller bound them.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Optional

_TEXT_FORMAT = "[%(levelname)s] %(message)s"


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "timestamp": record.created,
        }
        env = getattr(record, "environment", None)
        if env:
            payload["environment"] = env
        stack = getattr(record, "stack_name", None)
        if stack:
            payload["stack_name"] = stack
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class _Adapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: Dict[str, Any]):  # type: ignore[override]
        extra = self.extra.copy() if isinstance(self.extra, dict) else {}
        if "extra" in kwargs and isinstance(kwargs["extra"], dict):
            extra.update(kwargs["extra"])  # merge per-call extras
        kwargs["extra"] = extra
        return msg, kwargs


def _build_handler(log_format: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    return handler


def configure_logging(level: str = "INFO", log_format: str = "text") -> None:
    """Install the stackctl handler on the package root logger."""
    root = logging.getLogger("stackctl")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(_build_handler(log_format))
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False


def get_logger(
    name: str,
    environment: Optional[str] = None,
    stack_name: Optional[str] = None,
) -> logging.LoggerAdapter:
    """Return a logger adapter with optional environment/stack_name extras."""
    base = logging.getLogger(name)
    extras: Dict[str, Any] = {"environment": environment}
    if stack_name:
        extras["stack_name"] = stack_name
    return _Adapter(base, extras)
