"""
Logging setup for officehub.

One stream handler on the root logger, level from ``OFFICEHUB_LOG_LEVEL``.
The handler scrubs bearer tokens and mail addresses from every line: digest
and queue logs name recipients, and auth failures can echo headers.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Final

_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_HANDLER_NAME: Final[str] = "officehub"

_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_EMAIL_PATTERN = re.compile(r"\b([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")

# Libraries that log every outbound request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def redact(message: str) -> str:
    """``Bearer abc.def`` -> ``Bearer [REDACTED]``, ``ayse@example.com`` -> ``a***@example.com``"""
    message = _BEARER_PATTERN.sub(r"\1[REDACTED]", message)
    return _EMAIL_PATTERN.sub(r"\1***@\2", message)


class RedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def _resolve_level() -> int:
    level_name = os.getenv("OFFICEHUB_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _install_handler(level: int) -> None:
    root = logging.getLogger()
    if not any(handler.get_name() == _HANDLER_NAME for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handler.addFilter(RedactingFilter())
        root.addHandler(handler)
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))
    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Module logger; the first call installs the shared handler."""
    level = _resolve_level()
    _install_handler(level)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
