"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Process logging setup.

Logs go to stderr or to a file; stdout is reserved for the stdio transport.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(value: str) -> int:
    try:
        return _LEVELS[value.strip().lower()]
    except KeyError as e:
        raise ValueError(
            f"unknown log level {value!r}; expected one of debug, info, warn, error"
        ) from e


def configure_logging(level: str = "info", log_file: str | None = None) -> logging.Handler:
    """
    Configure the root logger once for the process.

    When ``log_file`` cannot be opened the error is reported on stderr and
    logging falls back to stderr. Returns the installed handler.
    """
    handler: logging.Handler
    fallback_error: OSError | None = None
    if log_file:
        try:
            handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            fallback_error = e
            handler = logging.StreamHandler(sys.stderr)
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=parse_level(level), handlers=[handler], force=True)

    if fallback_error is not None:
        logging.getLogger("mcp_vmanomaly").error(
            "Failed to open log file %s, logging to stderr: %s", log_file, fallback_error
        )
    # uvicorn installs no handlers of its own (log_config=None); route it here.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).propagate = True
    return handler
