"""Logging setup for the vault-sync command line and scheduled runs."""

import json
import logging
import os
import sys

DEFAULT_SERVICE_LOG = "/tmp/vault-sync.log"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Libraries that are only interesting when debugging
_QUIET_LOGGERS = ("charset_normalizer", "asyncio")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ``ts``, ``level``, ``logger``, ``msg``.

    A traceback, when the record carries one, goes under ``exc``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _formatter(style: str, *, named: bool) -> logging.Formatter:
    if style == "json":
        return JsonFormatter(datefmt=_DATEFMT)
    name = " %(name)s" if named else ""
    return logging.Formatter(
        f"[%(asctime)s] [%(levelname)s]{name} %(message)s", datefmt=_DATEFMT
    )


def _file_handler(path: str, style: str) -> logging.Handler:
    handler = logging.FileHandler(path, mode="a")
    handler.setFormatter(_formatter(style, named=True))
    return handler


def _resolve_level(mode: str, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    fallback = "WARNING" if mode == "service" else "INFO"
    name = os.getenv("LOG_LEVEL", fallback).upper()
    return getattr(logging, name, logging.INFO)


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
) -> None:
    """
    Install root handlers for a run.

    In ``"cli"`` mode records go to stderr, and additionally to *log_file*
    when one is given. In ``"service"`` mode (unattended periodic sync) they
    go only to a file: *log_file*, else ``$LOG_FILE``, else
    ``/tmp/vault-sync.log``.

    The level comes from ``$LOG_LEVEL`` (default INFO for the CLI, WARNING
    for the service); *debug* forces DEBUG. *debug_format* is ``"text"`` or
    ``"json"``.
    """
    level = _resolve_level(mode, debug)

    handlers: list[logging.Handler] = []
    if mode == "service":
        handlers.append(
            _file_handler(
                log_file or os.getenv("LOG_FILE", DEFAULT_SERVICE_LOG),
                debug_format,
            )
        )
    else:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(_formatter(debug_format, named=False))
        handlers.append(console)
        if log_file:
            handlers.append(_file_handler(log_file, debug_format))

    logging.basicConfig(level=level, handlers=handlers)

    if level != logging.DEBUG:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
