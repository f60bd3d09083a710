"""Logging setup with run-id context and optional JSON output.

Each pipeline run is wrapped in ``run_context(run_id)``; ``RunIdFilter``
copies the active id onto every record so all lines of one run can be
grepped together:

    09:00:01 [INFO] [3f9a1c2b] pipeline: Pipeline started | date=2025-11-09

Outside a run the id is '-'.

Usage:
    >>> from observability.logging import setup_logging, run_context
    >>> setup_logging(config)
    >>> with run_context("3f9a1c2b"):
    ...     logger.info("Pipeline started")
"""

import contextvars
import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

LOG_FILE_NAME = "niche-scraper.log"
NO_RUN = "-"

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("aiohttp", "asyncio", "httpx", "httpcore", "openai", "google_genai")

_run_id: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default=NO_RUN)

# Attributes every LogRecord has; anything else was passed via ``extra``
_BUILTIN_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "run_id"}


@contextmanager
def run_context(run_id: str) -> Iterator[str]:
    """Tag log records emitted inside the block with ``run_id``."""
    token = _run_id.set(run_id)
    try:
        yield run_id
    finally:
        _run_id.reset(token)


def current_run_id() -> str:
    return _run_id.get()


class RunIdFilter(logging.Filter):
    """Adds ``record.run_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _run_id.get()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, extras included."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "run_id": getattr(record, "run_id", NO_RUN),
            "message": record.getMessage(),
        }
        if record.levelno >= logging.WARNING:
            entry["source"] = f"{record.module}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extras = {k: v for k, v in vars(record).items() if k not in _BUILTIN_ATTRS}
        entry.update(extras)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _text_formatter(with_date: bool) -> logging.Formatter:
    return logging.Formatter(
        "%(asctime)s [%(levelname)s] [%(run_id)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S" if with_date else "%H:%M:%S",
    )


def _file_handler(log_dir: Path, max_bytes: int, backup_count: int) -> logging.Handler:
    """Size-based rotation when ``max_bytes`` is set, daily rotation otherwise."""
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / LOG_FILE_NAME
    if max_bytes > 0:
        return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    return TimedRotatingFileHandler(path, when="midnight", backupCount=backup_count, encoding="utf-8")


def setup_logging(config: Any, verbose: bool = False) -> bool:
    """Configure the root logger with a console and a rotating file handler.

    Args:
        config: Object with log_level, log_format, log_dir, log_max_bytes
            and log_backup_count attributes
        verbose: Force DEBUG on the console

    Returns:
        True if file logging is enabled, False if the log directory was not
        writable and only the console is used
    """
    as_json = config.log_format == "json"
    run_filter = RunIdFilter()

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if verbose else logging.getLevelName(config.log_level))
    console.setFormatter(JsonFormatter() if as_json else _text_formatter(with_date=False))
    console.addFilter(run_filter)
    root.addHandler(console)

    try:
        handler = _file_handler(Path(config.log_dir), config.log_max_bytes, config.log_backup_count)
    except OSError as e:
        print(f"Warning: log directory {config.log_dir} not writable ({e}); logging to console only", file=sys.stderr)
        file_logging = False
    else:
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(JsonFormatter() if as_json else _text_formatter(with_date=True))
        handler.addFilter(run_filter)
        root.addHandler(handler)
        file_logging = True

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return file_logging
