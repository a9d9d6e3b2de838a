# core/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False
_handlers: list[logging.Handler] = []


def _level_from(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level {name!r}")
    return level


def _console_handler() -> logging.Handler:
    # stdout carries command output (item ids, reports), so logs default to stderr
    stream_name = os.getenv("LOG_STREAM", "stderr").lower()
    return logging.StreamHandler(sys.stdout if stream_name == "stdout" else sys.stderr)


def _file_handler() -> logging.Handler:
    log_file = os.getenv("LOG_FILE", "/data/power_lister.log")
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    return RotatingFileHandler(
        log_file,
        maxBytes=int(os.getenv("LOG_MAX_BYTES", str(2 * 1024 * 1024))),
        backupCount=int(os.getenv("LOG_BACKUPS", "3")),
        encoding="utf-8",
    )


def setup_logging():
    global _configured
    if _configured:
        return

    try:
        level = _level_from(os.getenv("LOG_LEVEL", "INFO"))
    except ValueError:
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    if not root.handlers:
        builders = []
        if os.getenv("LOG_TO_CONSOLE", "true").lower() == "true":
            builders.append(_console_handler)
        if os.getenv("LOG_TO_FILE", "true").lower() == "true":
            builders.append(_file_handler)

        for build in builders:
            try:
                handler = build()
            except OSError as e:
                root.warning("Failed to initialize %s logging: %s", build.__name__.strip("_"), e)
                continue
            handler.setFormatter(formatter)
            root.addHandler(handler)
            _handlers.append(handler)

    _configured = True


def set_level(name: str) -> int:
    """Change the level of the root logger and of the handlers set up here."""
    setup_logging()
    level = _level_from(name)
    root = logging.getLogger()
    root.setLevel(level)
    for handler in _handlers:
        handler.setLevel(level)
    return level


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
