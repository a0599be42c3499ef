"""Structured logging configuration.

Each process (scraper, consumer, api) logs to its own pair of files under
``logs/`` so that the scraper run and the long-lived consumer never
interleave in one file. Records carry a ``component`` field naming the
process.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from pythonjsonlogger import jsonlogger

from pc_scraper.config import settings

# Attributes set by LogRecord itself; extras with these names make makeRecord raise
RESERVED_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}

# Libraries that log every connection or statement at INFO/DEBUG
NOISY_LOGGERS = ("asyncio", "aiosqlite", "sqlalchemy.engine", "uvicorn.access")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding record time, level, source and the process component."""

    def __init__(self, *args, component: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.component = component

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        # Time the record was created, not the time it was formatted
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_record['timestamp'] = created.isoformat().replace("+00:00", "Z")
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['source'] = f"{record.filename}:{record.lineno}"
        if self.component:
            log_record.setdefault('component', self.component)


def setup_logging(
    component: str,
    base_dir: str | Path | None = None,
    json_console: bool = False,
):
    """Configure the root logger for one process.

    Args:
        component: Process name (``scraper``, ``consumer``, ``api``); used in
                   log file names and as the ``component`` field.
        base_dir: Optional base directory to place the logs/ folder in.
                  If omitted, uses the current working directory.
        json_console: Emit JSON on stdout instead of the human-readable format
                      (the consumer runs unattended and is shipped as JSON).

    Returns:
        The configured root logger
    """
    logs_dir = (Path(base_dir) if base_dir else Path.cwd()) / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    json_formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        component=component,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    if json_console:
        console_handler.setFormatter(json_formatter)
    else:
        console_handler.setFormatter(logging.Formatter(
            f"%(asctime)s - {component} - %(name)s - %(levelname)s - %(message)s"
        ))
    root_logger.addHandler(console_handler)

    json_handler = logging.FileHandler(logs_dir / f"{component}.log", encoding="utf-8")
    json_handler.setFormatter(json_formatter)
    root_logger.addHandler(json_handler)

    error_handler = logging.FileHandler(logs_dir / f"{component}.error.log", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(json_formatter)
    root_logger.addHandler(error_handler)

    if not settings.debug:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that merges bound context into each record's extras."""

    def process(self, msg, kwargs):
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a logger that tags every record with fixed context fields.

    Args:
        name: Logger name (usually __name__)
        **context: Context fields (e.g., component='scraper', category='GPU')

    Returns:
        LoggerAdapter with context

    Raises:
        ValueError: If a context field shadows a LogRecord attribute
    """
    clashing = RESERVED_RECORD_ATTRS.intersection(context)
    if clashing:
        raise ValueError(f"Context fields clash with LogRecord attributes: {sorted(clashing)}")
    return LoggerAdapter(logging.getLogger(name), context)
