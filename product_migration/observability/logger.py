"""
Structured logging for product-migration

Every migration module logs through a child of the ``product_migration``
logger. Lines are JSON (python-json-logger) so a run's output can be
filtered by table, operation or object; ``LOG_FORMAT=text`` switches to
plain lines for local runs. Each line carries the id of the run that
produced it.
"""
import logging
import os
import sys
import time
import uuid

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "product_migration"

# Shared by every line of one process, so interleaved runs can be told apart
RUN_ID = uuid.uuid4().hex[:12]

JSON_FIELDS = "%(timestamp)s %(level)s %(logger)s %(run_id)s %(function)s %(message)s"
TEXT_FORMAT = "%(asctime)s [%(run_id)s] %(levelname)-8s %(name)s:%(funcName)s - %(message)s"


class RunContextFilter(logging.Filter):
    """Stamps every record with the run id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = RUN_ID
        return True


class MigrationJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter emitting timestamp, level, logger, run id and caller.

    Fields passed through ``extra=`` are added as top-level keys.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = log_record.get("timestamp") or self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["function"] = f"{record.module}.{record.funcName}"


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Configure a logger with a single stdout handler.

    Calling it again replaces the handler, so the CLI can reconfigure the
    package logger after modules have already logged.

    Args:
        name: Logger name
        level: Level name; defaults to LOG_LEVEL, then INFO
        format_type: "json" or "text"; defaults to LOG_FORMAT, then json

    Returns:
        The configured logger
    """
    log_level = _resolve_level(level)
    format_type = (format_type or os.getenv("LOG_FORMAT") or "json").lower()

    if format_type == "json":
        formatter = MigrationJsonFormatter(fmt=JSON_FIELDS, datefmt="%Y-%m-%dT%H:%M:%S")
    else:
        formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)
    handler.addFilter(RunContextFilter())

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    for old_handler in list(logger.handlers):
        logger.removeHandler(old_handler)
    logger.addHandler(handler)

    # Child loggers propagate here; nothing goes on to the root logger
    logger.propagate = False

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Return a logger, configuring the package logger on first use.

    Module loggers (``product_migration.*``) propagate to the package
    logger and share its handler.
    """
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not package_logger.handlers:
        setup_logger(ROOT_LOGGER_NAME)

    return logging.getLogger(name)


class log_operation:
    """
    Logs the start and end of a migration stage with its duration.

    Usage:
        with log_operation("Table migration", logger=logger, target="Product"):
            ...

    The elapsed time is available afterwards as ``duration``.
    Exceptions are logged and re-raised.
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.duration = None
        self._started = None

    def _fields(self, **fields) -> dict:
        return {"operation": self.operation_name, **fields, **self.extra_fields}

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.info(f"Starting: {self.operation_name}", extra=self._fields())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self._started
        elapsed = round(self.duration, 3)

        if exc_type is None:
            self.logger.info(
                f"Completed: {self.operation_name} in {elapsed}s",
                extra=self._fields(duration_seconds=elapsed, status="success"),
            )
        else:
            self.logger.error(
                f"Failed: {self.operation_name} after {elapsed}s",
                extra=self._fields(
                    duration_seconds=elapsed,
                    status="error",
                    error_type=exc_type.__name__,
                    error_message=str(exc_val),
                ),
                exc_info=(exc_type, exc_val, exc_tb),
            )
        return False
