"""
defi_core - Structured Logging Configuration

Every engine log line carries an `event` name such as
"oracle.price_published" or "pool.swap". This module renders those records
as JSON, tags each one with the component that produced it, and routes
them to stdout and an optional rotating file.

Usage:
    from defi_core.core.logging_config import setup_logging

    logger = setup_logging(name="defi_core", log_file="/var/log/defi_core/engine.json")
    logger.info("Price published", extra={"event": "oracle.price_published", "pair": "IOTA/USD"})
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

DEFAULT_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter for engine records.

    Adds UTC timestamp, environment, service, lowercase level, the source
    location, and `component` (the prefix of the record's `event` field).
    """

    def __init__(
        self,
        fmt: str = DEFAULT_FORMAT,
        timestamp: bool = True,
        environment: Optional[str] = None,
        service_name: str = "defi_core",
    ):
        super().__init__(fmt=fmt)
        self.timestamp = timestamp
        self.environment = environment or "production"
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if self.timestamp and not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record["environment"] = self.environment
        log_record["service"] = self.service_name

        event = log_record.get("event")
        if isinstance(event, str) and "." in event:
            log_record["component"] = event.split(".", 1)[0]

        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def _rotating_file_handler(log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
    )


def setup_logging(
    name: str = "defi_core",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "production",
    enable_console: bool = True,
    enable_file: bool = True,
    max_bytes: int = 50 * 1024 * 1024,  # 50MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure JSON logging for a logger, replacing any handlers it had.

    Args:
        name: Logger name; its first dotted segment becomes the `service` field
        log_file: Rotating JSON log file (optional)
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        environment: Value of the `environment` field
        enable_console: Log to stdout
        enable_file: Log to log_file when one is given
        max_bytes: Rotation size
        backup_count: Rotated files to keep

    Returns:
        The configured logger
    """
    log_level = getattr(logging, level.upper())
    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers = []

    formatter = CustomJsonFormatter(
        environment=environment,
        service_name=name.split(".")[0],
    )

    handlers = []
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if enable_file and log_file:
        try:
            handlers.append(_rotating_file_handler(log_file, max_bytes, backup_count))
        except OSError as e:
            logger.warning("Could not create file handler for %s: %s", log_file, e)

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str, log_file: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """Return a logger, configuring it only if it has no handlers yet."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logging(name=name, log_file=log_file, level=level)
    return logger


def setup_engine_logging(environment: Optional[str] = None) -> logging.Logger:
    """Configure the `defi_core` logger from DEFI_LOG_* settings."""
    from . import config

    return setup_logging(
        name="defi_core",
        log_file=config.LOG_FILE,
        level=config.LOG_LEVEL,
        environment=environment or config.ENVIRONMENT,
        enable_file=config.LOG_FILE is not None,
    )
