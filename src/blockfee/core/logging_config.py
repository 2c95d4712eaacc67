"""
blockfee - Structured Logging Configuration

Configures structured JSON logging for hosts embedding the fee estimator:
- JSON format for easy parsing and aggregation
- Optional rotating file output
- Environment and service tags on every record

The library itself never configures logging on import; hosts call
``setup_logging`` (or ``setup_from_settings``) once at startup.

Usage:
    from blockfee.core.logging_config import setup_logging

    logger = setup_logging(name="blockfee", level="INFO")
    logger.info("Estimator ready", extra={"event": "fee_estimator.ready"})
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any

from pythonjsonlogger import jsonlogger

from blockfee.core.config import Settings


class FeeJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter for estimator records.

    Every record carries the time it was created (UTC), its lowercase level,
    the deployment environment and service, and an ``event`` name. Records
    logged without ``extra={"event": ...}`` are named after their logger.
    """

    def __init__(self, environment: str = "production", service_name: str = "blockfee"):
        super().__init__(fmt="%(name)s %(message)s")
        self.environment = environment
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname.lower()
        log_record["environment"] = self.environment
        log_record["service"] = self.service_name
        if not log_record.get("event"):
            log_record["event"] = record.name


def setup_logging(
    name: str = "blockfee",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "production",
    enable_console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Setup structured JSON logging.

    Args:
        name: Logger name (``blockfee`` covers every module of the package)
        log_file: Path to JSON log file (optional)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Environment identifier (dev, staging, prod)
        enable_console: Whether to log to stdout
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    formatter = FeeJsonFormatter(
        environment=environment,
        service_name=name.split(".")[0],
    )

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setLevel(getattr(logging, level.upper()))
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(
                "Could not create file handler for %s: %s",
                log_file,
                e,
                extra={"event": "logging.file_handler_failed"},
            )

    return logger


def setup_from_settings(settings: Optional[Settings] = None) -> logging.Logger:
    """Configure the ``blockfee`` logger from ``BLOCKFEE_*`` settings."""
    settings = settings or Settings.from_env()
    return setup_logging(
        name="blockfee",
        log_file=settings.log_file,
        level=settings.log_level,
        environment=settings.environment,
    )


def get_logger(
    name: str,
    log_file: Optional[str] = None,
    level: str = "INFO",
) -> logging.Logger:
    """Get a logger, configuring it only if it has no handlers yet."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        return setup_logging(name=name, log_file=log_file, level=level)

    return logger


__all__ = ["FeeJsonFormatter", "setup_logging", "setup_from_settings", "get_logger"]
