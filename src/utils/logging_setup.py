"""
Logging setup module.

Configures application-wide logging with console and optional rotating file
handlers. Supports both standard text format and structured JSON logging.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from src.utils.config_loader import LoggingConfig


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON objects for easy parsing by log aggregation tools.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
    log_format: str | None = None,
    max_bytes: int = 10485760,  # 10 MB
    backup_count: int = 5,
    json_format: bool = False,
) -> logging.Logger:
    """
    Configure application logging.

    Sets up console logging, plus file logging with rotation when a log
    file is given.

    Args:
        level: Logging level (e.g., logging.INFO, logging.DEBUG).
        log_file: Path to log file. No file handler if None.
        log_format: Log message format string.
        max_bytes: Maximum log file size before rotation.
        backup_count: Number of backup files to keep.
        json_format: If True, use JSON structured logging format.

    Returns:
        logging.Logger: Configured root logger.
    """
    # Check for JSON format via environment variable
    if os.environ.get("LOG_FORMAT", "").lower() == "json":
        json_format = True

    if log_format is None:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers
    root_logger.handlers.clear()

    formatter = JSONFormatter() if json_format else logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning(f"Could not create file handler: {e}")

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return root_logger


def setup_logging_from_config(config: LoggingConfig) -> logging.Logger:
    """
    Configure logging from the `logging` section of the app config.

    Args:
        config: Logging configuration.

    Returns:
        logging.Logger: Configured root logger.
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    return setup_logging(
        level=level,
        log_file=Path(config.log_file) if config.log_file else None,
        log_format=config.format,
        json_format=config.json_format,
    )
