"""
Pump Fleet Utils - Logging & Diagnostics
========================================

Logging setup and run summaries.

Log Format:
-----------
[2026-10-19 12:30:45.123] [INFO    ] [pump_fleet.device.pump] Message here
[TIMESTAMP] [LEVEL] [MODULE] Message

Example:
--------
>>> from pump_fleet.utils import setup_logging
>>> import logging
>>>
>>> setup_logging("logs/", level="INFO")
>>> logger = logging.getLogger(__name__)
>>> logger.info("Fleet started")

Author: Pump Fleet Team
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Dict, Any
from datetime import datetime


class StructuredFormatter(logging.Formatter):
    """Structured logging formatter."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime(
            "%Y-%m-%d %H:%M:%S.%f"
        )[:-3]

        message = (
            f"[{timestamp}] [{record.levelname:8}] "
            f"[{record.name}] {record.getMessage()}"
        )
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(log_dir: str = "logs",
                  level: str = "INFO",
                  console_output: bool = True,
                  file_output: bool = True) -> None:
    """
    Set up logging configuration.

    Args:
        log_dir: Directory for log files
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console_output: Enable console output
        file_output: Enable file output
    """
    numeric_level = getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = StructuredFormatter()

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if file_output:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"pump_fleet_{timestamp}.log"

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10 MB
            backupCount=5,
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.info(f"Logging configured: level={level}, dir={log_dir}")


def log_statistics(stats: Dict[str, Any],
                   title: str = "Statistics Summary") -> None:
    """
    Log statistics summary.

    Example:
        >>> log_statistics(orchestrator.get_statistics(), title="Fleet")
    """
    logger = logging.getLogger(__name__)

    logger.info(f"=== {title} ===")
    for key, value in stats.items():
        if isinstance(value, float):
            logger.info(f"{key}: {value:.4f}")
        else:
            logger.info(f"{key}: {value}")
