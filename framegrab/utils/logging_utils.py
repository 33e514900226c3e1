"""
Logging Utilities for the frame-extraction service

This module provides centralized logging configuration for the FastAPI
application and the media services. It ensures consistent log formatting with
event/recording ID tracing across all operations.

Every module logs through a child of the "framegrab" logger, so one call to
setup_logger() at startup configures output for the whole package.
"""
import logging
from typing import Optional


LOGGER_NAME = "framegrab"


class _RequestIdFilter(logging.Filter):
    """Default the request_id field for records not logged via an adapter."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


def setup_logger(
    log_level: int = logging.INFO,
    logger_name: str = LOGGER_NAME
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        log_level: Logging level constant from logging module.
                  Defaults to logging.INFO (20).
        logger_name: Name for the logger instance. Defaults to "framegrab".

    Returns:
        Configured Logger instance ready for use with get_job_logger().

    Example:
        >>> logger = setup_logger(log_level=logging.DEBUG)
        >>> event_logger = get_job_logger("evt-123")
        >>> event_logger.info("Extracting frame")
        2026-01-12 10:30:45 | INFO | [evt-123] Extracting frame
    """
    log_format = logging.Formatter(
        '%(asctime)s | %(levelname)s | [%(request_id)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    # Prevent duplicate handlers if logger already configured
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(log_format)
        console_handler.addFilter(_RequestIdFilter())
        logger.addHandler(console_handler)

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """Return a child of the package logger, e.g. framegrab.ffmpeg_service."""
    return logging.getLogger(f"{LOGGER_NAME}.{module_name}")


def get_job_logger(
    job_id: str,
    base_logger: Optional[logging.Logger] = None
) -> logging.LoggerAdapter:
    """
    Create a logger adapter with the event/recording ID for tracing.

    The LoggerAdapter injects the id into all log messages, enabling
    end-to-end tracing of a single event through extraction and storage.

    Args:
        job_id: Event id, recording id or any other correlation id.
        base_logger: Optional base logger to wrap. If None, uses the
                    package logger "framegrab".

    Returns:
        LoggerAdapter configured to inject job_id into all log messages.
    """
    if base_logger is None:
        base_logger = logging.getLogger(LOGGER_NAME)

    return logging.LoggerAdapter(base_logger, {"request_id": job_id})
