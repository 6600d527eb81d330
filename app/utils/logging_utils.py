"""
Logging utilities for the RingPing API.

This module provides centralized logging configuration so every line can be
traced back to the HTTP request that produced it. Subprocess diagnostics are
only ever written here, never returned to clients.
"""
import logging
import uuid
from typing import Optional


LOGGER_NAME = "ringping"


def setup_logger(
    log_level: int = logging.INFO,
    logger_name: str = LOGGER_NAME
) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        log_level: Logging level constant from logging module.
                  Defaults to logging.INFO (20).
        logger_name: Name for the logger instance. Defaults to "ringping".

    Returns:
        Configured Logger instance ready for use with get_request_logger().

    Example:
        >>> logger = setup_logger(log_level=logging.DEBUG)
        >>> request_logger = get_request_logger("a1b2c3d4")
        >>> request_logger.info("Creating ringtone")
        2026-10-19 10:30:45 | INFO | [a1b2c3d4] Creating ringtone
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
        logger.addHandler(console_handler)

    return logger


def get_request_logger(
    request_id: Optional[str] = None,
    base_logger: Optional[logging.Logger] = None
) -> logging.LoggerAdapter:
    """
    Create a logger adapter with the request ID for tracing.

    Args:
        request_id: Identifier to stamp on every line. A short random id is
                    generated when omitted.
        base_logger: Optional base logger to wrap. If None, uses the
                    "ringping" logger.

    Returns:
        LoggerAdapter configured to inject request_id into all log messages.
    """
    if base_logger is None:
        base_logger = logging.getLogger(LOGGER_NAME)
    if request_id is None:
        request_id = uuid.uuid4().hex[:8]

    return logging.LoggerAdapter(base_logger, {"request_id": request_id})
