"""
Logging configuration utilities for MiniTel-Lite client.
"""

import logging
import sys
from typing import Optional


DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
PLAIN_FORMAT = '%(name)s - %(levelname)s - %(message)s'
PACKAGE_LOGGERS = ['src.minitel', 'src.tui']


def parse_log_level(name: str) -> int:
    """
    Translate a level name such as ``"debug"`` or ``"WARNING"`` into its value.

    Raises:
        ValueError: If the name is not a standard logging level
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def setup_logger(
    name: str,
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    include_timestamp: bool = True
) -> logging.Logger:
    """
    Attach a stderr handler to ``name`` unless it already has one.

    stdout is reserved for the client's mission output.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    if format_string is None:
        format_string = DEFAULT_FORMAT if include_timestamp else PLAIN_FORMAT

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)
    return logger


def configure_logging(level_name: str = "INFO", verbose: bool = False) -> logging.Logger:
    """
    Configure the package loggers for a command-line run.

    Args:
        level_name: Level from configuration (e.g. LOG_LEVEL)
        verbose: Force debug output regardless of ``level_name``

    Returns:
        The root package logger
    """
    level = logging.DEBUG if verbose else parse_log_level(level_name)
    logger = setup_logger('src', level=level)
    set_global_log_level(level)
    if verbose:
        configure_debug_logging()
    silence_external_loggers()
    return logger


def set_global_log_level(level: int) -> None:
    """
    Set the global logging level for all loggers.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO)
    """
    logging.getLogger().setLevel(level)

    for logger_name in ['src'] + PACKAGE_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)


def configure_debug_logging() -> None:
    """Configure debug-level logging for development."""
    set_global_log_level(logging.DEBUG)

    debug_format = '%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s'

    for logger in (logging.getLogger(), logging.getLogger('src')):
        for handler in logger.handlers:
            handler.setFormatter(logging.Formatter(debug_format))


def silence_external_loggers() -> None:
    """Silence noisy external library loggers."""
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('rich').setLevel(logging.WARNING)
