"""
fieldlog - pattern-based logging from named record fields

Each logging call becomes one line built from the fields a logger is
configured with: time, sequence id, caller location, level, message, ...
Fields that need the caller's stack frame are captured during the call;
all others are computed only when a logger actually asks for them.

Provides:
- Sixteen record fields, selected and ordered per logger
- Process-wide sequence ids
- File output with reopen for external log rotation
- Reopen-on-signal loop (SIGHUP and friends)
- Configuration from YAML files and environment variables

Usage:
    from fieldlog import get_logger

    logger = get_logger("worker")
    logger.info("Processed %d items in %.1fs", 100, 1.5)

Configuration:
    # Via environment variables
    export FIELDLOG_LOG_LEVEL=DEBUG
    export FIELDLOG_LOG_OUTPUT=file
    export FIELDLOG_LOG_FILE=/var/log/worker/worker.log

    # Via configuration file
    from fieldlog.config import LoggingConfig
    LoggingConfig.setup_logging(config_path="fieldlog.yml")
"""

import logging

__version__ = "1.0.0"

from fieldlog.levels import LogLevel  # noqa: E402
from fieldlog.logger import Logger, LoggerFactory, file_logger, standard_file_logger  # noqa: E402

__all__ = [
    "LogLevel",
    "Logger",
    "LoggerFactory",
    "file_logger",
    "standard_file_logger",
    "get_logger",
]

# Library diagnostics stay silent unless the application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())


def get_logger(name: str) -> Logger:
    """
    Get a logger instance with default configuration.

    Args:
        name: Logger name, rendered by the "name" field

    Returns:
        Logger instance

    Example:
        logger = get_logger("worker")
        logger.info("Job %d finished", 17)
    """
    return LoggerFactory.get_logger(name)
