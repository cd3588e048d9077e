"""Logging setup using loguru.

Library modules log through ``loguru.logger`` directly and never add sinks
on import.  Applications (and the CLI) call :func:`setup_logging` once.
"""

import sys

from loguru import logger


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    fmt: str = "<level>[{level.name}]</level> {message}",
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Configure loguru with stderr and optional file output.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to a log file. If None, only logs to stderr.
        fmt: Loguru format string for the stderr sink.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=fmt)

    if log_file:
        logger.add(
            log_file,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}",
            rotation=rotation,
            retention=retention,
        )
