"""
Logging setup for browserdeck.

All output goes to stderr so stdout stays clean for stdio transports.
Modules obtain a bound logger with ``get_logger(__name__)``.
"""

import sys

from loguru import logger as _logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

_logger.configure(extra={"name": "browserdeck"})


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure the global loguru sinks.

    Args:
        level: Minimum level for emitted records.
        log_file: Optional path for an additional rotating file sink.
    """
    _logger.remove()
    _logger.add(sys.stderr, level=level.upper(), format=_FORMAT, colorize=None)

    if log_file:
        _logger.add(
            log_file,
            level=level.upper(),
            format=_FORMAT,
            rotation="10 MB",
            retention=3,
            encoding="utf-8",
        )


def get_logger(name: str):
    """Return a logger bound to the given module name."""
    return _logger.bind(name=name)
