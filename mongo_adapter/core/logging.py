"""
Logging setup for processes that embed the adapter.

The library itself only creates module loggers; configuring handlers is
left to the entry point.
"""
import logging

from mongo_adapter.config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure root logging from settings and return the package logger."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )
    return logging.getLogger("mongo_adapter")
