"""
Logging configuration for the page scraper.

Records go to stderr so stdout stays free for exported JSON/CSV. The level and
an optional log file can come from the environment:

    SCRAPER_LOG_LEVEL   DEBUG, INFO, WARNING or ERROR (default: INFO)
    SCRAPER_LOG_FILE    also append records to this file
"""

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def level_from_env(default: int = logging.INFO) -> int:
    """Resolve SCRAPER_LOG_LEVEL to a logging level, ignoring unknown names."""
    name = os.getenv("SCRAPER_LOG_LEVEL", "").strip().upper()
    level = getattr(logging, name, None) if name else None
    return level if isinstance(level, int) else default


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def setup_logger(
    name: str = "page_scraper",
    level: Optional[int] = None,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up and return the scraper logger.

    The stderr handler is installed once. Later calls change the level of the
    logger and every handler, and add a file handler for a log file that is
    not attached yet.

    Args:
        name: Logger name
        level: Logging level (default: SCRAPER_LOG_LEVEL or INFO)
        log_file: Optional file path (default: SCRAPER_LOG_FILE)

    Returns:
        Configured logger instance
    """
    level = level if level is not None else level_from_env()
    log_file = log_file or os.getenv("SCRAPER_LOG_FILE")

    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        _attach(logger, logging.StreamHandler(sys.stderr), level)

    if log_file:
        path = os.path.abspath(log_file)
        attached = {
            h.baseFilename for h in logger.handlers if isinstance(h, logging.FileHandler)
        }
        if path not in attached:
            _attach(logger, logging.FileHandler(path, encoding="utf-8"), level)

    return logger


logger = setup_logger()


def get_module_logger(module_name: str) -> logging.Logger:
    """Child logger such as "page_scraper.fetcher"; records carry the stage name."""
    return logging.getLogger(f"page_scraper.{module_name}")
