"""Logging setup shared by all audio ingest modules."""

import logging
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

from ..config.settings import Settings

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure the root logger from settings.

    Args:
        settings: Application settings; defaults are used when omitted
    """
    settings = settings or Settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if settings.log_format == "json":
        handler.setFormatter(
            JsonFormatter(_JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
        )
    else:
        handler.setFormatter(
            logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
    root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
