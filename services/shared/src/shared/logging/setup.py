"""Structured logging configuration shared by all services."""

import logging
import sys

from shared.config.constants import ServiceName
from shared.logging.formatter import JSONLogFormatter


def configure_logging(service: ServiceName, level: int = logging.INFO) -> None:
    """Set up structured JSON logging on the root logger."""
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONLogFormatter(service=service))
    root.addHandler(handler)
