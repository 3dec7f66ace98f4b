"""Structured logging: JSON formatter and setup."""

from shared.logging.formatter import JSONLogFormatter
from shared.logging.setup import configure_logging

__all__ = ["JSONLogFormatter", "configure_logging"]
