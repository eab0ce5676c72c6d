"""Utility modules."""

from .logging_config import setup_logging, get_logger
from .config import Config

__all__ = ["setup_logging", "get_logger", "Config"]
