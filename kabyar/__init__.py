"""
kabyar package - Kay AI study tools
"""

from .config import settings
from .helpers import debug_log, get_logger, configure_structlog

__all__ = [
    "settings",
    "debug_log",
    "get_logger",
    "configure_structlog",
]
