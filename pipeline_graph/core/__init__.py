"""Core configuration and utilities.

This package contains core functionality including:
- Configuration management (config.py)
- Logging setup (logging.py)
- Root exception class (exceptions.py)
"""

from pipeline_graph.core.config import Settings, get_settings, settings
from pipeline_graph.core.exceptions import AppError
from pipeline_graph.core.logging import LogContext, get_logger, setup_logging

__all__ = [
    "AppError",
    "LogContext",
    "Settings",
    "get_logger",
    "get_settings",
    "settings",
    "setup_logging",
]
