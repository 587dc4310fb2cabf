"""Utility functions and helpers.

Logging setup shared by all modules.
"""

from .logging import setup_logger, get_logger

__all__ = ["setup_logger", "get_logger"]
