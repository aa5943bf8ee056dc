"""
Utility modules for the Daylock reminder engine.

- logging_config: Structured logging (console in development, JSON files in production)
"""

from daylock.src.utils.logging_config import get_logger, init_logging

__all__ = [
    "get_logger",
    "init_logging",
]
