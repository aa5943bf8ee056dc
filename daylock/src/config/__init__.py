"""
Configuration module for the Daylock reminder engine.
"""

from daylock.src.config.settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
