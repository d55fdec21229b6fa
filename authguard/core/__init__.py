"""Core: config, constants, cache keys, and application bootstrap.

Single place for settings and shared constants.
"""

from authguard.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
