"""
sopsfile configuration.

Settings are read from SOPSFILE_* environment variables or a local .env file.
"""

from sopsfile.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
