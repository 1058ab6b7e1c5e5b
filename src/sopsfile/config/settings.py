"""
Application settings using Pydantic.

Provides environment-based configuration loading with SOPSFILE_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # sops binary
    sops_binary: str = "sops"
    sops_timeout: int = 60

    # Key service URIs handed to sops per operation; empty means the local key service
    key_services: list[str] = []

    # Defaults applied when a manifest omits permissions
    default_file_permission: str = "0777"
    default_directory_permission: str = "0777"

    # Orchestration
    state_file: str = "sopsfile.state.json"

    # Warn when keys are declared for a backend encryption_type does not select
    warn_inactive_keys: bool = True

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "SOPSFILE_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
