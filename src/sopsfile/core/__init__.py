"""Core primitives shared across sopsfile."""

from sopsfile.core.errors import (
    ConfigurationError,
    DecryptionError,
    EncryptionError,
    ExitCode,
    FileOperationError,
    InvalidConfigurationError,
    KeyNotFoundError,
    ProviderError,
    SopsFileError,
    UnsupportedFormatError,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "DecryptionError",
    "EncryptionError",
    "ExitCode",
    "FileOperationError",
    "InvalidConfigurationError",
    "KeyNotFoundError",
    "ProviderError",
    "SopsFileError",
    "UnsupportedFormatError",
    "ValidationError",
]
