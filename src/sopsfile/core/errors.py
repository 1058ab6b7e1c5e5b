"""
Unified error handling for sopsfile.

Every failure raised by the core derives from SopsFileError so the CLI can
map it to a stable exit code and report the offending resource attribute.

Exit Codes:
- 0: Success
- 1: Warning (resources need to be recreated)
- 10: Configuration error
- 11: Encryption engine error (sops failed to encrypt or decrypt)
- 12: Validation error (bad format, bad permission, missing key)
- 13: File I/O error
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, Iterable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    IO_ERROR = 13
    UNKNOWN_ERROR = 127


class SopsFileError(Exception):
    """Base exception for sopsfile errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        attribute: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.attribute = attribute


class ConfigurationError(SopsFileError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class InvalidConfigurationError(ConfigurationError):
    """Raised when declared keys cannot form a usable encryption policy."""


class ProviderError(SopsFileError):
    """Raised when the external encryption engine fails."""

    exit_code = ExitCode.PROVIDER_ERROR


class EncryptionError(ProviderError):
    """Raised when sops fails to encrypt content."""


class DecryptionError(EncryptionError):
    """Raised when ciphertext cannot be decrypted.

    ``user_message`` is the engine's human-facing explanation (for example
    "Failed to get the data key required to decrypt the SOPS file") and
    takes precedence over the raw ``diagnostic`` when rendering.
    """

    def __init__(
        self,
        diagnostic: str,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        attribute: str | None = None,
    ):
        super().__init__(user_message or diagnostic, details, attribute=attribute)
        self.diagnostic = diagnostic
        self.user_message = user_message


class ValidationError(SopsFileError):
    """Raised for validation failures."""

    exit_code = ExitCode.VALIDATION_ERROR


class UnsupportedFormatError(ValidationError):
    """Raised for a file extension or format hint no store understands."""

    def __init__(
        self,
        value: str,
        supported: Iterable[str],
        *,
        hint_attribute: str = "input_type",
        attribute: str | None = None,
    ):
        self.value = value
        self.supported = tuple(supported)
        if value.startswith(".") or value == "":
            message = (
                f"don't know how to decode file with extension {value or '(none)'}, "
                f"set {hint_attribute} to one of: {', '.join(self.supported)}"
            )
        else:
            message = (
                f"unsupported format {value!r}, expected one of: {', '.join(self.supported)}"
            )
        super().__init__(
            message,
            {"value": value, "supported": list(self.supported)},
            attribute=attribute,
        )

    @property
    def extension(self) -> str:
        return self.value


class KeyNotFoundError(SopsFileError):
    """Raised when a flattening root key is absent or null."""

    exit_code = ExitCode.VALIDATION_ERROR

    def __init__(self, key: str):
        super().__init__(f"key {key} not found", {"key": key})
        self.key = key


class FileOperationError(SopsFileError):
    """Raised when reading, writing or creating a path fails."""

    exit_code = ExitCode.IO_ERROR

    def __init__(
        self,
        message: str,
        path: str | None = None,
        *,
        attribute: str | None = None,
    ):
        super().__init__(message, {"path": path} if path else None, attribute=attribute)
        self.path = path

    @classmethod
    def from_os_error(cls, exc: OSError, *, attribute: str | None = None) -> FileOperationError:
        path = exc.filename if isinstance(exc.filename, str) else None
        error = cls(str(exc), path, attribute=attribute)
        error.__cause__ = exc
        return error


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that provides unified error handling.

    Exit codes:
        - SopsFileError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except SopsFileError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        attribute=e.attribute,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                from sopsfile.cli.ux import error as print_error

                print_error(format_error_message(e))
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: SopsFileError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.attribute:
        msg = f"{error.attribute}: {msg}"
    return msg
