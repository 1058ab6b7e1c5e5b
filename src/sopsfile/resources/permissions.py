"""File and directory permission strings (``"0600"``, ``"755"``)."""

from __future__ import annotations

from sopsfile.core.errors import ValidationError

DEFAULT_MODE = "0777"
MAX_MODE = 0o777


def validate_mode(value: object, attribute: str = "file_permission") -> str:
    """Check a permission string is 3 or 4 octal digits within 0..0777."""
    if not isinstance(value, str):
        raise ValidationError(
            f"expected type of {attribute} to be string",
            {"value": repr(value)},
            attribute=attribute,
        )

    if len(value) > 4 or len(value) < 3:
        raise ValidationError(
            f"bad mode for file - string length should be 3 or 4 digits: {value}",
            {"value": value},
            attribute=attribute,
        )

    octal = value != "" and all(ch in "01234567" for ch in value)
    if not octal or int(value, 8) > MAX_MODE:
        raise ValidationError(
            f"bad mode for file - must be three octal digits: {value}",
            {"value": value},
            attribute=attribute,
        )
    return value


def parse_mode(value: str, attribute: str = "file_permission") -> int:
    """Parse a validated permission string into a numeric mode."""
    return int(validate_mode(value, attribute), 8)
