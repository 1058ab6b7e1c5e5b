"""
Store format resolution.

Maps an explicit format hint, or failing that a file extension, onto the
store format sops should use for the file. The same extension table serves
the data source and the encrypted file resource.
"""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath

from sopsfile.core.errors import UnsupportedFormatError


class StoreFormat(str, Enum):
    """Structured store formats understood by sops."""

    JSON = "json"
    YAML = "yaml"
    DOTENV = "dotenv"
    INI = "ini"
    BINARY = "binary"

    @property
    def extension(self) -> str:
        return _DEFAULT_EXTENSIONS[self]


EXTENSION_FORMATS: dict[str, StoreFormat] = {
    ".json": StoreFormat.JSON,
    ".yaml": StoreFormat.YAML,
    ".yml": StoreFormat.YAML,
    ".env": StoreFormat.DOTENV,
    ".ini": StoreFormat.INI,
}

_DEFAULT_EXTENSIONS: dict[StoreFormat, str] = {
    StoreFormat.JSON: ".json",
    StoreFormat.YAML: ".yaml",
    StoreFormat.DOTENV: ".env",
    StoreFormat.INI: ".ini",
    StoreFormat.BINARY: ".bin",
}

# "raw" is what users of the data source historically typed for binary files
HINT_ALIASES: dict[str, StoreFormat] = {"raw": StoreFormat.BINARY}

STRUCTURED_FORMATS: tuple[StoreFormat, ...] = (
    StoreFormat.JSON,
    StoreFormat.YAML,
    StoreFormat.DOTENV,
    StoreFormat.INI,
)


def supported_formats(allow_binary: bool = False) -> tuple[str, ...]:
    formats = [fmt.value for fmt in STRUCTURED_FORMATS]
    if allow_binary:
        formats.append(StoreFormat.BINARY.value)
    return tuple(formats)


def parse_format_hint(hint: str, *, allow_binary: bool = False) -> StoreFormat:
    """Validate an explicit format identifier."""
    normalized = hint.strip().lower()
    fmt = HINT_ALIASES.get(normalized)
    if fmt is None:
        try:
            fmt = StoreFormat(normalized)
        except ValueError:
            raise UnsupportedFormatError(hint, supported_formats(allow_binary)) from None
    if fmt is StoreFormat.BINARY and not allow_binary:
        raise UnsupportedFormatError(hint, supported_formats(allow_binary))
    return fmt


def format_for_path(path: str | PurePath, *, hint_attribute: str = "input_type") -> StoreFormat:
    """Infer the store format from a file extension."""
    name = PurePath(path).name
    # Unlike PurePath.suffix, a bare ".env" counts as an extension
    dot = name.rfind(".")
    ext = name[dot:].lower() if dot >= 0 else ""
    fmt = EXTENSION_FORMATS.get(ext)
    if fmt is None:
        raise UnsupportedFormatError(ext, supported_formats(), hint_attribute=hint_attribute)
    return fmt


def resolve_format(
    hint: str | None,
    path: str | PurePath,
    *,
    allow_binary: bool = False,
    hint_attribute: str = "input_type",
) -> StoreFormat:
    """Resolve the store format for ``path``.

    A non-empty ``hint`` wins and is validated against the supported set;
    otherwise the extension decides. Binary passthrough is only accepted
    when ``allow_binary`` is set, which the resource does and the data
    source does not.

    Raises:
        UnsupportedFormatError: unknown hint or extension
    """
    if hint:
        return parse_format_hint(hint, allow_binary=allow_binary)
    return format_for_path(path, hint_attribute=hint_attribute)
