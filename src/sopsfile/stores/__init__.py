"""Structured store formats and codecs."""

from sopsfile.stores.codecs import decode, encode
from sopsfile.stores.formats import (
    EXTENSION_FORMATS,
    StoreFormat,
    format_for_path,
    parse_format_hint,
    resolve_format,
    supported_formats,
)

__all__ = [
    "EXTENSION_FORMATS",
    "StoreFormat",
    "decode",
    "encode",
    "format_for_path",
    "parse_format_hint",
    "resolve_format",
    "supported_formats",
]
