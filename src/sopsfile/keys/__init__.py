"""Key declarations and key group construction."""

from sopsfile.keys.builder import build_key_groups, parse_encryption_type
from sopsfile.keys.models import (
    AgeKey,
    GCPKMSKey,
    KeyBackend,
    KeyGroup,
    KeyGroups,
    KeySpec,
    KMSKey,
)

__all__ = [
    "AgeKey",
    "GCPKMSKey",
    "KMSKey",
    "KeyBackend",
    "KeyGroup",
    "KeyGroups",
    "KeySpec",
    "build_key_groups",
    "parse_encryption_type",
]
