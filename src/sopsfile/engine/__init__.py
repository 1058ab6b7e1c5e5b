"""Encryption engine contract and the sops-backed implementation."""

from sopsfile.engine.base import DEFAULT_CIPHER, EncryptionEngine, EncryptOptions
from sopsfile.engine.sops import SopsEngine, render_creation_rule

__all__ = [
    "DEFAULT_CIPHER",
    "EncryptOptions",
    "EncryptionEngine",
    "SopsEngine",
    "render_creation_rule",
]
