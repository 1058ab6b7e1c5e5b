from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from sopsfile.keys.models import KeyGroups
from sopsfile.stores.formats import StoreFormat

DEFAULT_CIPHER = "aes256_gcm"


@dataclass(frozen=True)
class EncryptOptions:
    """Everything the engine needs to encrypt one document."""

    input_format: StoreFormat
    output_format: StoreFormat
    key_groups: KeyGroups
    input_path: str = ""
    encrypted_regex: str | None = None
    cipher: str = DEFAULT_CIPHER
    key_services: tuple[str, ...] = ()

    @property
    def group_threshold(self) -> int:
        return self.key_groups.threshold


class EncryptionEngine(Protocol):
    """Contract for the envelope encryption engine.

    Key services are passed with every call so an engine instance carries
    no per-operation state and can serve concurrent resources.
    """

    def encrypt(self, plaintext: bytes, options: EncryptOptions) -> bytes:
        ...

    def decrypt(
        self,
        ciphertext: bytes,
        fmt: StoreFormat,
        *,
        key_services: Sequence[str] = (),
    ) -> bytes:
        ...
