"""
Key declarations and the encryption policy built from them.

A KeyGroup holds the keys declared for one backend; KeyGroups is the
ordered policy handed to the encryption engine together with the group
threshold (0 means a single satisfied group is enough).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Union


class KeyBackend(str, Enum):
    """Key backends a resource can declare keys for."""

    KMS = "kms"
    GCP_KMS = "gcpkms"
    AGE = "age"


@dataclass(frozen=True)
class KMSKey:
    """AWS KMS key, declared as ``arn -> region``."""

    arn: str
    region: str = ""

    backend = KeyBackend.KMS

    @property
    def identifier(self) -> str:
        return self.arn

    def to_sops(self) -> dict[str, Any]:
        return {"arn": self.arn}


@dataclass(frozen=True)
class GCPKMSKey:
    """GCP KMS crypto key, declared as ``resource_id -> ""``."""

    resource_id: str

    backend = KeyBackend.GCP_KMS

    @property
    def identifier(self) -> str:
        return self.resource_id

    def to_sops(self) -> dict[str, Any]:
        return {"resource_id": self.resource_id}


@dataclass(frozen=True)
class AgeKey:
    """age recipient, declared as ``recipient -> ""``."""

    recipient: str

    backend = KeyBackend.AGE

    @property
    def identifier(self) -> str:
        return self.recipient

    def to_sops(self) -> str:
        return self.recipient


KeySpec = Union[KMSKey, GCPKMSKey, AgeKey]


@dataclass(frozen=True)
class KeyGroup:
    """Keys of one backend forming one decryption path."""

    backend: KeyBackend
    keys: tuple[KeySpec, ...]

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[KeySpec]:
        return iter(self.keys)


@dataclass(frozen=True)
class KeyGroups:
    """Ordered key groups plus the group threshold."""

    groups: tuple[KeyGroup, ...]
    threshold: int = 0

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self) -> Iterator[KeyGroup]:
        return iter(self.groups)

    def __getitem__(self, index: int) -> KeyGroup:
        return self.groups[index]

    @property
    def backends(self) -> tuple[KeyBackend, ...]:
        return tuple(group.backend for group in self.groups)
