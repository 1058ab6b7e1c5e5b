"""
Data models for encrypted file resources.

An encrypted file resource is either ABSENT or PRESENT. While present its
identity is the lowercase hex SHA-1 of the plaintext last written; an empty
identity means the orchestrator must (re)create the file.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any

from sopsfile.core.errors import ValidationError
from sopsfile.resources.permissions import DEFAULT_MODE, validate_mode


def content_identity(plaintext: bytes) -> str:
    """Fingerprint used as the resource identity."""
    return hashlib.sha1(plaintext).hexdigest()


class ResourceState(Enum):
    """Lifecycle state of an encrypted file resource."""

    ABSENT = "absent"
    PRESENT = "present"


class ReadOutcome(Enum):
    """Why a Read left the resource in its current state."""

    UNCHANGED = "unchanged"  # Decrypted content still matches the identity
    MISSING = "missing"  # File is gone, must recreate
    DRIFTED = "drifted"  # Decrypted content no longer matches, must recreate


@dataclass(frozen=True)
class EncryptedFileSpec:
    """Declared attributes of an encrypted file. All are fixed at creation."""

    filename: str
    encryption_type: str
    content: str | None = None
    sensitive_content: str | None = None
    content_base64: str | None = None
    source: str | None = None
    kms: dict[str, str] = field(default_factory=dict)
    gcpkms: dict[str, str] = field(default_factory=dict)
    age: dict[str, str] = field(default_factory=dict)
    file_permission: str = DEFAULT_MODE
    directory_permission: str = DEFAULT_MODE
    encrypted_regex: str | None = None
    input_type: str | None = None
    group_threshold: int = 0

    def __post_init__(self) -> None:
        if not self.filename:
            raise ValidationError("filename is required", attribute="filename")
        validate_mode(self.file_permission, "file_permission")
        validate_mode(self.directory_permission, "directory_permission")

    def digest(self) -> str:
        """Fingerprint of every declared attribute, used to spot replacements."""
        payload = json.dumps(asdict(self), sort_keys=True)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class EncryptedFileState:
    """A resource as the orchestrator tracks it: declared spec plus identity."""

    spec: EncryptedFileSpec
    id: str = ""

    @property
    def state(self) -> ResourceState:
        return ResourceState.PRESENT if self.id else ResourceState.ABSENT

    @property
    def is_present(self) -> bool:
        return self.state is ResourceState.PRESENT

    def cleared(self) -> EncryptedFileState:
        return replace(self, id="")


@dataclass(frozen=True)
class ReadResult:
    """Resource state after a Read and the reason for it."""

    state: EncryptedFileState
    outcome: ReadOutcome

    @property
    def needs_recreate(self) -> bool:
        return self.outcome is not ReadOutcome.UNCHANGED


@dataclass(frozen=True)
class DataSourceResult:
    """Outputs of the encrypted file data source. Both fields are sensitive."""

    source_file: str
    data: dict[str, str]
    raw: str

    def to_dict(self) -> dict[str, Any]:
        return {"source_file": self.source_file, "data": dict(self.data), "raw": self.raw}
