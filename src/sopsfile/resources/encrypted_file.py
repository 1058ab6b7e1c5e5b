"""
Encrypted file resource.

Reconciles a declared secret file against what is on disk:

- create: encrypt the declared plaintext and write it to ``filename``
- read: decrypt the file and compare its fingerprint with the identity,
  clearing the identity when the file is missing or has drifted
- delete: remove the file

There is no update. Any attribute change is a delete followed by a create,
so every transition only needs the declared spec and the stored identity.
Calls for the same filename must be serialized by the caller.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Sequence

import structlog

from sopsfile.config.settings import get_settings
from sopsfile.core.errors import FileOperationError, SopsFileError
from sopsfile.engine.base import EncryptionEngine, EncryptOptions
from sopsfile.keys.builder import build_key_groups
from sopsfile.keys.models import KeyGroups
from sopsfile.resources.content import resolve_content
from sopsfile.resources.models import (
    EncryptedFileSpec,
    EncryptedFileState,
    ReadOutcome,
    ReadResult,
    content_identity,
)
from sopsfile.resources.permissions import parse_mode
from sopsfile.stores.formats import StoreFormat, resolve_format

logger = structlog.get_logger()


@contextmanager
def _attributed(attribute: str) -> Iterator[None]:
    """Attach ``attribute`` to errors that do not already name one."""
    try:
        yield
    except SopsFileError as exc:
        if exc.attribute is None:
            exc.attribute = attribute
        raise
    except OSError as exc:
        raise FileOperationError.from_os_error(exc, attribute=attribute) from exc


class EncryptedFileResource:
    """Create, read and delete sops-encrypted files."""

    def __init__(
        self,
        engine: EncryptionEngine,
        *,
        key_services: Sequence[str] | None = None,
        warn_inactive_keys: bool | None = None,
    ):
        settings = get_settings()
        self.engine = engine
        self.key_services = tuple(settings.key_services if key_services is None else key_services)
        self.warn_inactive_keys = (
            settings.warn_inactive_keys if warn_inactive_keys is None else warn_inactive_keys
        )

    def store_format(self, spec: EncryptedFileSpec) -> StoreFormat:
        """Format sops reads and writes ``spec.filename`` in."""
        with _attributed("input_type" if spec.input_type else "filename"):
            return resolve_format(
                spec.input_type,
                spec.filename,
                allow_binary=True,
                hint_attribute="input_type",
            )

    def key_groups(self, spec: EncryptedFileSpec) -> KeyGroups:
        with _attributed("encryption_type"):
            return build_key_groups(
                spec.encryption_type,
                spec.kms,
                spec.gcpkms,
                spec.age,
                threshold=spec.group_threshold,
                warn_inactive=self.warn_inactive_keys,
            )

    def encrypt(self, spec: EncryptedFileSpec, plaintext: bytes) -> bytes:
        fmt = self.store_format(spec)
        options = EncryptOptions(
            input_format=fmt,
            output_format=fmt,
            key_groups=self.key_groups(spec),
            input_path=spec.filename,
            encrypted_regex=spec.encrypted_regex or None,
            key_services=self.key_services,
        )
        with _attributed("filename"):
            return self.engine.encrypt(plaintext, options)

    def _write(self, spec: EncryptedFileSpec, ciphertext: bytes) -> None:
        destination = spec.filename
        destination_dir = os.path.dirname(destination) or "."

        with _attributed("filename"):
            if not os.path.exists(destination_dir):
                dir_mode = parse_mode(spec.directory_permission, "directory_permission")
                os.makedirs(destination_dir, mode=dir_mode, exist_ok=True)

            file_mode = parse_mode(spec.file_permission, "file_permission")
            fd = os.open(destination, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, file_mode)
            with os.fdopen(fd, "wb") as handle:
                handle.write(ciphertext)
            os.chmod(destination, file_mode)

    def create(self, spec: EncryptedFileSpec) -> ReadResult:
        """
        Encrypt the declared content and write it to disk.

        The identity is the fingerprint of the plaintext, taken before
        encryption. After writing, the file is read back so the returned
        result reflects what is actually on disk.

        Raises:
            SopsFileError: any failure; nothing is recorded as present
        """
        plaintext = resolve_content(spec)
        identity = content_identity(plaintext)

        ciphertext = self.encrypt(spec, plaintext)
        self._write(spec, ciphertext)

        logger.info(
            "encrypted_file_created",
            filename=spec.filename,
            id=identity,
            encryption_type=spec.encryption_type,
        )
        return self.read(EncryptedFileState(spec=spec, id=identity))

    def read(self, state: EncryptedFileState) -> ReadResult:
        """
        Verify the file on disk still decrypts to the recorded content.

        Raises:
            UnsupportedFormatError: the filename extension has no store
            FileOperationError: the file exists but cannot be read
            DecryptionError: the file exists but cannot be decrypted
        """
        spec = state.spec
        path = spec.filename

        if not os.path.exists(path):
            logger.info("encrypted_file_missing", filename=path, id=state.id)
            return ReadResult(state=state.cleared(), outcome=ReadOutcome.MISSING)

        fmt = self.store_format(spec)

        with _attributed("filename"):
            with open(path, "rb") as handle:
                ciphertext = handle.read()
            cleartext = self.engine.decrypt(ciphertext, fmt, key_services=self.key_services)

        actual = content_identity(cleartext)
        if actual != state.id:
            logger.info("drift_detected", filename=path, expected=state.id, actual=actual)
            return ReadResult(state=state.cleared(), outcome=ReadOutcome.DRIFTED)

        return ReadResult(state=state, outcome=ReadOutcome.UNCHANGED)

    def delete(self, state: EncryptedFileState) -> EncryptedFileState:
        """Remove the file. A file that is already gone is not an error."""
        path = state.spec.filename
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.debug("encrypted_file_already_absent", filename=path)
        except OSError as exc:
            raise FileOperationError.from_os_error(exc, attribute="filename") from exc
        else:
            logger.info("encrypted_file_deleted", filename=path, id=state.id)
        return state.cleared()
