"""
Read-only access to an existing sops file.

Decrypts ``source_file`` and exposes its contents both as a flat
dot-addressed map (``data``) and as the decrypted document (``raw``).
"""

from __future__ import annotations

from typing import Sequence

import structlog

from sopsfile.config.settings import get_settings
from sopsfile.core.errors import FileOperationError, SopsFileError
from sopsfile.engine.base import EncryptionEngine
from sopsfile.flatten import flatten, flatten_from_key
from sopsfile.resources.models import DataSourceResult
from sopsfile.stores.codecs import decode
from sopsfile.stores.formats import resolve_format

logger = structlog.get_logger()


class EncryptedFileDataSource:
    """Decrypt and flatten sops files for consumption elsewhere."""

    def __init__(self, engine: EncryptionEngine, *, key_services: Sequence[str] | None = None):
        settings = get_settings()
        self.engine = engine
        self.key_services = tuple(settings.key_services if key_services is None else key_services)

    def read(
        self,
        source_file: str,
        input_type: str | None = None,
        *,
        key: str | None = None,
    ) -> DataSourceResult:
        """
        Decrypt ``source_file``.

        Args:
            source_file: Path to the encrypted file
            input_type: Explicit format, otherwise inferred from the extension
            key: Only expose the subtree under this top-level key

        Raises:
            FileOperationError: the file cannot be read
            UnsupportedFormatError: the format is unknown or binary
            DecryptionError: sops cannot decrypt the file
            KeyNotFoundError: ``key`` is not present in the document
        """
        try:
            with open(source_file, "rb") as handle:
                content = handle.read()
        except OSError as exc:
            raise FileOperationError.from_os_error(exc, attribute="source_file") from exc

        try:
            fmt = resolve_format(input_type, source_file, hint_attribute="input_type")
        except SopsFileError as exc:
            exc.attribute = "input_type" if input_type else "source_file"
            raise

        try:
            cleartext = self.engine.decrypt(content, fmt, key_services=self.key_services)
        except SopsFileError as exc:
            exc.attribute = exc.attribute or "source_file"
            raise

        tree = decode(cleartext, fmt)
        data = flatten_from_key(tree, key) if key else flatten(tree)

        logger.debug("data_source_read", source_file=source_file, format=fmt.value, keys=len(data))
        return DataSourceResult(
            source_file=source_file,
            data=data,
            raw=cleartext.decode("utf-8", errors="replace"),
        )
