"""Resolve the plaintext a resource should encrypt."""

from __future__ import annotations

import base64
import binascii

from sopsfile.core.errors import FileOperationError, ValidationError
from sopsfile.resources.models import EncryptedFileSpec


def resolve_content(spec: EncryptedFileSpec) -> bytes:
    """
    Pick the plaintext from the first declared source.

    Precedence: sensitive_content, content_base64, source file, content.
    An undeclared content resolves to empty bytes.

    Raises:
        ValidationError: content_base64 is not valid base64
        FileOperationError: the source file cannot be read
    """
    if spec.sensitive_content:
        return spec.sensitive_content.encode("utf-8")

    if spec.content_base64:
        try:
            return base64.b64decode(spec.content_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError(
                f"content_base64 is not valid base64: {exc}",
                attribute="content_base64",
            ) from exc

    if spec.source:
        try:
            with open(spec.source, "rb") as handle:
                return handle.read()
        except OSError as exc:
            raise FileOperationError.from_os_error(exc, attribute="source") from exc

    return (spec.content or "").encode("utf-8")
