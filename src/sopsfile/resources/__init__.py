"""Encrypted file resource, data source and their orchestration helpers."""

from sopsfile.resources.content import resolve_content
from sopsfile.resources.data_source import EncryptedFileDataSource
from sopsfile.resources.encrypted_file import EncryptedFileResource
from sopsfile.resources.manifest import ManifestLoadError, load_manifest, parse_resource
from sopsfile.resources.models import (
    DataSourceResult,
    EncryptedFileSpec,
    EncryptedFileState,
    ReadOutcome,
    ReadResult,
    ResourceState,
    content_identity,
)
from sopsfile.resources.permissions import parse_mode, validate_mode
from sopsfile.resources.state import ResourceStateFile, load_state, save_state

__all__ = [
    # Resource
    "EncryptedFileResource",
    "EncryptedFileSpec",
    "EncryptedFileState",
    "ReadOutcome",
    "ReadResult",
    "ResourceState",
    "content_identity",
    "resolve_content",
    # Data source
    "EncryptedFileDataSource",
    "DataSourceResult",
    # Permissions
    "parse_mode",
    "validate_mode",
    # Orchestration
    "ManifestLoadError",
    "ResourceStateFile",
    "load_manifest",
    "load_state",
    "parse_resource",
    "save_state",
]
