"""
sopsfile: sops-encrypted secret files as declarative resources.

Example usage:
    from sopsfile import EncryptedFileResource, EncryptedFileSpec, SopsEngine

    resource = EncryptedFileResource(SopsEngine())
    result = resource.create(
        EncryptedFileSpec(
            filename="secrets/app.enc.yaml",
            encryption_type="age",
            content="password: hunter2\\n",
            age={"age1...": ""},
        )
    )
    print(result.state.id)
"""

__version__ = "0.1.0"

from sopsfile.engine import EncryptOptions, EncryptionEngine, SopsEngine
from sopsfile.flatten import flatten, flatten_from_key
from sopsfile.keys import build_key_groups
from sopsfile.resources import (
    EncryptedFileDataSource,
    EncryptedFileResource,
    EncryptedFileSpec,
    EncryptedFileState,
    ReadOutcome,
)
from sopsfile.stores import StoreFormat, resolve_format

__all__ = [
    "__version__",
    "EncryptOptions",
    "EncryptedFileDataSource",
    "EncryptedFileResource",
    "EncryptedFileSpec",
    "EncryptedFileState",
    "EncryptionEngine",
    "ReadOutcome",
    "SopsEngine",
    "StoreFormat",
    "build_key_groups",
    "flatten",
    "flatten_from_key",
    "resolve_format",
]
