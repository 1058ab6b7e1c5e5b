"""
Manifest loading.

A manifest declares the encrypted files to manage:

    resources:
      - filename: secrets/app.enc.yaml
        encryption_type: age
        age:
          age1ql3z7hjy54pw3hyww5ayyfg7zqgvc7w3j2elw8zmrj2kg5sfn9aqmcac8p: ""
        data:
          db:
            password: hunter2

``data`` is serialized in the format of ``filename`` and used as
``content``. Omitted permissions fall back to the configured defaults.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import structlog
import yaml

from sopsfile.config.settings import get_settings
from sopsfile.core.errors import SopsFileError, ValidationError
from sopsfile.resources.models import EncryptedFileSpec
from sopsfile.stores.codecs import encode
from sopsfile.stores.formats import resolve_format

logger = structlog.get_logger()

KEY_MAP_FIELDS = ("kms", "gcpkms", "age")
PERMISSION_FIELDS = ("file_permission", "directory_permission")
SPEC_FIELDS = frozenset(f.name for f in fields(EncryptedFileSpec))
MANIFEST_ONLY_FIELDS = frozenset({"data"})


class ManifestLoadError(ValidationError):
    """Raised when a manifest cannot be loaded."""


def _key_map(value: Any, name: str, index: int) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ManifestLoadError(
            f"resources[{index}].{name} must be a mapping of key -> value",
            attribute=name,
        )
    return {str(k): "" if v is None else str(v) for k, v in value.items()}


def parse_resource(raw: Any, index: int = 0) -> EncryptedFileSpec:
    """Build a validated EncryptedFileSpec from one manifest entry."""
    if not isinstance(raw, dict):
        raise ManifestLoadError(f"resources[{index}] must be a mapping")

    unknown = set(raw) - SPEC_FIELDS - MANIFEST_ONLY_FIELDS
    if unknown:
        raise ManifestLoadError(
            f"resources[{index}] has unknown attributes: {', '.join(sorted(unknown))}",
            {"attributes": sorted(unknown)},
        )
    for required in ("filename", "encryption_type"):
        if not raw.get(required):
            raise ManifestLoadError(f"resources[{index}].{required} is required", attribute=required)

    settings = get_settings()
    attrs: dict[str, Any] = {
        "file_permission": settings.default_file_permission,
        "directory_permission": settings.default_directory_permission,
    }
    for name, value in raw.items():
        if name in KEY_MAP_FIELDS:
            attrs[name] = _key_map(value, name, index)
        elif name in PERMISSION_FIELDS:
            if value is None:
                continue
            # YAML reads an unquoted 0644 as the octal int 420
            if not isinstance(value, str):
                raise ManifestLoadError(
                    f"resources[{index}].{name} must be a quoted string such as \"0644\", "
                    f"got {value!r}",
                    attribute=name,
                )
            attrs[name] = value
        elif name == "group_threshold":
            try:
                attrs[name] = int(value or 0)
            except (TypeError, ValueError):
                raise ManifestLoadError(
                    f"resources[{index}].group_threshold must be an integer",
                    attribute=name,
                ) from None
        elif name != "data" and value is not None:
            attrs[name] = str(value)

    data = raw.get("data")
    if data is not None:
        if "content" in attrs:
            raise ManifestLoadError(
                f"resources[{index}] declares both content and data",
                attribute="data",
            )
        if not isinstance(data, dict):
            raise ManifestLoadError(f"resources[{index}].data must be a mapping", attribute="data")
        fmt = resolve_format(attrs.get("input_type"), attrs["filename"], allow_binary=True)
        attrs["content"] = encode(data, fmt).decode("utf-8")

    return EncryptedFileSpec(**attrs)


def load_manifest(path: str | Path) -> list[EncryptedFileSpec]:
    """Load and validate every resource declared in a manifest file."""
    manifest_path = Path(path)
    try:
        with open(manifest_path) as f:
            document = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ManifestLoadError(f"manifest not found: {manifest_path}") from None
    except yaml.YAMLError as exc:
        raise ManifestLoadError(f"invalid YAML in {manifest_path}: {exc}") from exc

    resources = document.get("resources") if isinstance(document, dict) else None
    if not isinstance(resources, list):
        raise ManifestLoadError(f"{manifest_path} must contain a 'resources' list")

    specs: list[EncryptedFileSpec] = []
    seen: set[str] = set()
    for index, raw in enumerate(resources):
        try:
            spec = parse_resource(raw, index)
        except ManifestLoadError:
            raise
        except SopsFileError as exc:
            raise ManifestLoadError(
                f"resources[{index}]: {exc.message}",
                exc.details,
                attribute=exc.attribute,
            ) from exc
        if spec.filename in seen:
            raise ManifestLoadError(
                f"resources[{index}].filename {spec.filename} is declared more than once",
                attribute="filename",
            )
        seen.add(spec.filename)
        specs.append(spec)

    logger.debug("manifest_loaded", path=str(manifest_path), resources=len(specs))
    return specs
