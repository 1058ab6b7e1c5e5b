"""
Build key groups from a resource's declared key maps.

``encryption_type`` selects which of the declared maps are active. It is a
single backend name (``kms``, ``gcpkms``, ``age``) or a comma separated list
of them; each selected backend contributes one KeyGroup, in selector order,
with one key per map entry.
"""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from sopsfile.core.errors import InvalidConfigurationError
from sopsfile.keys.models import AgeKey, GCPKMSKey, KeyBackend, KeyGroup, KeyGroups, KeySpec, KMSKey

logger = structlog.get_logger()


def parse_encryption_type(encryption_type: str) -> tuple[KeyBackend, ...]:
    """Parse the backend selector, preserving order and dropping repeats."""
    selected: list[KeyBackend] = []
    for raw in encryption_type.split(","):
        name = raw.strip().lower()
        if not name:
            continue
        try:
            backend = KeyBackend(name)
        except ValueError:
            supported = ", ".join(b.value for b in KeyBackend)
            raise InvalidConfigurationError(
                f"unknown encryption_type {name!r}, expected one of: {supported}",
                {"encryption_type": encryption_type},
                attribute="encryption_type",
            ) from None
        if backend not in selected:
            selected.append(backend)

    if not selected:
        raise InvalidConfigurationError(
            "encryption_type does not select any key backend",
            {"encryption_type": encryption_type},
            attribute="encryption_type",
        )
    return tuple(selected)


def _kms_region(arn: str) -> str | None:
    # arn:aws:kms:<region>:<account>:key/<id>
    parts = arn.split(":")
    if len(parts) >= 6 and parts[0] == "arn" and parts[2] == "kms":
        return parts[3]
    return None


def _kms_key(arn: str, region: str) -> KMSKey:
    arn_region = _kms_region(arn)
    if region and arn_region and region != arn_region:
        raise InvalidConfigurationError(
            f"kms key {arn} lives in {arn_region}, not {region}",
            {"arn": arn, "region": region},
            attribute="kms",
        )
    return KMSKey(arn=arn, region=region or arn_region or "")


def _build_keys(backend: KeyBackend, entries: Mapping[str, str]) -> tuple[KeySpec, ...]:
    if backend is KeyBackend.KMS:
        return tuple(_kms_key(arn, region or "") for arn, region in entries.items())
    if backend is KeyBackend.GCP_KMS:
        return tuple(GCPKMSKey(resource_id=resource_id) for resource_id in entries)
    return tuple(AgeKey(recipient=recipient) for recipient in entries)


def build_key_groups(
    encryption_type: str,
    kms: Mapping[str, str] | None = None,
    gcpkms: Mapping[str, str] | None = None,
    age: Mapping[str, str] | None = None,
    *,
    threshold: int = 0,
    warn_inactive: bool = True,
) -> KeyGroups:
    """
    Turn declared key maps into the key groups sops encrypts for.

    Args:
        encryption_type: Backend selector, e.g. "age" or "kms,age"
        kms: KMS key ARN -> region (region may be empty)
        gcpkms: GCP KMS resource id -> unused value
        age: age recipient -> unused value
        threshold: Number of groups required to decrypt, 0 for any one
        warn_inactive: Log keys declared for backends that are not selected

    Returns:
        KeyGroups with one group per selected backend

    Raises:
        InvalidConfigurationError: unknown or empty selector, a selected
            backend without keys, or an out-of-range threshold
    """
    declared: dict[KeyBackend, Mapping[str, str]] = {
        KeyBackend.KMS: kms or {},
        KeyBackend.GCP_KMS: gcpkms or {},
        KeyBackend.AGE: age or {},
    }
    selected = parse_encryption_type(encryption_type)

    groups: list[KeyGroup] = []
    for backend in selected:
        entries = declared[backend]
        if not entries:
            raise InvalidConfigurationError(
                f"encryption_type selects {backend.value} but no {backend.value} keys are declared",
                {"encryption_type": encryption_type},
                attribute=backend.value,
            )
        groups.append(KeyGroup(backend=backend, keys=_build_keys(backend, entries)))

    if warn_inactive:
        for backend, entries in declared.items():
            if entries and backend not in selected:
                logger.warning(
                    "inactive_key_backend_ignored",
                    backend=backend.value,
                    keys=len(entries),
                    encryption_type=encryption_type,
                )

    if threshold < 0 or threshold > len(groups):
        raise InvalidConfigurationError(
            f"group threshold {threshold} must be between 0 and {len(groups)}",
            {"threshold": threshold},
        )

    return KeyGroups(groups=tuple(groups), threshold=threshold)
