"""
sops binary integration.

sops performs the actual envelope encryption: it generates the data key,
encrypts leaf values with AES256-GCM and wraps the data key for every
declared master key. This module drives the binary for a single operation
at a time, rendering the key groups into a throwaway creation rule.

Installation:
    brew install sops
    # or download from https://github.com/getsops/sops/releases

See: https://github.com/getsops/sops
"""

from __future__ import annotations

import os
import re
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Sequence

import structlog
import yaml

from sopsfile.config.settings import get_settings
from sopsfile.core.errors import ConfigurationError, DecryptionError, EncryptionError
from sopsfile.engine.base import DEFAULT_CIPHER, EncryptOptions
from sopsfile.keys.models import KeyBackend, KeyGroups
from sopsfile.stores.formats import StoreFormat

logger = structlog.get_logger()

SUPPORTED_CIPHERS = (DEFAULT_CIPHER,)

# Key names sops expects inside a key_groups entry
_GROUP_KEYS = {
    KeyBackend.KMS: "kms",
    KeyBackend.GCP_KMS: "gcp_kms",
    KeyBackend.AGE: "age",
}


def render_creation_rule(key_groups: KeyGroups, encrypted_regex: str | None = None) -> dict[str, Any]:
    """
    Render key groups as a .sops.yaml creation rule.

    With several groups sops would otherwise demand every group; a zero
    threshold maps to a shamir threshold of 1 so any single group decrypts.
    """
    rule: dict[str, Any] = {
        "key_groups": [
            {_GROUP_KEYS[group.backend]: [key.to_sops() for key in group]} for group in key_groups
        ]
    }
    if len(key_groups) > 1:
        rule["shamir_threshold"] = key_groups.threshold or 1
    if encrypted_regex:
        rule["encrypted_regex"] = encrypted_regex
    return {"creation_rules": [rule]}


def _stderr_text(stderr: bytes | str | None) -> str:
    if not stderr:
        return ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    return stderr.strip()


class SopsEngine:
    """
    Encryption engine backed by the sops CLI.

    Example:
        engine = SopsEngine()
        ciphertext = engine.encrypt(b"password: hunter2\\n", options)
        plaintext = engine.decrypt(ciphertext, StoreFormat.YAML)
    """

    def __init__(
        self,
        binary: str | None = None,
        timeout: int | None = None,
        key_services: Sequence[str] | None = None,
    ):
        settings = get_settings()
        self.binary = binary or settings.sops_binary
        self.timeout = timeout or settings.sops_timeout
        self.key_services = tuple(settings.key_services if key_services is None else key_services)

    @property
    def is_available(self) -> bool:
        """Check if sops is installed."""
        return shutil.which(self.binary) is not None

    def get_version(self) -> str | None:
        """Get sops version string."""
        if not self.is_available:
            return None
        try:
            result = subprocess.run(
                [self.binary, "--version"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            match = re.search(r"(\d+\.\d+\.\d+)", result.stdout)
            return match.group(1) if match else result.stdout.strip()
        except (subprocess.TimeoutExpired, subprocess.SubprocessError):
            return None

    def _keyservice_args(self, key_services: Sequence[str]) -> list[str]:
        args: list[str] = []
        for uri in key_services or self.key_services:
            args.extend(["--keyservice", uri])
        return args

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess[bytes]:
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError:
            raise ConfigurationError(
                f"sops binary {self.binary!r} not found; install sops or set SOPSFILE_SOPS_BINARY",
                {"binary": self.binary},
            ) from None

    def encrypt(self, plaintext: bytes, options: EncryptOptions) -> bytes:
        """
        Encrypt ``plaintext`` for the given key groups.

        Raises:
            ConfigurationError: sops is not installed or the cipher is unsupported
            EncryptionError: sops rejected the document or could not reach a key backend
        """
        if options.cipher not in SUPPORTED_CIPHERS:
            raise ConfigurationError(
                f"unsupported cipher {options.cipher!r}, sops only supports {DEFAULT_CIPHER}",
                {"cipher": options.cipher},
            )

        with tempfile.TemporaryDirectory(prefix="sopsfile-") as tmpdir:
            config_path = Path(tmpdir) / ".sops.yaml"
            config_path.write_text(
                yaml.safe_dump(render_creation_rule(options.key_groups, options.encrypted_regex))
            )
            plain_path = Path(tmpdir) / f"plaintext{options.input_format.extension}"
            fd = os.open(plain_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as handle:
                handle.write(plaintext)

            cmd = [
                self.binary,
                "--config",
                str(config_path),
                *self._keyservice_args(options.key_services),
                "--encrypt",
                "--input-type",
                options.input_format.value,
                "--output-type",
                options.output_format.value,
                str(plain_path),
            ]
            try:
                result = self._run(cmd)
            except subprocess.TimeoutExpired:
                raise EncryptionError(
                    f"sops timed out after {self.timeout}s encrypting {options.input_path or 'content'}",
                    {"timeout": self.timeout},
                ) from None

        if result.returncode != 0:
            stderr = _stderr_text(result.stderr)
            logger.error(
                "sops_command_failed",
                operation="encrypt",
                returncode=result.returncode,
                path=options.input_path,
            )
            raise EncryptionError(
                stderr or f"sops exited with status {result.returncode}",
                {"returncode": result.returncode},
            )

        logger.debug(
            "sops_encrypted",
            path=options.input_path,
            backends=[backend.value for backend in options.key_groups.backends],
        )
        return result.stdout

    def decrypt(
        self,
        ciphertext: bytes,
        fmt: StoreFormat,
        *,
        key_services: Sequence[str] = (),
    ) -> bytes:
        """
        Decrypt a sops document.

        Raises:
            ConfigurationError: sops is not installed
            DecryptionError: the document is not a valid sops file or no
                declared key could unwrap the data key
        """
        with tempfile.TemporaryDirectory(prefix="sopsfile-") as tmpdir:
            cipher_path = Path(tmpdir) / f"ciphertext{fmt.extension}"
            cipher_path.write_bytes(ciphertext)

            cmd = [
                self.binary,
                *self._keyservice_args(key_services),
                "--decrypt",
                "--input-type",
                fmt.value,
                "--output-type",
                fmt.value,
                str(cipher_path),
            ]
            try:
                result = self._run(cmd)
            except subprocess.TimeoutExpired:
                raise DecryptionError(
                    f"sops timed out after {self.timeout}s",
                    details={"timeout": self.timeout},
                ) from None

        if result.returncode != 0:
            logger.error("sops_command_failed", operation="decrypt", returncode=result.returncode)
            raise DecryptionError(
                f"sops exited with status {result.returncode}",
                user_message=_stderr_text(result.stderr) or None,
                details={"returncode": result.returncode},
            )
        return result.stdout
