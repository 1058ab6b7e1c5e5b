"""Root test configuration."""

import base64
import logging
import os

import pytest
import structlog
from sopsfile.config.settings import get_settings
from sopsfile.core.errors import DecryptionError


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class FakeEngine:
    """In-memory stand-in for sops: base64 behind a marker prefix."""

    PREFIX = b"ENC[fake]:"

    def __init__(self):
        self.encrypt_calls = []
        self.decrypt_calls = []

    def encrypt(self, plaintext, options):
        self.encrypt_calls.append((plaintext, options))
        return self.PREFIX + base64.b64encode(plaintext)

    def decrypt(self, ciphertext, fmt, *, key_services=()):
        self.decrypt_calls.append((ciphertext, fmt, tuple(key_services)))
        if not ciphertext.startswith(self.PREFIX):
            raise DecryptionError(
                "sops metadata not found",
                user_message="Error unmarshalling input: sops metadata not found",
            )
        return base64.b64decode(ciphertext[len(self.PREFIX):])

    @classmethod
    def seal(cls, plaintext: bytes) -> bytes:
        return cls.PREFIX + base64.b64encode(plaintext)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Isolate tests from SOPSFILE_* variables and the settings cache."""
    for name in list(os.environ):
        if name.startswith("SOPSFILE_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_engine():
    return FakeEngine()
