"""Tests for key group construction."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from sopsfile.core.errors import InvalidConfigurationError
from sopsfile.keys import (
    AgeKey,
    GCPKMSKey,
    KeyBackend,
    KMSKey,
    build_key_groups,
    parse_encryption_type,
)

KMS_ARN = "arn:aws:kms:eu-west-1:111122223333:key/1234abcd-12ab-34cd-56ef-1234567890ab"
GCP_KEY = "projects/acme/locations/global/keyRings/sops/cryptoKeys/app"
AGE_RECIPIENT = "age1ql3z7hjy54pw3hyww5ayyfg7zqgvc7w3j2elw8zmrj2kg5sfn9aqmcac8p"


class TestParseEncryptionType:
    """Tests for the backend selector."""

    def test_single_backend(self):
        """Test a single backend name."""
        assert parse_encryption_type("age") == (KeyBackend.AGE,)

    def test_multiple_backends_keep_order(self):
        """Comma-separated backends keep their order."""
        assert parse_encryption_type("age, kms") == (KeyBackend.AGE, KeyBackend.KMS)

    def test_duplicates_dropped(self):
        """Test repeated backends are collapsed."""
        assert parse_encryption_type("kms,KMS") == (KeyBackend.KMS,)

    def test_unknown_backend(self):
        """Test unknown backends are rejected."""
        with pytest.raises(InvalidConfigurationError) as exc_info:
            parse_encryption_type("pgp")
        assert exc_info.value.attribute == "encryption_type"

    def test_empty_selector(self):
        """Test an empty encryption_type."""
        with pytest.raises(InvalidConfigurationError):
            parse_encryption_type(" , ")


class TestBuildKeyGroups:
    """Tests for build_key_groups()."""

    def test_single_age_recipient(self):
        """Test one age recipient."""
        groups = build_key_groups("age", {}, {}, {"recipient1": ""})
        assert len(groups) == 1
        assert groups[0].backend is KeyBackend.AGE
        assert groups[0].keys == (AgeKey(recipient="recipient1"),)
        assert groups.threshold == 0

    def test_selected_backend_without_keys(self):
        """A selected backend needs at least one key."""
        with pytest.raises(InvalidConfigurationError) as exc_info:
            build_key_groups("kms", {}, {}, {})
        assert exc_info.value.attribute == "kms"

    def test_one_key_per_entry(self):
        """Each map entry becomes one key."""
        groups = build_key_groups("gcpkms", gcpkms={GCP_KEY: "", GCP_KEY + "-2": ""})
        assert [key.identifier for key in groups[0]] == [GCP_KEY, GCP_KEY + "-2"]
        assert all(isinstance(key, GCPKMSKey) for key in groups[0])

    def test_one_group_per_selected_backend(self):
        """Each selected backend gets its own group."""
        groups = build_key_groups(
            "kms,age",
            kms={KMS_ARN: "eu-west-1"},
            age={AGE_RECIPIENT: ""},
        )
        assert groups.backends == (KeyBackend.KMS, KeyBackend.AGE)
        assert groups[0].keys == (KMSKey(arn=KMS_ARN, region="eu-west-1"),)

    def test_kms_region_defaults_from_arn(self):
        """KMS region is taken from the ARN when empty."""
        groups = build_key_groups("kms", kms={KMS_ARN: ""})
        assert groups[0].keys[0].region == "eu-west-1"

    def test_kms_region_mismatch(self):
        """Test a region that contradicts the ARN."""
        with pytest.raises(InvalidConfigurationError, match="eu-west-1"):
            build_key_groups("kms", kms={KMS_ARN: "us-east-1"})

    def test_kms_alias_keeps_declared_region(self):
        """Aliases use the region given in the map."""
        groups = build_key_groups("kms", kms={"alias/app": "us-east-1"})
        assert groups[0].keys[0] == KMSKey(arn="alias/app", region="us-east-1")

    def test_inactive_backend_warns(self):
        """Keys for an unselected backend log a warning."""
        with patch("sopsfile.keys.builder.logger") as mock_logger:
            build_key_groups("age", kms={KMS_ARN: ""}, age={AGE_RECIPIENT: ""})
        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["backend"] == "kms"

    def test_inactive_backend_silent_when_disabled(self):
        """Test the warning can be turned off."""
        with patch("sopsfile.keys.builder.logger") as mock_logger:
            build_key_groups("age", kms={KMS_ARN: ""}, age={AGE_RECIPIENT: ""}, warn_inactive=False)
        mock_logger.warning.assert_not_called()

    def test_threshold_preserved(self):
        """Test group_threshold is carried through."""
        groups = build_key_groups("kms,age", kms={KMS_ARN: ""}, age={AGE_RECIPIENT: ""}, threshold=2)
        assert groups.threshold == 2

    def test_threshold_out_of_range(self):
        """A threshold above the group count is rejected."""
        with pytest.raises(InvalidConfigurationError, match="threshold"):
            build_key_groups("age", age={AGE_RECIPIENT: ""}, threshold=2)
