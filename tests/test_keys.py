"""
Tests for store key construction.
"""

import pytest

from otp_core.keys import KeyKind, OTPKeys, build_key, mask_identity, normalize_identity


class TestKeys:
    """Tests for typed key builders."""

    def test_keys_per_entity_kind(self):
        """Each entity kind should get its own namespace."""
        identity = "a@x.com"

        assert OTPKeys.request_count(identity) == "otp_request_count:a@x.com"
        assert OTPKeys.spam_lock(identity) == "otp_spam_lock:a@x.com"
        assert OTPKeys.cooldown(identity) == "otp_cooldown:a@x.com"
        assert OTPKeys.challenge(identity) == "otp:a@x.com"
        assert OTPKeys.failed_attempts(identity) == "otp_failed_attempts:a@x.com"
        assert OTPKeys.attempt_lock(identity) == "otp_lock:a@x.com"
        assert OTPKeys.registration_data(identity) == "registration_data:a@x.com"

    def test_keys_do_not_collide(self):
        """No two entity kinds should share a key for one identity."""
        keys = {build_key(kind, "a@x.com") for kind in KeyKind}

        assert len(keys) == len(KeyKind)

    def test_empty_identity_rejected(self):
        """Should refuse to build a key without an identity."""
        with pytest.raises(ValueError):
            build_key(KeyKind.CHALLENGE, "")

    def test_normalize_identity(self):
        """Should strip and lower-case emails."""
        assert normalize_identity("  Alice@Example.COM ") == "alice@example.com"

    def test_mask_identity(self):
        """Should keep only the first character of the local part."""
        assert mask_identity("alice@example.com") == "a***@example.com"
        assert "alice" not in mask_identity("alice")
