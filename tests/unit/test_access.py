"""
Unit tests for the API key gate.

Tests cover:
- Accepting the configured secret
- Rejecting wrong, missing and near-miss keys
- Credential masking
"""

import logging

import pytest

from tagsoft_server.access import AccessGate, mask_credential
from tagsoft_server.errors import Unauthorized


class TestAccessGate:
    """Tests for AccessGate."""

    @pytest.fixture
    def gate(self):
        return AccessGate("sk_live_secret")

    def test_matching_key_passes(self, gate):
        assert gate.authorize("sk_live_secret") is None

    @pytest.mark.parametrize("credential", [None, "", "sk_live_secreT", "sk_live_secret ", "nope"])
    def test_other_keys_rejected(self, gate, credential):
        with pytest.raises(Unauthorized) as exc_info:
            gate.authorize(credential)

        assert exc_info.value.status_code == 401
        assert exc_info.value.code == "UNAUTHORIZED"

    def test_rejection_carries_masked_key(self, gate):
        with pytest.raises(Unauthorized) as exc_info:
            gate.authorize("sk_test_wrong")

        assert exc_info.value.masked_credential == "sk_...ong"
        assert "sk_test_wrong" not in str(exc_info.value.to_dict())

    def test_rejection_logs_only_masked_key(self, gate, caplog):
        with caplog.at_level(logging.WARNING, logger="tagsoft_server.access"):
            with pytest.raises(Unauthorized):
                gate.authorize("sk_test_wrong")

        assert "sk_...ong" in caplog.text
        assert "sk_test_wrong" not in caplog.text

    def test_non_ascii_secret_matches_utf8_header_bytes(self):
        """Header text arrives latin-1 decoded; the raw UTF-8 bytes must match."""
        gate = AccessGate("clé-secrète-42")
        header_text = "clé-secrète-42".encode("utf-8").decode("latin-1")

        assert gate.authorize(header_text) is None

    def test_non_ascii_secret_rejects_latin1_bytes(self):
        gate = AccessGate("clé-secrète-42")

        with pytest.raises(Unauthorized):
            gate.authorize("clé-secrète-42".encode("latin-1").decode("latin-1"))

    def test_empty_secret_not_allowed(self):
        with pytest.raises(ValueError):
            AccessGate("")


class TestMaskCredential:
    """Tests for mask_credential()."""

    @pytest.mark.parametrize(
        "credential, expected",
        [
            (None, "<missing>"),
            ("", "<missing>"),
            ("a", "***"),
            ("abcdef", "***"),
            ("abcdefg", "abc...efg"),
            ("DEMO_KEY", "DEM...KEY"),
        ],
    )
    def test_masking(self, credential, expected):
        assert mask_credential(credential) == expected
