"""Tests for webhook signature verification."""

import base64
import hashlib
import hmac as hmac_mod

import pytest

from fleet_integrations.middleware import (
    SIGNATURE_BASE64,
    SIGNATURE_HEX_PREFIXED,
    verify_base64_hmac,
    verify_hex_hmac,
    verify_signature,
)

SECRET = "test-webhook-secret-key"


def _compute_hmac(body: bytes, secret: str) -> str:
    """Compute a valid WooCommerce/Shopify-style HMAC-SHA256 for testing."""
    return base64.b64encode(
        hmac_mod.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    ).decode("utf-8")


def _compute_hex(body: bytes, secret: str) -> str:
    digest = hmac_mod.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class TestVerifyBase64Hmac:
    def test_valid_signature(self):
        body = b'{"id": 501, "status": "processing"}'
        assert verify_base64_hmac(body, _compute_hmac(body, SECRET), SECRET) is True

    def test_tampered_payload_rejected(self):
        body = b'{"id": 501, "status": "processing"}'
        signature = _compute_hmac(body, SECRET)
        tampered_body = b'{"id": 501, "status": "completed"}'
        assert verify_base64_hmac(tampered_body, signature, SECRET) is False

    def test_empty_signature_rejected(self):
        assert verify_base64_hmac(b'{"id": 501}', "", SECRET) is False

    def test_none_signature_rejected(self):
        assert verify_base64_hmac(b'{"id": 501}', None, SECRET) is False

    def test_wrong_secret_rejected(self):
        body = b'{"id": 501}'
        signature = _compute_hmac(body, SECRET)
        assert verify_base64_hmac(body, signature, "wrong-secret") is False

    def test_surrounding_whitespace_tolerated(self):
        body = b'{"id": 501}'
        signature = f"  {_compute_hmac(body, SECRET)}\n"
        assert verify_base64_hmac(body, signature, SECRET) is True

    def test_garbage_signature_rejected(self):
        assert verify_base64_hmac(b'{"id": 501}', "not-valid-base64!", SECRET) is False

    def test_unicode_payload(self):
        body = '{"name": "café résumé"}'.encode("utf-8")
        assert verify_base64_hmac(body, _compute_hmac(body, SECRET), SECRET) is True


class TestVerifyHexHmac:
    def test_valid_signature(self):
        body = b'{"event": "order.created", "data": {}}'
        assert verify_hex_hmac(body, _compute_hex(body, SECRET), SECRET) is True

    def test_missing_prefix_rejected(self):
        body = b'{"event": "order.created"}'
        bare = _compute_hex(body, SECRET)[len("sha256="):]
        assert verify_hex_hmac(body, bare, SECRET) is False

    def test_base64_signature_rejected(self):
        body = b'{"event": "order.created"}'
        assert verify_hex_hmac(body, _compute_hmac(body, SECRET), SECRET) is False


class TestVerifySignature:
    @pytest.mark.parametrize(
        "signature_format,sign",
        [(SIGNATURE_BASE64, _compute_hmac), (SIGNATURE_HEX_PREFIXED, _compute_hex)],
    )
    def test_dispatches_by_format(self, signature_format, sign):
        body = b'{"id": 1}'
        assert verify_signature(signature_format, body, sign(body, SECRET), SECRET)

    def test_unknown_format_raises(self):
        with pytest.raises(KeyError):
            verify_signature("md5", b"{}", "sig", SECRET)
