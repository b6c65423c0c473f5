import base64
import hashlib
import hmac

SIGNATURE_BASE64 = "base64"
SIGNATURE_HEX_PREFIXED = "hex"


def _digest(request_body: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), request_body, hashlib.sha256).digest()


def verify_base64_hmac(request_body: bytes, signature: str, secret: str) -> bool:
    """Verify a Base64-encoded HMAC-SHA256 signature of the raw body.

    WooCommerce (``X-WC-Webhook-Signature``) and Shopify
    (``X-Shopify-Hmac-Sha256``) both sign webhooks this way, using the
    shared webhook secret as the key.

    Args:
        request_body: The raw HTTP request body bytes.
        signature: The signature header value.
        secret: The company's webhook secret.

    Returns:
        True if the signature is valid, False otherwise.
    """
    computed = base64.b64encode(_digest(request_body, secret)).decode("utf-8")
    return hmac.compare_digest(computed, (signature or "").strip())


def verify_hex_hmac(request_body: bytes, signature: str, secret: str) -> bool:
    """Verify a ``sha256=<hexdigest>`` signature, as sent by generic senders."""
    computed = "sha256=" + _digest(request_body, secret).hex()
    return hmac.compare_digest(computed, (signature or "").strip())


_VERIFIERS = {
    SIGNATURE_BASE64: verify_base64_hmac,
    SIGNATURE_HEX_PREFIXED: verify_hex_hmac,
}


def verify_signature(signature_format, request_body, signature, secret):
    """Dispatch to the verifier for ``signature_format``."""
    return _VERIFIERS[signature_format](request_body, signature, secret)
