"""Shopify webhook signature verification: constant-time HMAC.

Security contract:
- Verification uses hmac.compare_digest() (constant-time, no timing attacks)
- Verification failure -> 401 immediately, no payload processing
- Missing secret -> verification always fails (fail-closed)
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

from stockwatch.config import settings

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-shopify-hmac-sha256"


def compute_signature(secret: str, body: bytes) -> str:
    """Base64-encoded HMAC-SHA256 of the raw body, as Shopify sends it."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_shopify(body: bytes, signature_header: str | None) -> bool:
    """Verify a Shopify webhook HMAC-SHA256 signature.

    Args:
        body: Raw request body bytes
        signature_header: Value of X-Shopify-Hmac-SHA256 header

    Returns:
        True if signature is valid
    """
    secret = settings.shopify_webhook_secret
    if not secret:
        logger.warning("SHOPIFY_WEBHOOK_SECRET not set, rejecting webhook")
        return False
    if not signature_header:
        return False

    # compare_digest rejects non-ASCII str; header values arrive latin-1 decoded.
    expected = compute_signature(secret, body).encode("ascii")
    return hmac.compare_digest(expected, signature_header.encode("utf-8", "replace"))


def verify_webhook(body: bytes, headers: dict[str, str]) -> bool:
    """Verify a webhook using its headers (lowercase keys)."""
    return verify_shopify(body, headers.get(SIGNATURE_HEADER))
