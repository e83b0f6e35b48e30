"""
Webhook signature verification.

Both checks run over the raw request body, exactly as received, and compare
in constant time. A missing secret never verifies.
"""

import base64
import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)

HUBSPOT_SIGNATURE_PREFIX = "sha256="


def shopify_signature(body: bytes, secret: str) -> str:
    """Base64 HMAC-SHA256 of the body, as sent in ``X-Shopify-Hmac-Sha256``"""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def hubspot_signature(body: bytes, secret: str) -> str:
    """Hex SHA-256 of secret + body, as sent in ``X-HubSpot-Signature``"""
    return hashlib.sha256(secret.encode("utf-8") + body).hexdigest()


def verify_shopify_signature(body: bytes, hmac_header: Optional[str], secret: Optional[str]) -> bool:
    if not secret:
        logger.error("Shopify webhook secret not configured")
        return False
    if not hmac_header:
        return False

    expected = shopify_signature(body, secret)
    return hmac.compare_digest(expected.encode("utf-8"), hmac_header.strip().encode("utf-8"))


def verify_hubspot_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    if not secret:
        logger.error("HubSpot webhook secret not configured")
        return False
    if not signature:
        return False

    received = signature.strip()
    if received.startswith(HUBSPOT_SIGNATURE_PREFIX):
        received = received[len(HUBSPOT_SIGNATURE_PREFIX):]

    expected = hubspot_signature(body, secret)
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))
